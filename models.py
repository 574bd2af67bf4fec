from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import List


@dataclass
class Post:
    title: str
    date: str
    tags: List[str]
    body: str
    excerpt: str
    filename: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ThoughtTrain:
    title: str
    date: str
    start_point: str = ""
    end_point: str = ""
    route: List[str] = field(default_factory=list)
    takeaways: str = ""
    quote: str = ""
    why_cared: str = ""
    next_rabbit_hole: str = ""
    tags: List[str] = field(default_factory=list)
    body: str = ""
    filename: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Lab:
    title: str
    date: str
    description: str = ""
    thumbnail: str = ""
    url: str = ""
    view: str = ""
    tags: List[str] = field(default_factory=list)
    body: str = ""
    filename: str = ""

    def to_dict(self) -> dict:
        return asdict(self)
