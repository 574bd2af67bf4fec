"""Per-feature state for the garden and the loaders that fill it.

Notes, thought trains and labs each own their state; :class:`Garden` only
holds the three side by side so the server and the static build can share
one loading path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set

from manifest import build_manifest, normalize_entry
from models import Lab, Post, ThoughtTrain
from parsers import parse_lab, parse_post, parse_thought_train
from tag_tree import (
    HIDDEN_TAGS,
    TagNode,
    build_tag_tree,
    count_tags,
    filter_by_exact_tag,
    filter_posts_by_tag,
    sort_newest_first,
)

README_FILENAME = "Garden Readme.md"


def read_documents(directory: Path, manifest: Optional[list] = None) -> Iterator[tuple]:
    directory = Path(directory)
    if manifest is None:
        manifest = build_manifest(directory)
    for entry in manifest:
        filename, created = normalize_entry(entry)
        try:
            content = (directory / filename).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            print(f"Warning: could not read {directory.name}/{filename}: {e}")
            continue
        yield filename, content, created


def load_posts(directory: Path, manifest: Optional[list] = None) -> List[Post]:
    return [parse_post(content, filename, created)
            for filename, content, created in read_documents(directory, manifest)]


def load_thought_trains(directory: Path, manifest: Optional[list] = None) -> List[ThoughtTrain]:
    return sort_newest_first(parse_thought_train(content, filename, created)
                             for filename, content, created in read_documents(directory, manifest))


def load_labs(directory: Path, manifest: Optional[list] = None) -> List[Lab]:
    return sort_newest_first(parse_lab(content, filename, created)
                             for filename, content, created in read_documents(directory, manifest))


@dataclass
class NotesState:
    posts: List[Post] = field(default_factory=list)
    tags: Dict[str, int] = field(default_factory=dict)
    current_tag: str = "all"
    # None until the reader first collapses something: every node is expanded.
    expanded_tags: Optional[Set[str]] = None
    hidden_tags: frozenset = HIDDEN_TAGS
    readme_filename: str = README_FILENAME

    def tag_tree(self) -> TagNode:
        self.tags = count_tags(self.posts, self.hidden_tags)
        return build_tag_tree(self.posts, self.hidden_tags)

    def readme(self) -> Optional[Post]:
        return next((p for p in self.posts if p.filename == self.readme_filename), None)

    def total_notes(self) -> int:
        return sum(1 for p in self.posts if p.filename != self.readme_filename)

    def default_post(self) -> Optional[Post]:
        readme = self.readme()
        if readme is not None:
            return readme
        newest = sort_newest_first(self.posts)
        return newest[0] if newest else None

    def filtered(self, tag: Optional[str] = None) -> List[Post]:
        return sort_newest_first(filter_posts_by_tag(self.posts, tag or self.current_tag))

    def _materialize_expanded(self) -> Set[str]:
        if self.expanded_tags is None:
            self.expanded_tags = {node.full_path for node in self.tag_tree().walk() if node.children}
        return self.expanded_tags

    def toggle_tag(self, path: str) -> bool:
        expanded = self._materialize_expanded()
        if path in expanded:
            expanded.discard(path)
            return False
        expanded.add(path)
        return True

    def select_tag(self, tag: str) -> None:
        self.current_tag = tag
        if tag != "all":
            self._materialize_expanded().add(tag)


@dataclass
class TrainsState:
    trains: List[ThoughtTrain] = field(default_factory=list)
    tags: Dict[str, int] = field(default_factory=dict)
    current_tag: str = "all"

    def rebuild_tags(self) -> Dict[str, int]:
        self.tags = count_tags(self.trains, hidden_tags=())
        return self.tags

    def filtered(self, tag: Optional[str] = None) -> List[ThoughtTrain]:
        return filter_by_exact_tag(self.trains, tag or self.current_tag)


@dataclass
class LabsState:
    labs: List[Lab] = field(default_factory=list)


@dataclass
class Garden:
    notes: NotesState = field(default_factory=NotesState)
    trains: TrainsState = field(default_factory=TrainsState)
    labs: LabsState = field(default_factory=LabsState)

    @classmethod
    def load(cls, posts_dir: Path, trains_dir: Path, labs_dir: Path,
             hidden_tags=HIDDEN_TAGS, readme_filename: str = README_FILENAME) -> "Garden":
        notes = NotesState(posts=load_posts(posts_dir), hidden_tags=frozenset(hidden_tags),
                           readme_filename=readme_filename)
        notes.tag_tree()
        trains = TrainsState(trains=load_thought_trains(trains_dir))
        trains.rebuild_tags()
        return cls(notes=notes, trains=trains, labs=LabsState(labs=load_labs(labs_dir)))
