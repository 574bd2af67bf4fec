"""Turn raw note documents into Post, ThoughtTrain and Lab entities.

Posts come from Bear exports: tags are written inline as ``#tag`` or
``#area/sub`` and the title is usually the leading ``# H1``. Posts carry
their own small front matter reader (title, date and a bracketed tag list
only); trains and labs share :func:`yaml_lite.extract_front_matter`.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import List, Optional

from models import Lab, Post, ThoughtTrain
from yaml_lite import extract_front_matter

HASHTAG_RE = re.compile(r"#([a-zA-Z][\w-]*(?:/[\w-]+)*)", re.ASCII)

EXCERPT_LENGTH = 120
DEFAULT_TAG = "notes"

_MD_SUFFIX_RE = re.compile(r"\.md$", re.IGNORECASE)
_POST_TITLE_RE = re.compile(r"^title:[ \t]*[\"']?(.+?)[\"']?[ \t]*$", re.MULTILINE)
_POST_DATE_RE = re.compile(r"^date:[ \t]*[\"']?(.+?)[\"']?[ \t]*$", re.MULTILINE)
_POST_TAGS_RE = re.compile(r"^tags:[ \t]*\[([^\]]+)\]", re.MULTILINE)
_H1_RE = re.compile(r"#[ \t]+(\S.*)")
_EXCERPT_STRIP_RE = re.compile(r"[#*_`\[\]]")


def today_iso() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def strip_md_extension(filename: str) -> str:
    return _MD_SUFFIX_RE.sub("", filename)


def extract_hashtags(text: str) -> List[str]:
    return [m.group(1) for m in HASHTAG_RE.finditer(text)]


def strip_hashtags(text: str) -> str:
    return HASHTAG_RE.sub("", text)


def make_excerpt(body: str) -> str:
    # The ellipsis is appended even when nothing was cut.
    text = _EXCERPT_STRIP_RE.sub("", body)
    text = re.sub(r"\n+", " ", text).strip()
    return text[:EXCERPT_LENGTH] + "..."


def _add_unique(tags: List[str], tag: str) -> None:
    if tag and tag not in tags:
        tags.append(tag)


def _split_post_front_matter(content: str) -> tuple[Optional[str], str]:
    lines = content.split("\n")
    if lines[0] != "---":
        return None, content
    try:
        end = lines.index("---", 1)
    except ValueError:
        return None, content
    return "\n".join(lines[1:end]), "\n".join(lines[end + 1:])


def parse_post(content: str, filename: str, created_date: Optional[str] = None) -> Post:
    title = strip_md_extension(filename)
    date = created_date or today_iso()
    tags: List[str] = []
    title_from_front_matter = False

    front_matter, body = _split_post_front_matter(content)
    if front_matter is not None:
        title_match = _POST_TITLE_RE.search(front_matter)
        date_match = _POST_DATE_RE.search(front_matter)
        tags_match = _POST_TAGS_RE.search(front_matter)
        if title_match:
            title = title_match.group(1)
            title_from_front_matter = True
        if date_match:
            date = date_match.group(1)
        if tags_match:
            for tag in tags_match.group(1).split(","):
                _add_unique(tags, re.sub(r"[\"']", "", tag.strip()))

    for tag in extract_hashtags(body):
        _add_unique(tags, tag.lower())

    if not title_from_front_matter:
        first_line, _, rest = body.partition("\n")
        h1 = _H1_RE.fullmatch(first_line)
        if h1:
            title = h1.group(1).strip()
            body = rest

    clean_body = strip_hashtags(body).strip()

    return Post(
        title=title,
        date=date,
        tags=tags or [DEFAULT_TAG],
        body=clean_body,
        excerpt=make_excerpt(clean_body),
        filename=filename,
    )


def _as_list(value) -> List[str]:
    if isinstance(value, list):
        return value
    if value:
        return [value]
    return []


def _as_text(value) -> str:
    if isinstance(value, list):
        return ", ".join(value)
    return value or ""


def parse_thought_train(content: str, filename: str, created_date: Optional[str] = None) -> ThoughtTrain:
    front_matter, body = extract_front_matter(content)

    tags: List[str] = []
    for tag in _as_list(front_matter.get("tags")) + extract_hashtags(body):
        _add_unique(tags, tag)

    route = front_matter.get("route")
    return ThoughtTrain(
        title=_as_text(front_matter.get("title")) or strip_md_extension(filename),
        date=_as_text(front_matter.get("date")) or created_date or today_iso(),
        start_point=_as_text(front_matter.get("startPoint")),
        end_point=_as_text(front_matter.get("endPoint")),
        route=route if isinstance(route, list) else [],
        takeaways=_as_text(front_matter.get("takeaways")),
        quote=_as_text(front_matter.get("quote")),
        why_cared=_as_text(front_matter.get("whyCared")),
        next_rabbit_hole=_as_text(front_matter.get("nextRabbitHole")),
        tags=tags,
        body=strip_hashtags(body).strip(),
        filename=filename,
    )


def parse_lab(content: str, filename: str, created_date: Optional[str] = None) -> Lab:
    front_matter, body = extract_front_matter(content)
    return Lab(
        title=_as_text(front_matter.get("title")) or strip_md_extension(filename),
        date=_as_text(front_matter.get("date")) or created_date or today_iso(),
        description=_as_text(front_matter.get("description")),
        thumbnail=_as_text(front_matter.get("thumbnail")),
        url=_as_text(front_matter.get("url")),
        view=_as_text(front_matter.get("view")),
        tags=list(_as_list(front_matter.get("tags"))),
        body=body,
        filename=filename,
    )
