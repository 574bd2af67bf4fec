from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional

HIDDEN_TAGS = frozenset({"status"})


def root_tag(tag: str) -> str:
    return tag.split("/", 1)[0]


def is_hidden(tag: str, hidden_tags: Iterable[str] = HIDDEN_TAGS) -> bool:
    return root_tag(tag) in hidden_tags


def visible_tags(tags: Iterable[str], hidden_tags: Iterable[str] = HIDDEN_TAGS) -> List[str]:
    hidden = set(hidden_tags)
    return [tag for tag in tags if not is_hidden(tag, hidden)]


def count_tags(entities, hidden_tags: Iterable[str] = HIDDEN_TAGS) -> Dict[str, int]:
    """Count entities per full tag string; hidden roots and their children are skipped."""
    hidden = set(hidden_tags)
    counts: Dict[str, int] = {}
    for entity in entities:
        for tag in entity.tags:
            if is_hidden(tag, hidden):
                continue
            counts[tag] = counts.get(tag, 0) + 1
    return counts


@dataclass
class TagNode:
    name: str
    full_path: str
    count: int = 0
    children: Dict[str, "TagNode"] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.name[:1].upper() + self.name[1:]

    def sorted_children(self) -> List["TagNode"]:
        return [self.children[name] for name in sorted(self.children)]

    def walk(self) -> Iterator["TagNode"]:
        for child in self.sorted_children():
            yield child
            yield from child.walk()

    def find(self, path: str) -> Optional["TagNode"]:
        node = self
        for part in path.split("/"):
            node = node.children.get(part)
            if node is None:
                return None
        return node


def build_tag_tree(posts, hidden_tags: Iterable[str] = HIDDEN_TAGS) -> TagNode:
    """Nest tags on ``/``.

    Only the node for a complete tag string carries a count; ancestors that
    were never used as a tag themselves stay at 0.
    """
    root = TagNode(name="", full_path="")
    for tag, count in count_tags(posts, hidden_tags).items():
        node = root
        path = ""
        for part in tag.split("/"):
            path = f"{path}/{part}" if path else part
            child = node.children.get(part)
            if child is None:
                child = node.children[part] = TagNode(name=part, full_path=path)
            node = child
        node.count = count
    return root


def is_expanded(path: str, expanded_tags: Optional[Iterable[str]] = None) -> bool:
    # No state at all means nothing has been collapsed yet.
    if expanded_tags is None:
        return True
    return path in expanded_tags


def tag_tree_to_list(node: TagNode, expanded_tags: Optional[Iterable[str]] = None, depth: int = 0) -> List[dict]:
    if expanded_tags is not None and not isinstance(expanded_tags, (set, frozenset)):
        expanded_tags = set(expanded_tags)
    return [
        {
            "name": child.name,
            "display_name": child.display_name,
            "path": child.full_path,
            "count": child.count,
            "depth": depth,
            "expanded": is_expanded(child.full_path, expanded_tags),
            "children": tag_tree_to_list(child, expanded_tags, depth + 1),
        }
        for child in node.sorted_children()
    ]


def filter_posts_by_tag(posts, tag: str = "all") -> list:
    if tag == "all":
        return list(posts)
    prefix = tag + "/"
    return [post for post in posts if any(t == tag or t.startswith(prefix) for t in post.tags)]


def filter_by_exact_tag(entities, tag: str = "all") -> list:
    if tag == "all":
        return list(entities)
    return [entity for entity in entities if tag in entity.tags]


def _date_key(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value[:10])
    except (TypeError, ValueError):
        return None


def sort_newest_first(entities) -> list:
    entities = list(entities)
    dated = [e for e in entities if _date_key(e.date) is not None]
    undated = [e for e in entities if _date_key(e.date) is None]
    return sorted(dated, key=lambda e: _date_key(e.date), reverse=True) + undated
