from models import Post
from tag_tree import (
    build_tag_tree,
    count_tags,
    filter_by_exact_tag,
    filter_posts_by_tag,
    is_expanded,
    sort_newest_first,
    tag_tree_to_list,
    visible_tags,
)


def _post(*tags: str, date: str = "2024-01-01", filename: str = "p.md") -> Post:
    return Post(title=filename, date=date, tags=list(tags), body="", excerpt="...", filename=filename)


def test_count_matches_exact_tag_only() -> None:
    posts = [_post("area/sub"), _post("area"), _post("area/sub", "other")]
    tree = build_tag_tree(posts)
    assert tree.find("area").count == 1
    assert tree.find("area/sub").count == 2
    assert tree.find("other").count == 1


def test_intermediate_nodes_have_zero_count() -> None:
    tree = build_tag_tree([_post("a/b/c")])
    assert tree.find("a").count == 0
    assert tree.find("a/b").count == 0
    assert tree.find("a/b").full_path == "a/b"
    assert tree.find("a/b/c").count == 1
    assert tree.find("a/x") is None


def test_hidden_roots_are_excluded_with_descendants() -> None:
    posts = [_post("status/draft", "ok"), _post("status")]
    tree = build_tag_tree(posts)
    assert list(tree.children) == ["ok"]
    assert count_tags(posts) == {"ok": 1}


def test_hidden_tags_are_configurable() -> None:
    tree = build_tag_tree([_post("status", "private/x")], hidden_tags={"private"})
    assert list(tree.children) == ["status"]


def test_children_sorted_by_name() -> None:
    tree = build_tag_tree([_post("zeta", "alpha/y", "alpha/b", "mid")])
    assert [n.name for n in tree.sorted_children()] == ["alpha", "mid", "zeta"]
    listing = tag_tree_to_list(tree)
    assert [n["name"] for n in listing] == ["alpha", "mid", "zeta"]
    assert [n["path"] for n in listing[0]["children"]] == ["alpha/b", "alpha/y"]
    assert [n.full_path for n in tree.walk()] == ["alpha", "alpha/b", "alpha/y", "mid", "zeta"]


def test_listing_metadata() -> None:
    listing = tag_tree_to_list(build_tag_tree([_post("books/fiction")]))
    node = listing[0]
    assert node["display_name"] == "Books"
    assert node["count"] == 0
    assert node["depth"] == 0
    assert node["children"][0]["depth"] == 1
    assert node["children"][0]["count"] == 1


def test_expanded_state() -> None:
    assert is_expanded("a") is True
    assert is_expanded("a", {"a"}) is True
    assert is_expanded("a", set()) is False


def test_expanded_state_survives_rebuild() -> None:
    expanded = {"area"}
    first = tag_tree_to_list(build_tag_tree([_post("area/sub"), _post("misc/x")]), expanded)
    second = tag_tree_to_list(build_tag_tree([_post("area/sub"), _post("area/new"), _post("misc/x")]), expanded)
    assert [(n["path"], n["expanded"]) for n in first] == [("area", True), ("misc", False)]
    assert [(n["path"], n["expanded"]) for n in second] == [("area", True), ("misc", False)]
    assert expanded == {"area"}


def test_filter_posts_by_tag_matches_descendants() -> None:
    a = _post("area", filename="a.md")
    b = _post("area/sub", filename="b.md")
    c = _post("areas", filename="c.md")
    assert filter_posts_by_tag([a, b, c], "area") == [a, b]
    assert filter_posts_by_tag([a, b, c], "all") == [a, b, c]
    assert filter_by_exact_tag([a, b, c], "area") == [a]


def test_visible_tags() -> None:
    assert visible_tags(["status/draft", "ideas", "status"]) == ["ideas"]


def test_sort_newest_first() -> None:
    old = _post(date="2023-01-01", filename="old.md")
    new = _post(date="2024-06-01T10:00:00", filename="new.md")
    bad = _post(date="someday", filename="bad.md")
    same = _post(date="2023-01-01", filename="same.md")
    assert sort_newest_first([bad, old, new, same]) == [new, old, same, bad]
