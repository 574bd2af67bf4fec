import re
from pathlib import Path
from types import SimpleNamespace

from manifest import (
    build_manifest,
    build_sounds_manifest,
    filename_to_slug,
    find_by_slug,
    normalize_entry,
)


def test_build_manifest_lists_markdown_sorted(tmp_path: Path) -> None:
    for name in ("b.md", "a.md", "image.png", "c.MD"):
        (tmp_path / name).write_text("x", encoding="utf-8")
    (tmp_path / "sub.md").mkdir()
    manifest = build_manifest(tmp_path)
    assert [e["file"] for e in manifest] == ["a.md", "b.md", "c.MD"]
    assert all(re.fullmatch(r"\d{4}-\d{2}-\d{2}", e["created"]) for e in manifest)


def test_build_manifest_missing_directory(tmp_path: Path) -> None:
    assert build_manifest(tmp_path / "nope") == []


def test_sounds_manifest(tmp_path: Path) -> None:
    for name in ("rain.MP3", "note.md", "wind.flac"):
        (tmp_path / name).write_bytes(b"")
    assert [e["file"] for e in build_sounds_manifest(tmp_path)] == ["rain.MP3", "wind.flac"]


def test_normalize_entry() -> None:
    assert normalize_entry("a.md") == ("a.md", None)
    assert normalize_entry({"file": "a.md", "created": "2024-01-01"}) == ("a.md", "2024-01-01")


def test_filename_to_slug() -> None:
    assert filename_to_slug("Garden Readme.md") == "garden-readme"
    assert filename_to_slug("  Hello, World!.MD") == "hello-world"
    assert filename_to_slug("") == ""


def test_find_by_slug() -> None:
    items = [SimpleNamespace(filename="One Thing.md"), SimpleNamespace(filename="Other.md")]
    assert find_by_slug(items, "other") is items[1]
    assert find_by_slug(items, "missing") is None
