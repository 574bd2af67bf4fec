"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

import server

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def garden_root(tmp_path: Path) -> Path:
    """A small garden: three notes, two thought trains, one lab."""
    root = tmp_path / "garden"
    posts = root / "posts"
    _write(posts / "Garden Readme.md", "# Welcome\nThis garden grows. #meta")
    _write(
        posts / "First Note.md",
        "\n".join([
            "---",
            "title: First",
            "date: 2024-03-01",
            "tags: [Area/Sub]",
            "---",
            "Body with #journal/daily and ![pic](My Photo.png)",
        ]),
    )
    _write(posts / "Second.md", "# Second\n#journal text #status/draft")
    (posts / "My Photo.png").write_bytes(PNG_BYTES)

    trains = root / "thought-train"
    _write(
        trains / "ride.md",
        "\n".join([
            "---",
            "title: Ride",
            "date: 2024-01-02",
            "startPoint: A",
            "endPoint: B",
            "route: [A, mid, B]",
            "tags: [travel]",
            "---",
            "Notes #Travel #maps",
        ]),
    )
    _write(trains / "older.md", "---\ndate: 2023-05-05\n---\nplain")

    labs = root / "labs"
    _write(
        labs / "widget.md",
        "\n".join([
            "---",
            "title: Widget",
            'description: "A toy"',
            "tags: [a, b, c]",
            "url: https://example.com",
            "---",
            "Built with #python",
        ]),
    )
    return root


@pytest.fixture
def client(garden_root: Path, monkeypatch):
    monkeypatch.setattr(server, "POSTS_DIR", garden_root / "posts")
    monkeypatch.setattr(server, "TRAINS_DIR", garden_root / "thought-train")
    monkeypatch.setattr(server, "LABS_DIR", garden_root / "labs")
    server._invalidate_cache()
    server.app.config["TESTING"] = True
    with server.app.test_client() as c:
        yield c
    server._invalidate_cache()
