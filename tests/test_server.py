import server


def test_index_page(client) -> None:
    res = client.get("/")
    assert res.status_code == 200
    assert b"/api/tags" in res.data
    assert f"{server.POLL_INTERVAL} * 1000".encode() in res.data


def test_config(client) -> None:
    data = client.get("/api/config").get_json()
    assert data["hidden_tags"] == sorted(server.HIDDEN_TAGS)
    assert data["asset_root"] == server.ASSET_ROOT


def test_posts_newest_first(client) -> None:
    posts = client.get("/api/posts").get_json()
    assert [p["filename"] for p in posts] == ["Garden Readme.md", "Second.md", "First Note.md"]
    assert posts[2]["slug"] == "first-note"
    assert posts[2]["excerpt"].endswith("...")


def test_posts_filtered_by_parent_tag(client) -> None:
    posts = client.get("/api/posts?tag=journal").get_json()
    assert [p["filename"] for p in posts] == ["Second.md", "First Note.md"]
    posts = client.get("/api/posts?tag=Area").get_json()
    assert [p["title"] for p in posts] == ["First"]


def test_note_renders_html(client) -> None:
    res = client.get("/api/note/first-note")
    assert res.status_code == 200
    data = res.get_json()
    assert data["title"] == "First"
    assert 'src="/posts/My%20Photo.png"' in data["html"]
    assert "#journal" not in data["html"]


def test_note_hides_status_tags(client) -> None:
    data = client.get("/api/note/second").get_json()
    assert "status/draft" in data["tags"]
    assert data["visible_tags"] == ["journal"]


def test_unknown_note_is_404(client) -> None:
    assert client.get("/api/note/nope").status_code == 404


def test_default_note_is_readme(client) -> None:
    data = client.get("/api/default-note").get_json()
    assert data["slug"] == "garden-readme"
    assert data["title"] == "Welcome"


def test_tags(client) -> None:
    data = client.get("/api/tags").get_json()
    assert data["total"] == 2
    assert data["readme"]["filename"] == "Garden Readme.md"
    assert "status/draft" not in data["counts"]
    assert data["counts"]["journal"] == 1
    assert [n["path"] for n in data["tree"]] == ["Area", "journal", "meta"]
    assert all(n["expanded"] for n in data["tree"])


def test_tags_collapsed(client) -> None:
    data = client.get("/api/tags?collapsed=journal").get_json()
    nodes = {n["path"]: n for n in data["tree"]}
    assert nodes["journal"]["expanded"] is False
    assert nodes["Area"]["expanded"] is True
    assert nodes["journal"]["children"][0]["path"] == "journal/daily"


def test_trains(client) -> None:
    data = client.get("/api/trains").get_json()
    assert [t["title"] for t in data["trains"]] == ["Ride", "older"]
    assert data["trains"][0]["route"] == ["A", "mid", "B"]
    assert data["tags"]["maps"] == 1
    data = client.get("/api/trains?tag=maps").get_json()
    assert [t["filename"] for t in data["trains"]] == ["ride.md"]


def test_labs(client) -> None:
    labs = client.get("/api/labs").get_json()
    assert len(labs) == 1
    assert labs[0]["tags"] == ["a", "b", "c"]
    assert labs[0]["html"] == "<p>Built with #python</p>"


def test_check_hash_is_stable(client) -> None:
    first = client.get("/api/check").get_json()["content_hash"]
    assert len(first) == 32
    assert client.get("/api/check").get_json()["content_hash"] == first


def test_asset_served(client) -> None:
    res = client.get("/posts/My%20Photo.png")
    assert res.status_code == 200
    assert res.mimetype == "image/png"
    assert res.data.startswith(b"\x89PNG")
    res.close()


def test_missing_asset_is_404(client) -> None:
    assert client.get("/posts/nothing.png").status_code == 404


def test_asset_path_cannot_escape(client) -> None:
    assert server._safe_asset_path("../server.py") is None
    assert server._safe_asset_path("") is None
