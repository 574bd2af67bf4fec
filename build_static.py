import json
import shutil
from pathlib import Path

from flask import render_template_string

from garden_state import Garden
from manifest import build_manifest, build_sounds_manifest, filename_to_slug
from markdown_render import render_markdown
from tag_tree import tag_tree_to_list, visible_tags
from server import (
    SITE_ROOT,
    POSTS_DIR,
    TRAINS_DIR,
    LABS_DIR,
    SOUNDS_DIR,
    HIDDEN_TAGS,
    ASSET_ROOT,
    README_FILENAME,
    POLL_INTERVAL,
    MAIN_TEMPLATE,
    app,
    post_summary,
)

OUTPUT = SITE_ROOT / "_site"


def _localize_assets(html: str) -> str:
    # Pages are served from the site root, so absolute asset links become relative.
    prefix = ASSET_ROOT.lstrip("/")
    html = html.replace(f'src="{ASSET_ROOT}', f'src="{prefix}')
    return html.replace(f'href="{ASSET_ROOT}', f'href="{prefix}')


def generate_manifests():
    return {
        "posts": build_manifest(POSTS_DIR),
        "thought-trains": build_manifest(TRAINS_DIR),
        "labs": build_manifest(LABS_DIR),
        "sounds": build_sounds_manifest(SOUNDS_DIR),
    }


def generate_tags(garden: Garden) -> dict:

    notes = garden.notes
    tree = notes.tag_tree()
    readme = notes.readme()
    return {
        "total": notes.total_notes(),
        "readme": {"filename": readme.filename, "title": readme.title,
                   "slug": filename_to_slug(readme.filename)} if readme else None,
        "counts": notes.tags,
        "tree": tag_tree_to_list(tree),
    }


def generate_note_json(post) -> dict:

    data = post_summary(post)
    data["visible_tags"] = visible_tags(post.tags, HIDDEN_TAGS)
    data["html"] = _localize_assets(render_markdown(post.body, ASSET_ROOT))
    return data


def patch_template(html: str) -> str:

    html = html.replace(
        "fetch('/api/tags' + (qs ? '?' + qs : ''))",
        "fetch('data/tags.json')",
    )

    html = html.replace(
        "const posts = await (await fetch('/api/posts?tag=' + encodeURIComponent(tag))).json();",
        "const posts = (await (await fetch('data/posts.json')).json())\n"
        "    .filter(p => tag === 'all' || p.tags.some(t => t === tag || t.startsWith(tag + '/')));",
    )

    html = html.replace(
        "fetch('/api/note/' + encodeURIComponent(slug))",
        "fetch('data/notes/' + encodeURIComponent(slug) + '.json')",
    )
    html = html.replace("fetch('/api/default-note')", "fetch('data/default-note.json')")

    html = html.replace("setInterval(async () => {", "if (false) setInterval(async () => {")

    return html


def _write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


def build(output: Path = OUTPUT):

    print("Building static garden...")

    if output.exists():
        for item in output.iterdir():
            if item.name == ".git":
                continue
            if item.is_dir():
                shutil.rmtree(item)
            else:
                item.unlink()
    data_dir = output / "data"
    data_dir.mkdir(parents=True, exist_ok=True)

    manifests = generate_manifests()
    for name, entries in manifests.items():
        _write_json(data_dir / f"{name}.manifest.json", entries)
        print(f"  {name}.manifest.json ({len(entries)} files)")

    garden = Garden.load(POSTS_DIR, TRAINS_DIR, LABS_DIR,
                         hidden_tags=HIDDEN_TAGS, readme_filename=README_FILENAME)
    notes = garden.notes

    _write_json(data_dir / "posts.json", [post_summary(p) for p in notes.filtered("all")])
    _write_json(data_dir / "tags.json", generate_tags(garden))
    default = notes.default_post()
    _write_json(data_dir / "default-note.json", post_summary(default) if default else None)
    print(f"  tags.json ({len(notes.tags)} tags)")

    for post in notes.posts:
        _write_json(data_dir / "notes" / f"{filename_to_slug(post.filename)}.json", generate_note_json(post))
    print(f"  {len(notes.posts)} notes rendered")

    _write_json(data_dir / "trains.json", {
        "tags": garden.trains.tags,
        "trains": [t.to_dict() for t in garden.trains.trains],
    })
    _write_json(data_dir / "labs.json", [
        {**lab.to_dict(), "html": _localize_assets(render_markdown(lab.body, ASSET_ROOT))}
        for lab in garden.labs.labs
    ])
    print(f"  {len(garden.trains.trains)} thought trains, {len(garden.labs.labs)} labs")

    copied = 0
    if POSTS_DIR.is_dir():
        assets_out = output / ASSET_ROOT.strip("/")
        for src in sorted(POSTS_DIR.rglob("*")):
            if not src.is_file() or src.suffix.lower() == ".md":
                continue
            dst = assets_out / src.relative_to(POSTS_DIR)
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src, dst)
            copied += 1
    print(f"  {copied} assets copied")

    if manifests["sounds"]:
        sounds_out = output / "sounds"
        sounds_out.mkdir(parents=True, exist_ok=True)
        for entry in manifests["sounds"]:
            shutil.copy2(SOUNDS_DIR / entry["file"], sounds_out / entry["file"])
        print(f"  {len(manifests['sounds'])} sounds copied")

    with app.app_context():
        page = render_template_string(MAIN_TEMPLATE, poll_interval=POLL_INTERVAL)
    (output / "index.html").write_text(patch_template(page), encoding="utf-8")
    print("  index.html generated")

    (output / ".nojekyll").write_text("", encoding="utf-8")

    print(f"\nDone! Static garden is in: {output}")
    print("To test locally:  cd _site && python3 -m http.server 8080")


if __name__ == "__main__":
    build()
