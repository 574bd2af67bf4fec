import hashlib
import json
import mimetypes
import os
import time
from pathlib import Path

from flask import Flask, jsonify, render_template_string, send_file, abort, request
from werkzeug.security import safe_join

from garden_state import Garden
from manifest import filename_to_slug, find_by_slug
from markdown_render import render_markdown
from tag_tree import tag_tree_to_list, visible_tags

app = Flask(__name__)

SITE_ROOT = Path(__file__).resolve().parent

_CONFIG_PATH = SITE_ROOT / "garden.config.json"
_DEFAULTS = {
    "port": 8000,
    "host": "0.0.0.0",
    "posts_dir": "posts",
    "trains_dir": "thought-train",
    "labs_dir": "labs",
    "sounds_dir": "sounds",
    "hidden_tags": ["status"],
    "asset_root": "/posts/",
    "readme_filename": "Garden Readme.md",
    "poll_interval": 15,
}

def _load_config(path: Path = _CONFIG_PATH) -> dict:
    cfg = dict(_DEFAULTS)
    if path.is_file():
        try:
            with open(path) as f:
                user = json.load(f)
            cfg.update(user)
        except Exception as e:
            print(f"Warning: could not load {path.name}: {e}")
    return cfg

_cfg = _load_config()

PORT = _cfg["port"]
HOST = _cfg["host"]
POSTS_DIR = SITE_ROOT / _cfg["posts_dir"]
TRAINS_DIR = SITE_ROOT / _cfg["trains_dir"]
LABS_DIR = SITE_ROOT / _cfg["labs_dir"]
SOUNDS_DIR = SITE_ROOT / _cfg["sounds_dir"]
HIDDEN_TAGS = frozenset(_cfg["hidden_tags"])
ASSET_ROOT = _cfg["asset_root"]
README_FILENAME = _cfg["readme_filename"]
POLL_INTERVAL = max(1, int(_cfg["poll_interval"]))

_content_cache: dict = {"hash": None, "ts": 0.0, "garden": None, "garden_hash": None}
_CONTENT_CACHE_TTL = POLL_INTERVAL


def _walk_content():

    for root in (POSTS_DIR, TRAINS_DIR, LABS_DIR):
        try:
            entries = sorted(os.scandir(root), key=lambda e: e.name)
        except OSError:
            continue
        for entry in entries:
            if not entry.is_file() or not entry.name.endswith(".md"):
                continue
            try:
                yield f"{root.name}/{entry.name}", entry.stat().st_mtime
            except OSError:
                pass


def _get_content_hash() -> str:

    now = time.monotonic()
    if _content_cache["hash"] is not None and (now - _content_cache["ts"]) < _CONTENT_CACHE_TTL:
        return _content_cache["hash"]
    h = hashlib.md5()
    for rel, mtime in _walk_content():
        h.update(f"{rel}:{mtime}".encode())
    digest = h.hexdigest()
    _content_cache["hash"] = digest
    _content_cache["ts"] = now
    return digest


def _invalidate_cache():
    _content_cache["hash"] = None
    _content_cache["ts"] = 0.0
    _content_cache["garden"] = None
    _content_cache["garden_hash"] = None


def get_garden() -> Garden:

    digest = _get_content_hash()
    garden = _content_cache["garden"]
    if garden is None or _content_cache.get("garden_hash") != digest:
        garden = Garden.load(POSTS_DIR, TRAINS_DIR, LABS_DIR,
                             hidden_tags=HIDDEN_TAGS, readme_filename=README_FILENAME)
        _content_cache["garden"] = garden
        _content_cache["garden_hash"] = digest
    return garden


def _safe_asset_path(raw_path: str) -> Path | None:

    if not raw_path:
        return None
    joined = safe_join(str(POSTS_DIR), raw_path)
    if joined is None:
        return None
    return Path(joined)


def post_summary(post) -> dict:
    return {
        "title": post.title,
        "date": post.date,
        "tags": post.tags,
        "excerpt": post.excerpt,
        "filename": post.filename,
        "slug": filename_to_slug(post.filename),
    }


def _expanded_from_collapsed(tree, collapsed: list):
    if not collapsed:
        return None
    parents = {node.full_path for node in tree.walk() if node.children}
    return parents - set(collapsed)


@app.route("/")
def index():
    return render_template_string(MAIN_TEMPLATE, poll_interval=POLL_INTERVAL)


@app.route("/api/config")
def api_config():
    return jsonify({
        "hidden_tags": sorted(HIDDEN_TAGS),
        "asset_root": ASSET_ROOT,
        "readme_filename": README_FILENAME,
        "poll_interval": POLL_INTERVAL,
    })


@app.route("/api/posts")
def api_posts():
    notes = get_garden().notes
    tag = request.args.get("tag", "all")
    return jsonify([post_summary(p) for p in notes.filtered(tag)])


@app.route("/api/note/<slug>")
def api_note(slug):
    notes = get_garden().notes
    post = find_by_slug(notes.posts, slug)
    if post is None:
        abort(404)
    data = post_summary(post)
    data["visible_tags"] = visible_tags(post.tags, HIDDEN_TAGS)
    data["html"] = render_markdown(post.body, ASSET_ROOT)
    return jsonify(data)


@app.route("/api/default-note")
def api_default_note():
    post = get_garden().notes.default_post()
    return jsonify(post_summary(post) if post else None)


@app.route("/api/tags")
def api_tags():
    notes = get_garden().notes
    tree = notes.tag_tree()
    expanded = _expanded_from_collapsed(tree, request.args.getlist("collapsed"))
    readme = notes.readme()
    return jsonify({
        "total": notes.total_notes(),
        "readme": {"filename": readme.filename, "title": readme.title,
                   "slug": filename_to_slug(readme.filename)} if readme else None,
        "counts": notes.tags,
        "tree": tag_tree_to_list(tree, expanded),
    })


@app.route("/api/trains")
def api_trains():
    trains = get_garden().trains
    tag = request.args.get("tag", "all")
    return jsonify({
        "tags": trains.tags,
        "trains": [t.to_dict() for t in trains.filtered(tag)],
    })


@app.route("/api/labs")
def api_labs():
    labs = get_garden().labs.labs
    return jsonify([{**lab.to_dict(), "html": render_markdown(lab.body, ASSET_ROOT)} for lab in labs])


@app.route("/api/check")
def api_check():
    return jsonify({"content_hash": _get_content_hash()})


@app.route("/posts/<path:file_path>")
def asset_file(file_path):
    fpath = _safe_asset_path(file_path)
    if fpath is None:
        abort(403)
    if not fpath.is_file():
        abort(404)
    mime, _ = mimetypes.guess_type(str(fpath))
    return send_file(fpath, mimetype=mime)


MAIN_TEMPLATE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>Digital Garden</title>
<style>

*, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }

:root {
  --bg-primary: #1a1a2e;
  --bg-secondary: #16162a;
  --bg-hover: rgba(134,112,255,.08);
  --bg-active: rgba(134,112,255,.15);
  --text: #e0def4;
  --text-muted: #908caa;
  --accent: #8673ff;
  --border: rgba(255,255,255,.06);
  --sidebar-width: 240px;
  --font: -apple-system, BlinkMacSystemFont, 'Segoe UI', 'Inter', Roboto, sans-serif;
}

html, body { height: 100%; background: var(--bg-primary); color: var(--text); font-family: var(--font); line-height: 1.6; }
.app { display: flex; height: 100vh; overflow: hidden; }
.sidebar { width: var(--sidebar-width); background: var(--bg-secondary); overflow-y: auto; padding: 10px 0; }
.posts { width: 300px; border-right: 1px solid var(--border); overflow-y: auto; }
.note { flex: 1; overflow-y: auto; padding: 32px 48px; }
.tag-item, .post-item { display: block; width: 100%; text-align: left; background: none; border: none; color: var(--text-muted); padding: 4px 14px; cursor: pointer; font: inherit; }
.tag-item:hover, .post-item:hover { background: var(--bg-hover); }
.tag-item.active, .post-item.active { background: var(--bg-active); color: var(--text); }
.tag-count { float: right; opacity: .6; }
.tag-children { list-style: none; padding-left: 12px; }
.tag-children.collapsed { display: none; }
.task-item.completed { opacity: .6; text-decoration: line-through; }
.note a { color: var(--accent); }
.note img { max-width: 100%; }
</style>
</head>
<body>
<div class="app">
  <nav class="sidebar"><ul id="tagList" style="list-style:none"></ul></nav>
  <ul class="posts" id="postsList" style="list-style:none"></ul>
  <article class="note" id="note"></article>
</div>
<script>
const collapsed = new Set();
let currentTag = 'all';

function renderTags(nodes) {
  return nodes.map(n => `
    <li>
      <button class="tag-item" data-tag="${n.path}">${n.display_name}
        ${n.count ? `<span class="tag-count">${n.count}</span>` : ''}</button>
      ${n.children.length ? `<ul class="tag-children ${n.expanded ? '' : 'collapsed'}">${renderTags(n.children)}</ul>` : ''}
    </li>`).join('');
}

async function loadTags() {
  const qs = [...collapsed].map(p => 'collapsed=' + encodeURIComponent(p)).join('&');
  const data = await (await fetch('/api/tags' + (qs ? '?' + qs : ''))).json();
  document.getElementById('tagList').innerHTML =
    `<li><button class="tag-item" data-tag="all">All Notes <span class="tag-count">${data.total}</span></button></li>` +
    renderTags(data.tree);
}

async function loadPosts(tag) {
  currentTag = tag;
  const posts = await (await fetch('/api/posts?tag=' + encodeURIComponent(tag))).json();
  document.getElementById('postsList').innerHTML = posts.map(p =>
    `<li><button class="post-item" data-slug="${p.slug}">${p.title}<br><small>${p.date}</small></button></li>`).join('');
}

async function loadNote(slug) {
  const res = await fetch('/api/note/' + encodeURIComponent(slug));
  if (!res.ok) return;
  const note = await res.json();
  document.getElementById('note').innerHTML =
    `<h1>${note.title}</h1><p>${note.visible_tags.map(t => '#' + t).join(' ')}</p>` + note.html;
  history.replaceState(null, '', '#note/' + slug);
}

document.addEventListener('click', e => {
  const tag = e.target.closest('.tag-item');
  if (tag) { loadPosts(tag.dataset.tag); return; }
  const post = e.target.closest('.post-item');
  if (post) loadNote(post.dataset.slug);
});

(async () => {
  await loadTags();
  await loadPosts('all');
  const m = location.hash.match(/^#note\/([^?]+)/);
  if (m) { loadNote(m[1]); return; }
  const def = await (await fetch('/api/default-note')).json();
  if (def) loadNote(def.slug);
})();

let lastHash = null;
setInterval(async () => {
  const data = await (await fetch('/api/check')).json();
  if (lastHash !== null && data.content_hash !== lastHash) { loadTags(); loadPosts(currentTag); }
  lastHash = data.content_hash;
}, {{ poll_interval }} * 1000);
</script>
</body>
</html>
"""


if __name__ == "__main__":
    import socket
    hostname = socket.gethostname()
    local_ip = socket.gethostbyname(hostname)
    print(f"Serving garden: {SITE_ROOT}")
    print(f"Open http://localhost:{PORT}    (this machine)")
    print(f"     http://{local_ip}:{PORT}  (other devices on network)")
    app.run(host=HOST, port=PORT)
