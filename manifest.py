import os
import re
from datetime import datetime, timezone
from pathlib import Path

MARKDOWN_EXTENSIONS = (".md",)
AUDIO_EXTENSIONS = (".m4a", ".mp3", ".wav", ".ogg", ".aac", ".flac", ".webm", ".qta")


def _created_date(stat: os.stat_result) -> str:
    # st_birthtime is missing on most Linux filesystems; fall back to mtime.
    ts = getattr(stat, "st_birthtime", None) or stat.st_mtime
    return datetime.fromtimestamp(ts, tz=timezone.utc).date().isoformat()


def build_manifest(directory: Path, extensions=MARKDOWN_EXTENSIONS) -> list:
    """List ``{file, created}`` entries for matching files, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    suffixes = tuple(ext.lower() for ext in extensions)
    entries = []
    for entry in sorted(os.scandir(directory), key=lambda e: e.name):
        if not entry.is_file() or not entry.name.lower().endswith(suffixes):
            continue
        entries.append({"file": entry.name, "created": _created_date(entry.stat())})
    return entries


def build_sounds_manifest(directory: Path) -> list:
    return build_manifest(directory, AUDIO_EXTENSIONS)


def normalize_entry(entry) -> tuple:
    """Manifest entries are ``{file, created}`` objects or bare filenames."""
    if isinstance(entry, str):
        return entry, None
    return entry["file"], entry.get("created")


def filename_to_slug(filename: str) -> str:
    if not filename:
        return ""
    slug = re.sub(r"\.md$", "", filename, flags=re.IGNORECASE).lower()
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    return slug.strip("-")


def find_by_slug(entities, slug: str):
    for entity in entities:
        if filename_to_slug(entity.filename) == slug:
            return entity
    return None
