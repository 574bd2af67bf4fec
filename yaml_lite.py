"""Front matter for thought trains and labs: `key: value` and `key: [a, b]` lines."""

import re

_BLOCK_RE = re.compile(r"\A---\n(.*?)\n---[ \t]*(?=\n|\Z)", re.DOTALL)
_QUOTE_RE = re.compile(r"^[\"']|[\"']$")


def _strip_quotes(value: str) -> str:
    return _QUOTE_RE.sub("", value)


def _parse_value(value: str):
    if value.startswith("[") and value.endswith("]"):
        items = (_strip_quotes(item.strip()) for item in value[1:-1].split(","))
        return [item for item in items if item]
    return _strip_quotes(value)


def extract_front_matter(content: str) -> tuple[dict, str]:
    match = _BLOCK_RE.match(content)
    if not match:
        return {}, content

    front_matter = {}
    for line in match.group(1).split("\n"):
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip()
        value = value.strip()
        if not key or not value:
            continue
        front_matter[key] = _parse_value(value)

    body = content[match.end():].strip()
    return front_matter, body
