"""Render note bodies (Bear-flavoured markdown) to HTML.

This is not a CommonMark implementation. It is a fixed sequence of regex
and line passes, and the order is part of the output format:

    1. iframes are lifted out verbatim and replaced by placeholders
    2. ``&``, ``<`` and ``>`` are escaped everywhere else
    3. fenced code blocks, then 4. inline code (both stashed)
    5. ``> `` blockquotes, rendered with a reduced pipeline
    6. headers (h3, h2, h1)
    7. images, with relative paths moved under the asset root
    8. links
    9. bold-italic, bold, italic
    10. strikethrough
    11. horizontal rules
    12. lists (task, unordered, ordered)
    13. paragraphs
    14. stashed code and iframes are put back

Every pass passes unmatched text through untouched, so the renderer has
no failure mode.
"""

import re
from urllib.parse import quote, unquote

ASSET_ROOT = "/posts/"

IFRAME_MARK = "\x00\x01IFRAMEBLOCK"
CODE_MARK = "\x00\x02CODEBLOCK"
INLINE_CODE_MARK = "\x00\x03CODESPAN"

_IFRAME_RE = re.compile(r"<iframe[^>]*>.*?</iframe>", re.DOTALL)
_FENCE_RE = re.compile(r"```(\w*)\n(.*?)```", re.DOTALL)
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")

_H3_RE = re.compile(r"^###[ \t]+(.*)$", re.MULTILINE)
_H2_RE = re.compile(r"^##[ \t]+(.*)$", re.MULTILINE)
_H1_RE = re.compile(r"^#[ \t]+(.*)$", re.MULTILINE)

_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")

_BOLD_ITALIC_STAR_RE = re.compile(r"\*\*\*(.+?)\*\*\*")
_BOLD_ITALIC_UNDERSCORE_RE = re.compile(r"___(.+?)___")
_BOLD_STAR_RE = re.compile(r"\*\*(.+?)\*\*")
_BOLD_UNDERSCORE_RE = re.compile(r"__(.+?)__")
_ITALIC_STAR_RE = re.compile(r"\*(?!\s)([^*\n]+?)\*")
_ITALIC_UNDERSCORE_RE = re.compile(r"_(.+?)_")
_STRIKE_RE = re.compile(r"~~(.+?)~~")

_HR_DASH_RE = re.compile(r"^---$", re.MULTILINE)
_HR_STAR_RE = re.compile(r"^\*\*\*$", re.MULTILINE)

_CHECKBOX_RE = re.compile(r"^\s*[-*+]\s+\[([ xX])\]\s+(.+)$")
_UNORDERED_RE = re.compile(r"^\s*[-*+]\s+(.+)$")
_ORDERED_RE = re.compile(r"^\s*\d+\.\s+(.+)$")

_PARAGRAPH_SPLIT_RE = re.compile(r"\n[ \t]*\n")
_BLOCK_PREFIXES = ("<h", "<ul", "<ol", "<blockquote", "<pre", "<hr", "<p>", IFRAME_MARK, CODE_MARK)

_MALFORMED_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")
# Characters encodeURIComponent leaves alone, besides letters and digits.
_URI_COMPONENT_SAFE = "-_.!~*'()"


class _Stash:
    """Fragments hidden behind numbered placeholder tokens."""

    def __init__(self, mark: str, close: str):
        self.mark = mark
        self.close = close
        self.fragments = []
        self._token_re = re.compile(re.escape(mark) + r"(\d+)" + re.escape(close))

    def put(self, fragment: str) -> str:
        self.fragments.append(fragment)
        return f"{self.mark}{len(self.fragments)}{self.close}"

    def restore(self, text: str) -> str:
        def replace(m):
            index = int(m.group(1)) - 1
            if 0 <= index < len(self.fragments):
                return self.fragments[index]
            return m.group(0)

        return self._token_re.sub(replace, text)


def _decode_uri_component(value: str) -> str:
    if _MALFORMED_ESCAPE_RE.search(value):
        raise ValueError(f"malformed percent escape in {value!r}")
    return unquote(value, errors="strict")


def _encode_path_segments(path: str) -> str:
    return "/".join(quote(segment, safe=_URI_COMPONENT_SAFE) for segment in path.split("/"))


def resolve_asset_src(src: str, asset_root: str = ASSET_ROOT) -> str:
    if src.startswith(("/", "http://", "https://", "data:")):
        return src
    try:
        return asset_root + _encode_path_segments(_decode_uri_component(src))
    except (ValueError, UnicodeError):
        pass
    try:
        return asset_root + _encode_path_segments(src)
    except UnicodeError:
        return asset_root + src


def _inside_tag(text: str, pos: int) -> bool:
    return text.rfind("<", 0, pos) > text.rfind(">", 0, pos)


# --- stages ---------------------------------------------------------------

def _protect_iframes(text: str, iframes: _Stash) -> str:
    return _IFRAME_RE.sub(lambda m: iframes.put(m.group(0)), text)


def _escape_html(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _fenced_code(text: str, code: _Stash) -> str:
    return _FENCE_RE.sub(
        lambda m: code.put(f'<pre><code class="language-{m.group(1)}">{m.group(2)}</code></pre>'),
        text,
    )


def _inline_code(text: str, code: _Stash) -> str:
    return _INLINE_CODE_RE.sub(lambda m: code.put(f"<code>{m.group(1)}</code>"), text)


def _headers(text: str) -> str:
    text = _H3_RE.sub(r"<h3>\1</h3>", text)
    text = _H2_RE.sub(r"<h2>\1</h2>", text)
    return _H1_RE.sub(r"<h1>\1</h1>", text)


def _images(text: str, asset_root: str) -> str:
    def replace(m):
        src = resolve_asset_src(m.group(2), asset_root)
        return f'<img src="{src}" alt="{m.group(1)}" loading="lazy">'

    return _IMAGE_RE.sub(replace, text)


def _links(text: str) -> str:
    return _LINK_RE.sub(r'<a href="\2" target="_blank" rel="noopener noreferrer">\1</a>', text)


def _italic_underscore(text: str) -> str:
    # Underscores inside generated tags (target="_blank", src paths) are not emphasis.
    out = []
    pos = 0
    while True:
        m = _ITALIC_UNDERSCORE_RE.search(text, pos)
        if m is None:
            break
        if _inside_tag(text, m.start()) or _inside_tag(text, m.end()):
            out.append(text[pos:m.start() + 1])
            pos = m.start() + 1
            continue
        out.append(text[pos:m.start()])
        out.append(f"<em>{m.group(1)}</em>")
        pos = m.end()
    out.append(text[pos:])
    return "".join(out)


def _emphasis(text: str) -> str:
    text = _BOLD_ITALIC_STAR_RE.sub(r"<strong><em>\1</em></strong>", text)
    text = _BOLD_ITALIC_UNDERSCORE_RE.sub(r"<strong><em>\1</em></strong>", text)
    text = _BOLD_STAR_RE.sub(r"<strong>\1</strong>", text)
    text = _BOLD_UNDERSCORE_RE.sub(r"<strong>\1</strong>", text)
    text = _ITALIC_STAR_RE.sub(r"<em>\1</em>", text)
    return _italic_underscore(text)


def _strikethrough(text: str) -> str:
    return _STRIKE_RE.sub(r"<del>\1</del>", text)


def _horizontal_rules(text: str) -> str:
    text = _HR_DASH_RE.sub("<hr>", text)
    return _HR_STAR_RE.sub("<hr>", text)


def _list_item(line: str):
    checkbox = _CHECKBOX_RE.match(line)
    if checkbox:
        checked = checkbox.group(1).lower() == "x"
        css = "task-item completed" if checked else "task-item"
        box = '<input type="checkbox" checked disabled>' if checked else '<input type="checkbox" disabled>'
        return "unordered", f'<li class="{css}">{box} {checkbox.group(2)}</li>'
    unordered = _UNORDERED_RE.match(line)
    if unordered:
        return "unordered", f"<li>{unordered.group(1)}</li>"
    ordered = _ORDERED_RE.match(line)
    if ordered:
        return "ordered", f"<li>{ordered.group(1)}</li>"
    return None, None


def _lists(text: str) -> str:
    out = []
    items = []
    kind = None

    def flush():
        nonlocal kind
        if items:
            tag = "ol" if kind == "ordered" else "ul"
            out.append(f"<{tag}>{''.join(items)}</{tag}>")
            items.clear()
        kind = None

    for line in text.split("\n"):
        if not line.strip():
            flush()
            out.append("")
            continue
        if line.startswith("<"):
            flush()
            out.append(line)
            continue
        item_kind, item = _list_item(line)
        if item_kind is None:
            flush()
            out.append(line)
            continue
        if kind != item_kind:
            flush()
        kind = item_kind
        items.append(item)
    flush()
    return "\n".join(out)


def _paragraphs(text: str) -> str:
    blocks = []
    for block in _PARAGRAPH_SPLIT_RE.split(text):
        block = block.strip()
        if not block:
            continue
        if block.startswith(_BLOCK_PREFIXES):
            blocks.append(block)
        else:
            blocks.append("<p>" + block.replace("\n", "<br>") + "</p>")
    return "\n".join(blocks)


def _inline_markup(text: str, asset_root: str) -> str:
    text = _headers(text)
    text = _images(text, asset_root)
    text = _links(text)
    text = _emphasis(text)
    return _strikethrough(text)


def _blockquotes(text: str, asset_root: str) -> str:
    out = []
    quoted = []

    def flush():
        if quoted:
            inner = _inline_markup("\n".join(quoted), asset_root)
            inner = _paragraphs(_lists(inner))
            out.append(f"<blockquote>{inner}</blockquote>")
            quoted.clear()

    for line in text.split("\n"):
        if line.startswith("&gt; "):
            quoted.append(line[len("&gt; "):])
        else:
            flush()
            out.append(line)
    flush()
    return "\n".join(out)


def render_markdown(text: str, asset_root: str = ASSET_ROOT) -> str:
    iframes = _Stash(IFRAME_MARK, "\x01\x00")
    code = _Stash(CODE_MARK, "\x02\x00")
    spans = _Stash(INLINE_CODE_MARK, "\x03\x00")

    html = _protect_iframes(text, iframes)
    html = _escape_html(html)
    html = _fenced_code(html, code)
    html = _inline_code(html, spans)
    html = _blockquotes(html, asset_root)
    html = _headers(html)
    html = _images(html, asset_root)
    html = _links(html)
    html = _emphasis(html)
    html = _strikethrough(html)
    html = _horizontal_rules(html)
    html = _lists(html)
    html = _paragraphs(html)

    html = spans.restore(code.restore(html))
    return iframes.restore(html)
