"""Plain-text rendering of HTML-only mail bodies."""

from __future__ import annotations

import re
from html.parser import HTMLParser

_BLOCK_TAGS = frozenset(
    {
        "address", "article", "blockquote", "dd", "div", "dl", "dt", "footer",
        "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr", "li", "ol", "p",
        "pre", "section", "table", "tbody", "thead", "tfoot", "tr", "ul",
    }
)
_CELL_TAGS = frozenset({"td", "th"})
_SKIPPED_TAGS = frozenset({"script", "style", "head", "title"})

_SPACE_RUN_RE = re.compile(r"[^\S\n]+")
_DATA_SPACE_RE = re.compile(r"\s+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")


def html_to_text(html: str) -> str:
    """Convert an HTML body to text, keeping one line per block or row.

    Block-level tags and ``<br>`` become line breaks, table cells are
    separated by a space, script and style content is dropped, and
    entities are decoded.
    """
    converter = _HTMLTextConverter()
    converter.feed(html)
    converter.close()
    return converter.get_text()


class _HTMLTextConverter(HTMLParser):
    """HTMLParser subclass that renders block structure as newlines."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._parts: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _SKIPPED_TAGS:
            self._skip_depth += 1
        elif tag == "br" or tag in _BLOCK_TAGS:
            self._parts.append("\n")
        elif tag in _CELL_TAGS:
            self._parts.append(" ")

    def handle_startendtag(
        self, tag: str, attrs: list[tuple[str, str | None]]
    ) -> None:
        if tag in ("br", "hr"):
            self._parts.append("\n")

    def handle_endtag(self, tag: str) -> None:
        if tag in _SKIPPED_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
        elif tag in _BLOCK_TAGS:
            self._parts.append("\n")

    def handle_data(self, data: str) -> None:
        if not self._skip_depth:
            # Source whitespace is insignificant; tags decide line breaks.
            self._parts.append(_DATA_SPACE_RE.sub(" ", data))

    def get_text(self) -> str:
        text = _SPACE_RUN_RE.sub(" ", "".join(self._parts))
        lines = (line.strip() for line in text.split("\n"))
        return _BLANK_LINES_RE.sub("\n", "\n".join(lines)).strip()
