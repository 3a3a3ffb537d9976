"""Plain-text helpers shared by the extractors and source adapters."""

from __future__ import annotations

from html.parser import HTMLParser

_BLOCK_TAGS = frozenset(
    {"br", "p", "div", "tr", "li", "table", "h1", "h2", "h3", "h4", "h5", "h6"}
)


def strip_html_tags(html: str) -> str:
    """Remove HTML tags, returning only text content.

    Block-level elements end with a newline so that line-based extractors
    still see one label per line.
    """
    stripper = _HTMLTagStripper()
    stripper.feed(html)
    stripper.close()
    return stripper.get_text()


def first_lines(text: str, count: int) -> str:
    """Join the first ``count`` lines of ``text`` with spaces."""
    return " ".join(text.split("\n")[:count])


class _HTMLTagStripper(HTMLParser):
    """HTMLParser subclass that strips tags and returns text."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._parts: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in ("script", "style"):
            self._skip_depth += 1
        elif tag == "br":
            self._parts.append("\n")

    def handle_endtag(self, tag: str) -> None:
        if tag in ("script", "style"):
            self._skip_depth = max(0, self._skip_depth - 1)
        elif tag in _BLOCK_TAGS:
            self._parts.append("\n")

    def handle_data(self, data: str) -> None:
        if not self._skip_depth:
            self._parts.append(data)

    def get_text(self) -> str:
        lines = (line.strip() for line in "".join(self._parts).split("\n"))
        return "\n".join(line for line in lines if line)
