"""Content renderers for Quire.

Converts document bodies to HTML with mistune, adding heading anchors,
collecting a table of contents and highlighting fenced code with Pygments.

Key classes:
- Heading: A heading collected for the table of contents.
- MarkdownRenderer: Renders Markdown text to (html, headings).
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .html_utils import escape_html


@dataclass
class Heading:
    """One entry in a document's table of contents."""

    id: str
    text: str
    level: int


def heading_anchor(text: str) -> str:
    """Turn rendered heading HTML into an anchor such as ``getting-started``."""
    plain = re.sub(r"<[^>]+>", "", text).lower()
    words = re.findall(r"[\w-]+", plain)
    return "-".join(w.strip("-") for w in words if w.strip("-")) or "section"


class _HighlightRenderer(mistune.HTMLRenderer):
    """Adds heading anchors and Pygments highlighting to mistune's HTML.

    Repeated headings get ``-1``, ``-2`` suffixes so anchors stay unique
    within a document.
    """

    def __init__(self):
        super().__init__(escape=False)
        self.headings: list[Heading] = []
        self._seen: Counter[str] = Counter()

    def heading(self, text: str, level: int, **attrs) -> str:
        anchor = heading_anchor(text)
        repeats = self._seen[anchor]
        self._seen[anchor] += 1
        if repeats:
            anchor = f"{anchor}-{repeats}"
        self.headings.append(Heading(id=anchor, text=text, level=level))
        return f'<h{level} id="{anchor}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        lang = info.split()[0] if info else ""
        try:
            lexer = get_lexer_by_name(lang, stripall=True) if lang else None
        except ClassNotFound:
            lexer = None
        if lexer is not None:
            return highlight(code, lexer, HtmlFormatter(cssclass="highlight"))
        lang_class = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown content to HTML."""

    plugins = ["strikethrough", "footnotes", "table", "url"]

    def render(self, text: str) -> tuple[str, list[Heading]]:
        """Render Markdown text.

        Args:
            text: Markdown source.

        Returns:
            Tuple of (rendered HTML, headings for the TOC).
        """
        renderer = _HighlightRenderer()
        to_html = mistune.create_markdown(renderer=renderer, plugins=self.plugins)
        return to_html(text), renderer.headings


def pygments_css(style: str = "default") -> str:
    """Return Pygments CSS rules for the ``.highlight`` class."""
    return HtmlFormatter(style=style).get_style_defs(".highlight")
