"""Template rendering engine for Quire.

This module uses Jinja2 to render theme layouts. It manages template
loading, the globals and filters themes can use, and layout lookup.

Key class:
- TemplateEngine: Loads layouts and renders them with site context.

Layouts are looked up by kind (``single``, ``list``, ``taxonomy``,
``term``, ``404``), preferring a section-specific layout such as
``posts/single.html.jinja`` over the generic one.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, Template, TemplateNotFound, select_autoescape
from markupsafe import Markup, escape

from .collections import Listing, TermCollection
from .config import SiteConfig
from .html_utils import join_root_url
from .renderers import Heading, pygments_css
from .utils import slugify

__all__ = ["TemplateEngine", "render_toc"]

LAYOUT_SUFFIXES = (".html.jinja", ".html")


def render_toc(headings: list[Heading]) -> Markup:
    """Render headings as a nested ``<ul>`` table of contents.

    Args:
        headings: Headings in document order.

    Returns:
        Markup-safe HTML, or empty Markup if there are no headings.
    """
    if not headings:
        return Markup("")

    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level

        # Close nested lists if going to a shallower level
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        elif not level_stack or level > level_stack[-1]:  # pragma: no branch
            html_parts.append("<ul>")
            level_stack.append(level)

        html_parts.append(
            f'<li><a href="#{escape(heading.id)}">{escape(Markup(heading.text).striptags())}</a>'
        )

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return Markup("".join(html_parts))


def _datefmt(value: datetime, fmt: str = "%Y-%m-%d") -> str:
    return value.strftime(fmt)


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        config: Site configuration, exposed to templates as ``site``.
        env: Jinja2 environment.
        listing: Every selected entry, exposed as ``listing``.
        terms: Tag term collection, exposed as ``tags``.
    """

    def __init__(self, layout_dirs: list[Path], config: SiteConfig, minify: bool = False):
        """Initialize the template engine.

        Args:
            layout_dirs: Directories searched for layouts, highest priority first.
            config: Site configuration.
            minify: Trim template whitespace.
        """
        self.config = config
        self.env = Environment(
            loader=FileSystemLoader([str(d) for d in layout_dirs]),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            trim_blocks=minify,
            lstrip_blocks=minify,
            keep_trailing_newline=True,
        )
        self.listing = Listing([])
        self.terms = TermCollection({})
        self._install_globals()

    def _install_globals(self) -> None:
        """Install global variables, functions and filters."""
        self.env.globals["site"] = self.config
        self.env.globals["menu"] = self.config.menu
        self.env.globals["social"] = self.config.social
        self.env.globals["params"] = self.config.params
        self.env.globals["listing"] = self.listing
        self.env.globals["tags"] = self.terms
        self.env.globals["url_for"] = self.url_for
        self.env.globals["term_url"] = self.term_url
        self.env.globals["pygments_css"] = pygments_css
        self.env.globals["render_toc"] = render_toc
        self.env.filters["datefmt"] = _datefmt
        self.env.filters["slugify"] = slugify

    def update_collections(self, listing: Listing, terms: TermCollection) -> None:
        """Replace the listing and tag collections visible to templates."""
        self.listing = listing
        self.terms = terms
        self.env.globals["listing"] = listing
        self.env.globals["tags"] = terms

    def url_for(self, path: str) -> str:
        """Generate a URL for a site path, applying base_url if configured."""
        if path.startswith(("http://", "https://", "//")):
            return path
        path = path if path.startswith("/") else f"/{path}"
        return join_root_url(self.config.base_url, path)

    @staticmethod
    def term_url(term: str) -> str:
        return f"/tags/{slugify(term)}/"

    def find_layout(self, kind: str, section: str = "") -> Template | None:
        """Return the most specific layout for kind, or None.

        Args:
            kind: Layout kind such as ``single`` or ``list``.
            section: Content section for a section-specific override.
        """
        names = []
        if section:
            names.extend(f"{section}/{kind}{suffix}" for suffix in LAYOUT_SUFFIXES)
        names.extend(f"{kind}{suffix}" for suffix in LAYOUT_SUFFIXES)
        for name in names:
            try:
                return self.env.get_template(name)
            except TemplateNotFound:
                continue
        return None

    def render(self, kind: str, context: dict[str, Any], section: str = "") -> str:
        """Render the layout for kind with context.

        Raises:
            TemplateNotFound: If the theme has no layout for kind.
        """
        template = self.find_layout(kind, section)
        if template is None:
            raise TemplateNotFound(f"{kind}.html.jinja")
        return template.render(**context)
