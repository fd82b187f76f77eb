"""Theme-based site renderer for Quire.

ThemeRenderer is the default Renderer: it renders the selected listing
through a Jinja2 theme into a static directory tree.

Output layout:
- ``/<section>/<slug>/index.html`` for every selected document
- ``/index.html``, ``/page/N/index.html`` for the paginated home listing
- ``/tags/index.html`` and ``/tags/<term>/index.html`` when tags are enabled
- ``/404.html`` when the theme has a 404 layout
- ``/index.xml`` and ``/sitemap.xml`` when base_url is set
- static files from the theme, then the project

Themes are looked up in the project's ``themes/<name>/`` first, then among
the themes bundled with Quire. A project ``layouts/`` directory overrides
individual theme layouts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from jinja2 import TemplateNotFound, TemplateSyntaxError
from markupsafe import Markup

from .assets import AssetPipeline
from .collections import Listing, TermCollection
from .config import SiteConfig
from .errors import RenderFailure
from .feeds import FeedRegistry, create_default_feed_registry
from .html_utils import absolutize_html_urls
from .renderers import MarkdownRenderer
from .selection import BuildMode, ListingEntry, build_taxonomy, paginate
from .templates import TemplateEngine
from .utils import slugify

logger = logging.getLogger(__name__)

BUNDLED_THEMES = Path(__file__).parent / "themes"

REQUIRED_LAYOUTS = ("single", "list")


@dataclass(frozen=True)
class Site:
    """Everything a renderer needs for one build.

    Attributes:
        config: Immutable site configuration.
        entries: Selected documents in listing order.
        mode: Build mode the entries were selected for.
        project_root: Project directory, for project-level overrides.
    """

    config: SiteConfig
    entries: tuple[ListingEntry, ...]
    mode: BuildMode
    project_root: Path

    @property
    def minify(self) -> bool:
        return self.mode is BuildMode.PRODUCTION


def resolve_theme_dir(project_root: Path, name: str) -> Path:
    """Locate a theme by name.

    Raises:
        RenderFailure: If no theme with that name exists.
    """
    for candidate in (project_root / "themes" / name, BUNDLED_THEMES / name):
        if (candidate / "layouts").is_dir():
            return candidate
    raise RenderFailure(f"Theme {name!r} not found (looked in themes/ and bundled themes)")


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    if isinstance(exc, TemplateSyntaxError):
        where = f" in {exc.name}" if exc.name else ""
        return f"Template syntax error{where} on line {exc.lineno}: {exc.message}"
    if isinstance(exc, TemplateNotFound):
        return f"Layout not found: {exc.name}"
    error_type = type(exc).__name__
    if error_type == "UndefinedError":
        return f"Undefined variable: {exc}"
    return f"{error_type}: {exc}"


class ThemeRenderer:
    """Renders a Site through a Jinja2 theme.

    Attributes:
        markdown: Markdown renderer for document bodies.
        feeds: Feed generators run after the pages.
    """

    def __init__(
        self,
        markdown: MarkdownRenderer | None = None,
        feeds: FeedRegistry | None = None,
    ):
        self.markdown = markdown or MarkdownRenderer()
        self.feeds = feeds or create_default_feed_registry()

    def render_site(self, site: Site, output_dir: Path) -> list[Path]:
        """Render every page, feed and static file for site.

        Raises:
            RenderFailure: On a missing theme or layout, or any error while
                rendering a page.
        """
        config = site.config
        theme_dir = resolve_theme_dir(site.project_root, config.theme)
        engine = TemplateEngine(
            [site.project_root / "layouts", theme_dir / "layouts"],
            config,
            minify=site.minify,
        )
        for kind in REQUIRED_LAYOUTS:
            if engine.find_layout(kind) is None:
                raise RenderFailure(
                    f"Theme {config.theme!r} has no {kind!r} layout", theme_dir / "layouts"
                )

        entries = list(site.entries)
        terms = (
            build_taxonomy(entries, "tags") if "tags" in config.taxonomies else {}
        )
        engine.update_collections(Listing(entries), TermCollection(terms))

        pagers = paginate(entries, config.paginate)
        self._check_collisions(entries, pagers, terms)

        written: list[Path] = []
        for index, entry in enumerate(entries):
            newer = entries[index - 1] if index > 0 else None
            older = entries[index + 1] if index + 1 < len(entries) else None
            written.append(self._render_entry(engine, site, entry, newer, older, output_dir))

        for pager in pagers:
            html = self._render(engine, "list", {"pager": pager, "entries": pager.entries})
            written.append(self._write(output_dir, pager.url, html, config))

        if terms:
            html = self._render(engine, "taxonomy", {"terms": engine.terms})
            written.append(self._write(output_dir, "/tags/", html, config))
            for term, term_entries in terms.items():
                html = self._render(
                    engine, "term", {"term": term, "entries": Listing(term_entries)}
                )
                written.append(
                    self._write(output_dir, f"/tags/{slugify(term)}/", html, config)
                )

        if engine.find_layout("404") is not None:
            html = self._render(engine, "404", {})
            target = output_dir / "404.html"
            self._write_file(target, absolutize_html_urls(html, config.base_url))
            written.append(target)

        written.extend(self.feeds.generate_all(output_dir, entries, config))
        sources = [theme_dir / "static", site.project_root / config.static_dir]
        written.extend(AssetPipeline(sources, output_dir, minify=site.minify).run())
        logger.debug("Rendered %d files with theme %r", len(written), config.theme)
        return written

    @staticmethod
    def _check_collisions(entries, pagers, terms) -> None:
        """Fail when two outputs would be written to the same URL."""
        reserved = {pager.url for pager in pagers}
        if terms:
            reserved.add("/tags/")
            reserved.update(f"/tags/{slugify(term)}/" for term in terms)
        seen: set[str] = set()
        for entry in entries:
            if entry.url in reserved or entry.url in seen:
                raise RenderFailure(
                    f"Output URL {entry.url} is claimed more than once", entry.document.path
                )
            seen.add(entry.url)

    def _render_entry(
        self,
        engine: TemplateEngine,
        site: Site,
        entry: ListingEntry,
        newer: ListingEntry | None,
        older: ListingEntry | None,
        output_dir: Path,
    ) -> Path:
        doc = entry.document
        try:
            body, toc = self.markdown.render(doc.body)
            html = engine.render(
                "single",
                {
                    "page": doc,
                    "entry": entry,
                    "content": Markup(body),
                    "toc": toc,
                    "summary": doc.summary(site.config.summary_length),
                    "newer": newer,
                    "older": older,
                },
                section=doc.section,
            )
        except RenderFailure:
            raise
        except Exception as exc:
            raise RenderFailure(_format_error_message(exc), doc.path, exc) from exc
        return self._write(output_dir, doc.url, html, site.config)

    def _render(self, engine: TemplateEngine, kind: str, context: dict) -> str:
        try:
            return engine.render(kind, context)
        except Exception as exc:
            raise RenderFailure(_format_error_message(exc), original_error=exc) from exc

    def _write(self, output_dir: Path, url: str, html: str, config: SiteConfig) -> Path:
        url_path = url.strip("/")
        target = output_dir / url_path / "index.html" if url_path else output_dir / "index.html"
        self._write_file(target, absolutize_html_urls(html, config.base_url))
        return target

    @staticmethod
    def _write_file(target: Path, content: str) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
