"""Feed generation for Quire.

Generates the RSS feed (index.xml) and sitemap.xml from the selected
listing. Feed content depends only on the listing and configuration, never
on the wall clock, so repeated builds produce identical files.

Classes:
    FeedGenerator: Base class for feed generators.
    SitemapGenerator: Generates sitemap.xml files.
    RSSGenerator: Generates RSS 2.0 feed files.
    FeedRegistry: Registry for managing feed generators.

Functions:
    create_default_feed_registry: Create a registry with default generators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import timezone
from email.utils import format_datetime
from pathlib import Path

from .config import SiteConfig
from .html_utils import escape_html
from .selection import ListingEntry

RSS_ITEM_LIMIT = 20


class FeedGenerator(ABC):
    """Abstract base class for feed generators."""

    @property
    @abstractmethod
    def filename(self) -> str:
        """Return the output filename for this feed."""
        ...

    @abstractmethod
    def generate(
        self, entries: Sequence[ListingEntry], config: SiteConfig
    ) -> str | None:
        """Generate feed content.

        Args:
            entries: Ordered listing to include.
            config: Site configuration.

        Returns:
            Feed content, or None when the feed cannot be generated
            (no base_url configured).
        """
        ...

    def write(
        self, output_dir: Path, entries: Sequence[ListingEntry], config: SiteConfig
    ) -> Path | None:
        """Generate and write the feed.

        Returns:
            Path written, or None if skipped.
        """
        content = self.generate(entries, config)
        if content is None:
            return None
        output_path = output_dir / self.filename
        with open(output_path, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        return output_path


def _rfc822(entry: ListingEntry) -> str:
    return format_datetime(entry.document.date.replace(tzinfo=timezone.utc))


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml following the sitemaps.org protocol."""

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(
        self, entries: Sequence[ListingEntry], config: SiteConfig
    ) -> str | None:
        base_url = config.base_url.rstrip("/")
        if not base_url:
            return None
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        if entries:
            newest = entries[0].document.date.strftime("%Y-%m-%d")
            lines.append(f"  <url><loc>{base_url}/</loc><lastmod>{newest}</lastmod></url>")
        for entry in entries:
            loc = escape_html(f"{base_url}{entry.url}")
            lastmod = entry.document.date.strftime("%Y-%m-%d")
            lines.append(f"  <url><loc>{loc}</loc><lastmod>{lastmod}</lastmod></url>")
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed of the newest entries.

    ``lastBuildDate`` is the date of the newest entry.
    """

    @property
    def filename(self) -> str:
        return "index.xml"

    def generate(
        self, entries: Sequence[ListingEntry], config: SiteConfig
    ) -> str | None:
        base_url = config.base_url.rstrip("/")
        if not base_url:
            return None

        items = []
        for entry in entries[:RSS_ITEM_LIMIT]:
            doc = entry.document
            link = escape_html(f"{base_url}{doc.url}")
            description = escape_html(doc.summary(config.summary_length) or doc.title)
            categories = "".join(
                f"<category>{escape_html(tag)}</category>" for tag in doc.tags
            )
            items.append(
                f"<item><title>{escape_html(doc.title)}</title><link>{link}</link>"
                f"<guid>{link}</guid><description>{description}</description>"
                f"{categories}<pubDate>{_rfc822(entry)}</pubDate></item>"
            )

        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{escape_html(config.title)}</title>",
            f"<link>{escape_html(base_url)}/</link>",
            f"<description>{escape_html(config.title)}</description>",
            f"<language>{escape_html(config.language)}</language>",
        ]
        if entries:
            rss.append(f"<lastBuildDate>{_rfc822(entries[0])}</lastBuildDate>")
        rss.extend(items)
        rss.append("</channel></rss>")
        return "\n".join(rss) + "\n"


class FeedRegistry:
    """Registry for feed generators run at the end of a render."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(
        self, output_dir: Path, entries: Sequence[ListingEntry], config: SiteConfig
    ) -> list[Path]:
        """Generate all registered feeds.

        Returns:
            Paths of the feeds that were written.
        """
        written = []
        for generator in self._generators:
            path = generator.write(output_dir, entries, config)
            if path is not None:
                written.append(path)
        return written


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with the sitemap and RSS generators."""
    registry = FeedRegistry()
    registry.register(SitemapGenerator())
    registry.register(RSSGenerator())
    return registry
