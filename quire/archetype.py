"""Archetype provider for Quire.

Creates new documents pre-populated with default frontmatter. Archetypes
are Jinja2 templates that render to a frontmatter block; a project can
override the bundled default per section (``archetypes/posts.md.jinja``)
or globally (``archetypes/default.md.jinja``).

Every new document starts as a draft with an empty body, and an existing
file is never overwritten.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path, PurePosixPath

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from .config import SiteConfig
from .document import Document, parse_document, split_frontmatter
from .errors import AlreadyExists, ConfigurationError, MalformedDocument
from .utils import slugify, titleize

logger = logging.getLogger(__name__)

BUNDLED_ARCHETYPES = Path(__file__).parent / "archetypes"


def normalize_target(target: str) -> PurePosixPath:
    """Turn an author-supplied target into a safe relative ``.md`` path.

    Raises:
        ValueError: If the target is empty, absolute or escapes the content dir.
    """
    cleaned = target.strip().replace("\\", "/")
    rel = PurePosixPath(cleaned)
    if not cleaned or rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"Invalid content path: {target!r}")
    if rel.suffix.lower() != ".md":
        rel = rel.with_name(f"{rel.name}.md")
    return rel


class ArchetypeProvider:
    """Creates new documents from archetype templates.

    Attributes:
        project_root: Project directory.
        content_dir: Directory new documents are created in.
        env: Jinja2 environment over project and bundled archetypes.
    """

    def __init__(self, project_root: Path, config: SiteConfig):
        self.project_root = project_root
        self.content_dir = project_root / config.content_dir
        self.env = Environment(
            loader=FileSystemLoader(
                [str(project_root / config.archetype_dir), str(BUNDLED_ARCHETYPES)]
            ),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def create(self, target: str, now: datetime | None = None) -> Document:
        """Create a new draft document at target.

        Args:
            target: Path relative to the content directory, with or without ``.md``.
            now: Creation time; defaults to the current local time.

        Returns:
            The new Document.

        Raises:
            AlreadyExists: If a file already exists at the target path.
            ValueError: If the target path is invalid.
            ConfigurationError: If the archetype is broken or not a draft.
        """
        rel = normalize_target(target)
        path = self.content_dir.joinpath(*rel.parts)
        if path.exists():
            raise AlreadyExists(path)

        section = rel.parts[0] if len(rel.parts) > 1 else ""
        created = (now or datetime.now().astimezone()).replace(microsecond=0)
        text = self._render(
            section,
            {
                "title": titleize(rel.stem),
                "date": created.isoformat(),
                "slug": slugify(rel.stem),
                "section": section,
            },
        )
        document = self._validate(text, path)

        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(path, "x", encoding="utf-8", newline="\n") as f:
                f.write(text)
        except FileExistsError:
            raise AlreadyExists(path) from None
        logger.debug("Created %s", path)
        return document

    def _render(self, section: str, context: dict) -> str:
        names = [f"{section}.md.jinja"] if section else []
        names.append("default.md.jinja")
        try:
            template = self.env.select_template(names)
            rendered = template.render(**context)
        except TemplateError as exc:
            raise ConfigurationError(f"Archetype could not be rendered: {exc}") from exc
        parts = split_frontmatter(rendered)
        if parts is None:
            raise ConfigurationError(f"Archetype {template.name} has no frontmatter block")
        source, _ = parts
        return f"---\n{source}---\n"

    def _validate(self, text: str, path: Path) -> Document:
        try:
            document = parse_document(text, path, self.content_dir)
        except MalformedDocument as exc:
            raise ConfigurationError(f"Archetype produces invalid frontmatter: {exc.reason}") from exc
        if not document.draft:
            raise ConfigurationError("Archetype must create drafts (draft: true)")
        return document
