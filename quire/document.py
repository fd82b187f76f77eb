"""Document model for Quire.

A Document is one authored post: a YAML frontmatter header followed by a
Markdown body. This module parses raw file text into a typed Frontmatter
record and a Document, deriving slug, URL and section from the file's place
in the content directory.

Key classes:
- Frontmatter: Typed record of the recognized frontmatter keys plus extras.
- Document: Immutable parsed document.

Key functions:
- split_frontmatter: Separate the YAML header from the body.
- coerce_date: Normalize YAML/ISO-8601 values to comparable datetimes.
- parse_document: Build a Document from file text, raising MalformedDocument.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from .errors import MalformedDocument
from .utils import first_paragraph, slugify, titleize

FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^---[ \t]*\r?$\n?", re.DOTALL | re.MULTILINE
)

RECOGNIZED_KEYS = ("title", "date", "draft", "tags", "description")


def split_frontmatter(text: str) -> tuple[str, str] | None:
    """Split raw document text into frontmatter source and body.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (YAML source, body) or None when the text has no header.
    """
    text = text.lstrip("\ufeff")
    match = FRONTMATTER_RE.match(text)
    if not match:
        return None
    return match.group(1), text[match.end() :]


def coerce_date(value: Any) -> datetime:
    """Normalize a frontmatter date to a naive datetime.

    Bare dates become midnight. Timezone-aware values are converted to UTC
    and stripped of tzinfo so every document date compares with every other.

    Args:
        value: A datetime, date or ISO-8601 string.

    Returns:
        Naive datetime.

    Raises:
        ValueError: If the value cannot be interpreted as a date.
    """
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = f"{raw[:-1]}+00:00"
        result = datetime.fromisoformat(raw)
    else:
        raise ValueError(f"expected an ISO-8601 date, got {type(value).__name__}")
    if result.tzinfo is not None:
        result = result.astimezone(timezone.utc).replace(tzinfo=None)
    return result


def _coerce_tags(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        value = [value]
    if not isinstance(value, list):
        raise ValueError("'tags' must be a list of strings")
    seen: list[str] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            raise ValueError(f"invalid tag {item!r}")
        tag = str(item).strip()
        if tag and tag not in seen:
            seen.append(tag)
    return tuple(seen)


def _coerce_text(key: str, value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValueError(f"'{key}' must be a string")
    return str(value)


@dataclass(frozen=True)
class Frontmatter:
    """Typed frontmatter record.

    Unknown keys are kept verbatim in ``extra`` and handed to the theme as
    page params without interpretation.
    """

    date: datetime
    title: str | None = None
    draft: bool = True
    tags: tuple[str, ...] = ()
    description: str = ""
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Frontmatter:
        """Validate a parsed YAML mapping.

        Raises:
            ValueError: If a recognized key is missing or has the wrong type.
        """
        if data.get("date") is None:
            raise ValueError("missing required field 'date'")
        try:
            when = coerce_date(data["date"])
        except ValueError as exc:
            raise ValueError(f"invalid 'date': {exc}") from exc

        draft = data.get("draft", True)
        if not isinstance(draft, bool):
            raise ValueError("'draft' must be true or false")

        extra = {k: v for k, v in data.items() if k not in RECOGNIZED_KEYS}
        return cls(
            date=when,
            title=_coerce_text("title", data.get("title")),
            draft=draft,
            tags=_coerce_tags(data.get("tags")),
            description=_coerce_text("description", data.get("description")) or "",
            extra=MappingProxyType(extra),
        )


@dataclass(frozen=True)
class Document:
    """A single authored post.

    Attributes:
        title: Human-readable title.
        date: Publication date, used for ordering.
        draft: Whether the document is excluded from production builds.
        tags: Unique tags in order of first appearance.
        description: Short description for listings and metadata.
        body: Markdown body.
        path: Source file path.
        slug: URL-friendly slug.
        url: Root-relative URL with trailing slash.
        section: First folder under the content directory, or "".
        extra: Unrecognized frontmatter keys.
    """

    title: str
    date: datetime
    draft: bool
    tags: tuple[str, ...]
    description: str
    body: str
    path: Path
    slug: str
    url: str
    section: str
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def summary(self, limit: int = 160) -> str:
        """Return the description, or the first paragraph of the body."""
        return self.description or first_paragraph(self.body, limit)


def derive_url(rel: Path, slug: str) -> str:
    """Derive the URL for a document from its path relative to the content dir.

    ``index.md`` maps to its folder; every other file gets its own folder.

    Args:
        rel: Relative path from the content directory.
        slug: URL-friendly slug.

    Returns:
        URL path for the document.
    """
    segments = [slugify(p) for p in rel.parent.parts if p]
    url_parts = segments if slug == "index" else segments + [slug]
    path = "/".join(url_parts)
    return f"/{path}/" if path else "/"


def parse_document(text: str, path: Path, content_dir: Path) -> Document:
    """Parse raw document text into a Document.

    Args:
        text: Raw file content.
        path: Path to the source file.
        content_dir: Root of the content store, used for URL derivation.

    Returns:
        Parsed Document.

    Raises:
        MalformedDocument: For a missing or unparseable header, a missing
            date, or a recognized key with the wrong type.
    """
    parts = split_frontmatter(text)
    if parts is None:
        raise MalformedDocument(path, "missing frontmatter block")
    source, body = parts
    try:
        data = yaml.safe_load(source)
    except (yaml.YAMLError, ValueError) as exc:
        raise MalformedDocument(path, f"invalid frontmatter YAML: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedDocument(path, "frontmatter must be a mapping")
    try:
        meta = Frontmatter.from_mapping(data)
    except ValueError as exc:
        raise MalformedDocument(path, str(exc)) from exc

    rel = path.relative_to(content_dir)
    slug = slugify(path.stem)
    section = slugify(rel.parts[0]) if len(rel.parts) > 1 else ""
    return Document(
        title=meta.title or titleize(path.name),
        date=meta.date,
        draft=meta.draft,
        tags=meta.tags,
        description=meta.description,
        body=body,
        path=path,
        slug=slug,
        url=derive_url(rel, slug),
        section=section,
        extra=meta.extra,
    )
