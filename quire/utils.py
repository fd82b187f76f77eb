"""Utility functions for Quire.

String, path and directory helpers shared across the pipeline.

Key functions:
    slugify: Convert filenames to URL slugs.
    titleize: Convert filenames or slugs to human-readable titles.
    first_paragraph: Plain-text summary of a Markdown body.
    is_markdown: Check if a path is a Markdown file.
    is_hidden: Check if a path should be skipped during discovery.
    ensure_clean_dir: Ensure a directory exists and is empty.
    copy_tree: Copy a directory tree in a deterministic order.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path


def _strip_date_prefix(name: str) -> str:
    parts = name.split("-")
    if len(parts) >= 4 and all(p.isdigit() for p in parts[:3]):
        return "-".join(parts[3:])
    return name


def slugify(name: str) -> str:
    """Convert filename (without extension) to slug, dropping date prefix.

    Args:
        name: Filename stem.

    Returns:
        URL-friendly slug.

    Examples:
        >>> slugify("2026-01-15-Hello World")
        'hello-world'
    """
    cleaned = _strip_date_prefix(name)
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Convert a filename or slug to a human-readable title.

    Removes date prefixes (YYYY-MM-DD), replaces hyphens and underscores
    with spaces, and capitalizes each word.

    Args:
        filename: Filename with or without extension.

    Returns:
        Human-readable title string.

    Examples:
        >>> titleize("2026-01-15-crl-sharding.md")
        'Crl Sharding'

        >>> titleize("event-driven-revocation")
        'Event Driven Revocation'
    """
    base = Path(filename).stem if filename.endswith(".md") else Path(filename).name
    base = _strip_date_prefix(base)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def first_paragraph(text: str, limit: int = 160) -> str:
    """Extract and clean the first prose paragraph from Markdown text.

    Skips headings, images, fences and HTML blocks, strips inline markup and
    collapses whitespace. Truncates on a word boundary.

    Args:
        text: Markdown body.
        limit: Maximum character length of result.

    Returns:
        Cleaned first paragraph.
    """
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    for para in paragraphs:
        if para.startswith(("#", "![", "```", "<", "---")):
            continue
        para = re.sub(r"!\[[^\]]*\]\([^)]*\)", "", para)
        para = re.sub(r"\[([^\]]*)\]\([^)]*\)", r"\1", para)
        para = re.sub(r"<[^>]+>", "", para)
        para = re.sub(r"[*_`]+", "", para)
        collapsed = " ".join(para.split())
        if len(collapsed) <= limit:
            return collapsed
        cut = collapsed[:limit].rsplit(" ", 1)[0]
        return f"{cut}…"
    return ""


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file (case-insensitive .md)."""
    return path.suffix.lower() == ".md"


def is_hidden(rel: Path) -> bool:
    """Check if a relative path should be skipped during content discovery.

    Anything starting with ``_`` holds partials or scratch notes; dotfiles
    are editor or VCS droppings.
    """
    return any(part.startswith(("_", ".")) for part in rel.parts)


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def copy_tree(source: Path, dest: Path) -> list[Path]:
    """Copy every file under source into dest, in sorted order.

    Existing files in dest are overwritten, so later calls win.

    Args:
        source: Directory to copy from. Missing directories are ignored.
        dest: Directory to copy into.

    Returns:
        Destination paths written.
    """
    written: list[Path] = []
    if not source.is_dir():
        return written
    for item in sorted(source.rglob("*")):
        if item.is_dir():
            continue
        target = dest / item.relative_to(source)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(item, target)
        written.append(target)
    return written


def hidden_sibling(path: Path, suffix: str) -> Path:
    """Return the dot-prefixed sibling ``.<name>.<suffix>`` of path.

    A leading dot already on the name is not doubled, so ``.quire-preview``
    gives ``.quire-preview.staging``.
    """
    return path.with_name(f".{path.name.lstrip('.')}.{suffix}")


def replace_dir(staging: Path, target: Path) -> None:
    """Swap a fully written staging directory into place.

    The previous target is moved aside first and only removed after the
    staging directory has taken its name, so a failure leaves one complete
    tree at ``target``.

    Args:
        staging: Directory holding the new content.
        target: Directory to replace.
    """
    backup = hidden_sibling(target, "previous")
    if backup.exists():
        shutil.rmtree(backup)
    if target.exists():
        target.rename(backup)
    try:
        staging.rename(target)
    except OSError:
        if backup.exists():
            backup.rename(target)
        raise
    if backup.exists():
        shutil.rmtree(backup)
