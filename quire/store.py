"""Content Store for Quire.

Discovers Markdown documents under the content directory and parses them.
Discovery order is sorted path order; it is the tie-break order used when
two documents share a date.

Key classes:
- FileContentLoader: Finds document files on disk.
- ContentStore: Loads documents, skipping and reporting malformed ones.
- LoadResult: Documents plus the problems found while loading them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .document import Document, parse_document
from .errors import MalformedDocument
from .utils import is_hidden, is_markdown

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """Outcome of loading a content store.

    Attributes:
        documents: Parsed documents in discovery order.
        problems: One MalformedDocument per skipped file.
    """

    documents: list[Document] = field(default_factory=list)
    problems: list[MalformedDocument] = field(default_factory=list)


class FileContentLoader:
    """Finds document files in a content directory.

    Attributes:
        content_dir: Directory containing the documents.
    """

    def __init__(self, content_dir: Path):
        self.content_dir = content_dir

    def iter_files(self) -> list[Path]:
        """Return Markdown files in sorted path order.

        ``_``-prefixed files and folders and dotfiles are skipped.
        """
        if not self.content_dir.is_dir():
            return []
        files: list[Path] = []
        for path in sorted(self.content_dir.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.content_dir)
            if is_hidden(rel):
                continue
            if is_markdown(path):
                files.append(path)
        return files


class ContentStore:
    """Loads every document in the content directory.

    A malformed document never aborts the load: it is logged once as a
    warning, recorded in the result and left out of the document list.
    """

    def __init__(self, content_dir: Path, loader: FileContentLoader | None = None):
        self.content_dir = content_dir
        self._loader = loader or FileContentLoader(content_dir)

    def load(self) -> LoadResult:
        result = LoadResult()
        for path in self._loader.iter_files():
            try:
                document = self.read(path)
            except MalformedDocument as exc:
                logger.warning("Skipping malformed document %s: %s", exc.path, exc.reason)
                result.problems.append(exc)
                continue
            result.documents.append(document)
        logger.debug(
            "Loaded %d documents from %s (%d skipped)",
            len(result.documents),
            self.content_dir,
            len(result.problems),
        )
        return result

    def read(self, path: Path) -> Document:
        """Parse a single document file.

        Raises:
            MalformedDocument: If the file cannot be decoded or parsed.
        """
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedDocument(path, f"not valid UTF-8: {exc}") from exc
        return parse_document(text, path, self.content_dir)
