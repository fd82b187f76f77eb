"""Content selection for Quire.

Given every loaded document and a build mode, decide which documents are
rendered and in what order. Everything here is a pure function of its
inputs.

Key types:
- BuildMode: PRODUCTION drops drafts, DRAFT_PREVIEW keeps them.
- ListingEntry: A selected document annotated with its listing position.
- Pager: One page of a paginated listing.

Key functions:
- select_documents: Filter and order documents.
- paginate: Split a listing into pages.
- build_taxonomy: Group a listing by taxonomy term.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .document import Document
from .utils import slugify


class BuildMode(enum.Enum):
    PRODUCTION = "production"
    DRAFT_PREVIEW = "draft-preview"

    @classmethod
    def from_flag(cls, include_drafts: bool) -> BuildMode:
        return cls.DRAFT_PREVIEW if include_drafts else cls.PRODUCTION


@dataclass(frozen=True)
class ListingEntry:
    """A selected document and its 0-based position in the listing."""

    position: int
    document: Document

    @property
    def url(self) -> str:
        return self.document.url


def select_documents(
    documents: Iterable[Document], mode: BuildMode
) -> list[ListingEntry]:
    """Filter and order documents for a build.

    Production mode excludes every draft; draft-preview includes everything.
    Ordering is by date, newest first. Documents with the same date keep
    their input order.

    Args:
        documents: Documents in discovery order.
        mode: Build mode.

    Returns:
        Listing entries with positions 0..n-1.
    """
    candidates = list(documents)
    if mode is BuildMode.PRODUCTION:
        candidates = [d for d in candidates if not d.draft]
    # sorted() is stable with reverse=True, so equal dates keep input order.
    ordered = sorted(candidates, key=lambda d: d.date, reverse=True)
    return [ListingEntry(position=i, document=d) for i, d in enumerate(ordered)]


@dataclass(frozen=True)
class Pager:
    """One page of a listing.

    Attributes:
        number: 1-based page number.
        total: Number of pages.
        entries: Entries shown on this page.
        base_url: URL of the first page of the listing.
    """

    number: int
    total: int
    entries: tuple[ListingEntry, ...]
    base_url: str = "/"

    @property
    def url(self) -> str:
        return self.url_for(self.number)

    def url_for(self, number: int) -> str:
        if number <= 1:
            return self.base_url
        return f"{self.base_url}page/{number}/"

    @property
    def has_prev(self) -> bool:
        return self.number > 1

    @property
    def has_next(self) -> bool:
        return self.number < self.total

    @property
    def prev_url(self) -> str | None:
        return self.url_for(self.number - 1) if self.has_prev else None

    @property
    def next_url(self) -> str | None:
        return self.url_for(self.number + 1) if self.has_next else None


def paginate(
    entries: Sequence[ListingEntry], size: int, base_url: str = "/"
) -> list[Pager]:
    """Split a listing into pages.

    An empty listing still yields one (empty) page so the home page exists.

    Args:
        entries: Ordered listing.
        size: Entries per page; 0 puts everything on one page.
        base_url: URL of the first page.

    Returns:
        Pagers in page order.
    """
    if size <= 0 or not entries:
        return [Pager(number=1, total=1, entries=tuple(entries), base_url=base_url)]
    chunks = [tuple(entries[i : i + size]) for i in range(0, len(entries), size)]
    return [
        Pager(number=n, total=len(chunks), entries=chunk, base_url=base_url)
        for n, chunk in enumerate(chunks, start=1)
    ]


def build_taxonomy(
    entries: Iterable[ListingEntry], name: str = "tags"
) -> dict[str, list[ListingEntry]]:
    """Group listing entries by taxonomy term.

    Terms whose slugs match (``Go`` and ``go``) share one page, so they are
    merged under the spelling seen first in listing order.

    Args:
        entries: Ordered listing.
        name: Document attribute holding the terms.

    Returns:
        Mapping of term to entries; terms sorted case-insensitively,
        entries in listing order.
    """
    names: dict[str, str] = {}
    grouped: dict[str, list[ListingEntry]] = {}
    for entry in entries:
        for term in getattr(entry.document, name):
            key = slugify(term)
            members = grouped.setdefault(names.setdefault(key, term), [])
            if not members or members[-1] is not entry:
                members.append(entry)
    return {term: grouped[term] for term in sorted(grouped, key=lambda t: (t.lower(), t))}
