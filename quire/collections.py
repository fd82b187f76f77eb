from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence

from .selection import ListingEntry


class Listing(Sequence[ListingEntry]):
    """Lightweight helper for working with listing entries in templates."""

    def __init__(self, entries: Iterable[ListingEntry]):
        self._entries = list(entries)

    def __iter__(self) -> Iterator[ListingEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, item):
        return self._entries[item]

    def section(self, name: str) -> Listing:
        return Listing(e for e in self._entries if e.document.section == name)

    def with_tag(self, tag: str) -> Listing:
        return Listing(e for e in self._entries if tag in e.document.tags)

    def drafts(self) -> Listing:
        return Listing(e for e in self._entries if e.document.draft)

    def published(self) -> Listing:
        return Listing(e for e in self._entries if not e.document.draft)

    def latest(self, count: int = 5) -> Listing:
        return Listing(self._entries[:count])

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Listing({len(self._entries)} entries)"


class TermCollection(Mapping[str, Listing]):
    """Mapping of taxonomy term to Listing, in term order."""

    def __init__(self, mapping: Mapping[str, Iterable[ListingEntry]]):
        self._mapping = {k: Listing(v) for k, v in mapping.items()}

    def __getitem__(self, key: str) -> Listing:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def by_count(self) -> list[tuple[str, Listing]]:
        """Terms with the most entries first; ties keep term order."""
        return sorted(self._mapping.items(), key=lambda kv: len(kv[1]), reverse=True)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TermCollection({len(self._mapping)} terms)"
