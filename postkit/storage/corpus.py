"""In-memory corpus index.

The corpus owns every Document plus two derived views: a chronological list
and per-category buckets, both ordered most recent first with the
identifier as tie-break. Buckets are maintained incrementally from the
document set and are never authored independently.

Writers are serialized by a lock and publish a new immutable snapshot;
readers grab the current snapshot without locking, so a reader never sees a
document in ``all()`` that is missing from its category bucket or the
other way round.
"""

from __future__ import annotations

import bisect
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Iterable, Mapping

from postkit.domain.document import Document, chronological_key
from postkit.domain.permalink import DEFAULT_CATEGORY
from postkit.errors import DuplicateIdentifier

INSERTED = "inserted"
UPDATED = "updated"
UNCHANGED = "unchanged"


def category_key(label: str) -> str:
    """Bucket key for a label; matching is case-insensitive."""
    return " ".join(label.split()).casefold()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class CorpusSnapshot:
    """Immutable view of the corpus at one point in time."""

    documents: Mapping[str, Document] = field(default_factory=lambda: MappingProxyType({}))
    chronological: tuple[str, ...] = ()
    buckets: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    labels: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    sources: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


class CorpusIndex:
    """Document set with category and chronological indexes.

    Args:
        default_category: Bucket for documents without categories, so every
            document is reachable from exactly the buckets it belongs to
    """

    def __init__(self, default_category: str = DEFAULT_CATEGORY):
        self._default_category = default_category
        self._write_lock = threading.Lock()
        self._snapshot = CorpusSnapshot()

    # ---- reads -------------------------------------------------------------

    def snapshot(self) -> CorpusSnapshot:
        return self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot.documents)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._snapshot.documents

    def get(self, identifier: str) -> Document | None:
        return self._snapshot.documents.get(identifier)

    def all(self) -> list[Document]:
        """All documents, most recent first."""
        snapshot = self._snapshot
        return [snapshot.documents[identifier] for identifier in snapshot.chronological]

    def by_category(self, label: str) -> list[Document]:
        """Documents in one category, most recent first. Unknown labels give []."""
        snapshot = self._snapshot
        bucket = snapshot.buckets.get(category_key(label), ())
        return [snapshot.documents[identifier] for identifier in bucket]

    def between(self, start: datetime | None = None, end: datetime | None = None) -> list[Document]:
        """Documents published within [start, end], most recent first.

        Naive bounds and dates are read as UTC.
        """
        lower = _as_utc(start) if start else None
        upper = _as_utc(end) if end else None
        result = []
        for document in self.all():
            published_at = _as_utc(document.published_at)
            if lower and published_at < lower:
                continue
            if upper and published_at > upper:
                continue
            result.append(document)
        return result

    def categories(self) -> list[tuple[str, int]]:
        """(label, document count) pairs sorted by label."""
        snapshot = self._snapshot
        pairs = [(snapshot.labels[key], len(bucket)) for key, bucket in snapshot.buckets.items()]
        return sorted(pairs, key=lambda pair: pair[0].casefold())

    # ---- writes ------------------------------------------------------------

    def upsert(self, document: Document) -> str:
        """Insert a new document or replace the one with the same identifier.

        Replacement is only allowed for the same source; a different (or
        anonymous) source claiming a used identifier is a duplicate. When a
        source is re-rendered under a new identifier (its title or date
        changed), the old entry is dropped in the same step.

        Returns:
            "inserted", "updated" or "unchanged"

        Raises:
            DuplicateIdentifier: If another source already owns the identifier
        """
        with self._write_lock:
            snapshot = self._snapshot
            existing = snapshot.documents.get(document.identifier)

            if existing is not None:
                if existing.source is None or existing.source != document.source:
                    raise DuplicateIdentifier(
                        document.identifier,
                        existing.source,
                        source=document.source,
                    )
                if existing == document:
                    return UNCHANGED

            moved = None
            if document.source is not None:
                previous = snapshot.sources.get(document.source)
                if previous is not None and previous != document.identifier:
                    moved = snapshot.documents[previous]

            documents = dict(snapshot.documents)
            chronological = list(snapshot.chronological)
            buckets = {key: list(bucket) for key, bucket in snapshot.buckets.items()}
            labels = dict(snapshot.labels)

            for stale in (existing, moved):
                if stale is not None:
                    del documents[stale.identifier]
                    self._unlink(stale, chronological, buckets, labels)

            documents[document.identifier] = document
            self._link(document, documents, chronological, buckets, labels)
            self._publish(documents, chronological, buckets, labels)

            return UPDATED if existing is not None or moved is not None else INSERTED

    def remove(self, identifier: str) -> bool:
        """Remove a document from every view. Unknown identifiers are a no-op."""
        with self._write_lock:
            snapshot = self._snapshot
            existing = snapshot.documents.get(identifier)
            if existing is None:
                return False

            documents = dict(snapshot.documents)
            chronological = list(snapshot.chronological)
            buckets = {key: list(bucket) for key, bucket in snapshot.buckets.items()}
            labels = dict(snapshot.labels)

            del documents[identifier]
            self._unlink(existing, chronological, buckets, labels)
            self._publish(documents, chronological, buckets, labels)
            return True

    def load(self, documents: Iterable[Document]) -> None:
        """Replace the whole corpus in one step (used when restoring a store).

        Raises:
            DuplicateIdentifier: If two documents share an identifier
        """
        by_identifier: dict[str, Document] = {}
        for document in documents:
            existing = by_identifier.get(document.identifier)
            if existing is not None:
                raise DuplicateIdentifier(document.identifier, existing.source, source=document.source)
            by_identifier[document.identifier] = document

        ordered = sorted(by_identifier.values(), key=chronological_key)
        chronological = [document.identifier for document in ordered]
        buckets: dict[str, list[str]] = {}
        labels: dict[str, str] = {}
        for document in ordered:
            for label in self._labels_for(document):
                key = category_key(label)
                buckets.setdefault(key, []).append(document.identifier)
                labels.setdefault(key, label)

        with self._write_lock:
            self._publish(by_identifier, chronological, buckets, labels)

    def clear(self) -> None:
        with self._write_lock:
            self._snapshot = CorpusSnapshot()

    # ---- helpers -----------------------------------------------------------

    def _labels_for(self, document: Document) -> tuple[str, ...]:
        return document.categories or (self._default_category,)

    def _link(self, document, documents, chronological, buckets, labels) -> None:
        def sort_key(identifier: str):
            return chronological_key(documents[identifier])

        bisect.insort(chronological, document.identifier, key=sort_key)
        for label in self._labels_for(document):
            key = category_key(label)
            bisect.insort(buckets.setdefault(key, []), document.identifier, key=sort_key)
            labels.setdefault(key, label)

    def _unlink(self, document, chronological, buckets, labels) -> None:
        chronological.remove(document.identifier)
        for label in self._labels_for(document):
            key = category_key(label)
            bucket = buckets.get(key)
            if bucket is None or document.identifier not in bucket:
                continue
            bucket.remove(document.identifier)
            if not bucket:
                del buckets[key]
                labels.pop(key, None)

    def _publish(self, documents, chronological, buckets, labels) -> None:
        self._snapshot = CorpusSnapshot(
            documents=MappingProxyType(dict(documents)),
            chronological=tuple(chronological),
            buckets=MappingProxyType({key: tuple(bucket) for key, bucket in buckets.items()}),
            labels=MappingProxyType(dict(labels)),
            sources=MappingProxyType(
                {document.source: identifier for identifier, document in documents.items() if document.source}
            ),
        )
