"""Document entity for the post rendering pipeline."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from postkit.errors import UnparseableField


@dataclass(frozen=True, slots=True)
class Document:
    """Immutable document entity.

    Represents one rendered post. A content change produces a new Document
    value with the same identifier; the corpus swaps it in atomically.

    Attributes:
        identifier: Derived permalink (e.g., "/rails/2017/05/21/hello/")
        title: Trimmed, non-empty title
        published_at: Publication date-time as written in the source
        categories: Category labels in first-seen order, duplicates collapsed
        raw_body: Body text after front-matter removal
        rendered_body: raw_body with every directive expanded
        slug: Last path segment of the identifier
        layout: Layout name from the front matter (optional)
        source: Path or name of the raw source (None for anonymous input)
        checksum: SHA-256 hash of the raw source for change detection
        metadata: Full parsed front-matter mapping (optional)
        warnings: Unparseable metadata lines skipped while parsing
    """

    identifier: str
    title: str
    published_at: datetime
    categories: tuple[str, ...] = ()
    raw_body: str = ""
    rendered_body: str = ""
    slug: str = ""
    layout: str | None = None
    source: str | None = None
    checksum: str = ""
    metadata: dict | None = None
    warnings: tuple[UnparseableField, ...] = field(default_factory=tuple)

    @property
    def primary_category(self) -> str | None:
        return self.categories[0] if self.categories else None

    def summary(self) -> "DocumentSummary":
        """Reduce the document to what a listing page needs."""
        return DocumentSummary(
            identifier=self.identifier,
            title=self.title,
            published_at=self.published_at,
            categories=self.categories,
        )

    def to_dict(self) -> dict:
        """Convert document to a JSON-safe dictionary for serialization."""
        return {
            "identifier": self.identifier,
            "title": self.title,
            "published_at": self.published_at.isoformat(),
            "categories": list(self.categories),
            "raw_body": self.raw_body,
            "rendered_body": self.rendered_body,
            "slug": self.slug,
            "layout": self.layout,
            "source": self.source,
            "checksum": self.checksum,
            "metadata": self.metadata,
            "warnings": [warning.to_dict() for warning in self.warnings],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Document":
        """Create document from dictionary (JSONL format).

        Args:
            data: Dictionary with document fields

        Returns:
            Document instance
        """
        return cls(
            identifier=data["identifier"],
            title=data["title"],
            published_at=datetime.fromisoformat(data["published_at"]),
            categories=tuple(data.get("categories", ())),
            raw_body=data.get("raw_body", ""),
            rendered_body=data.get("rendered_body", ""),
            slug=data.get("slug", ""),
            layout=data.get("layout"),
            source=data.get("source"),
            checksum=data.get("checksum", ""),
            metadata=data.get("metadata"),
            warnings=tuple(UnparseableField.from_dict(w) for w in data.get("warnings", ())),
        )


@dataclass(frozen=True, slots=True)
class DocumentSummary:
    """Listing entry handed to delivery layers."""

    identifier: str
    title: str
    published_at: datetime
    categories: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "identifier": self.identifier,
            "title": self.title,
            "published_at": self.published_at.isoformat(),
            "categories": list(self.categories),
        }


def chronological_key(document: Document) -> tuple[float, str]:
    """Sort key for most-recent-first ordering with identifier tie-break.

    Naive date-times are read as UTC so mixed naive and offset-aware
    documents still compare.
    """
    published_at = document.published_at
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    return (-published_at.timestamp(), document.identifier)
