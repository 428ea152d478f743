"""Document model builder.

Turns parsed metadata and an expanded body into a validated Document.
Either a fully consistent Document comes back or InvalidDocument is raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from postkit.domain.document import Document
from postkit.domain.permalink import DEFAULT_CATEGORY, derive_identifier, slugify
from postkit.errors import InvalidDocument
from postkit.pipeline.frontmatter import ParsedSource

DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


@dataclass(frozen=True)
class BuildSettings:
    """Settings that shape identifiers and category lists."""

    default_category: str = DEFAULT_CATEGORY
    slug_max_length: int = 80
    category_order: str = "insertion"
    date_field: str = "date"


def parse_published_at(value) -> datetime:
    """Parse a front-matter date such as ``2017-05-21 10:18:00 +0700``.

    Raises:
        ValueError: If no supported format matches
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"expected text, got {type(value).__name__}")

    text = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    # ISO 8601 with a 'T' separator
    return datetime.fromisoformat(text)


def normalize_categories(values: Iterable[str], order: str = "insertion") -> tuple[str, ...]:
    """Trim labels and collapse case-insensitive duplicates, first spelling wins."""
    seen: set[str] = set()
    labels: list[str] = []
    for value in values:
        label = " ".join(str(value).split())
        if not label or label.casefold() in seen:
            continue
        seen.add(label.casefold())
        labels.append(label)

    if order == "alphabetical":
        labels.sort(key=str.casefold)
    return tuple(labels)


def _category_values(metadata: dict) -> list[str]:
    values: list[str] = []
    for key in ("categories", "category"):
        raw = metadata.get(key)
        if raw is None:
            continue
        if isinstance(raw, str):
            # A bare value is a one-label list
            values.append(raw)
        else:
            values.extend(str(item) for item in raw)
    return values


def build_document(
    parsed: ParsedSource,
    rendered_body: str,
    *,
    source: str | None = None,
    checksum: str = "",
    settings: BuildSettings | None = None,
) -> Document:
    """Construct a Document from parsed metadata and an expanded body.

    Args:
        parsed: Front-matter parse result
        rendered_body: parsed.body with directives expanded
        source: Path or name of the raw source
        checksum: Hash of the raw source
        settings: Identifier and category settings

    Returns:
        Document instance

    Raises:
        InvalidDocument: If title, date or slug cannot be derived
    """
    settings = settings or BuildSettings()
    metadata = parsed.metadata

    title = metadata.get("title")
    if not isinstance(title, str) or not title.strip():
        raise InvalidDocument("empty title", source=source)
    title = title.strip()

    raw_date = metadata.get(settings.date_field)
    try:
        published_at = parse_published_at(raw_date)
    except ValueError as exc:
        raise InvalidDocument("unparseable date", f"{raw_date!r}", source=source) from exc

    categories = normalize_categories(_category_values(metadata), settings.category_order)

    explicit_slug = metadata.get("slug")
    slug_text = explicit_slug if isinstance(explicit_slug, str) and explicit_slug.strip() else title
    slug = slugify(slug_text, max_len=settings.slug_max_length)
    if not slug:
        raise InvalidDocument("empty slug", f"{slug_text!r} has no usable characters", source=source)

    identifier = derive_identifier(
        categories[0] if categories else None,
        published_at,
        slug,
        default_category=settings.default_category,
    )

    layout = metadata.get("layout")
    return Document(
        identifier=identifier,
        title=title,
        published_at=published_at,
        categories=categories,
        raw_body=parsed.body,
        rendered_body=rendered_body,
        slug=slug,
        layout=layout if isinstance(layout, str) else None,
        source=source,
        checksum=checksum,
        metadata=dict(metadata),
        warnings=tuple(parsed.warnings),
    )
