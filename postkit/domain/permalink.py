"""Slug and permalink derivation.

Identifiers must stay stable across runs and process restarts, so everything
here is a pure function of its arguments.
"""

from __future__ import annotations

import re
from datetime import datetime
from unicodedata import normalize

_STRIP_RE = re.compile(r"[^a-z0-9_\s-]")
_SEPARATOR_RE = re.compile(r"[\s_-]+")

DEFAULT_CATEGORY = "uncategorized"


def slugify(text: str | None, max_len: int = 80) -> str:
    """Convert text to a lower-case, URL-safe slug.

    Produces ASCII-only slugs with Unicode transliteration. Returns an empty
    string when nothing usable is left; callers decide whether that is fatal.

    Examples:
        >>> slugify("Hello!")
        'hello'
        >>> slugify("Café à Paris")
        'cafe-a-paris'
        >>> slugify("Ruby on Rails: Part 2")
        'ruby-on-rails-part-2'
    """
    if text is None:
        return ""

    normalized = normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = _STRIP_RE.sub("", normalized.lower())
    slug = _SEPARATOR_RE.sub("-", slug).strip("-")

    if len(slug) > max_len:
        slug = slug[:max_len].rstrip("-")

    return slug


def derive_identifier(
    category: str | None,
    published_at: datetime,
    slug: str,
    default_category: str = DEFAULT_CATEGORY,
) -> str:
    """Build the permalink ``/<category>/<year>/<month>/<day>/<slug>/``.

    The date parts come from the date as written, without timezone
    conversion.
    """
    category_slug = slugify(category) or default_category
    return (
        f"/{category_slug}/{published_at:%Y}/{published_at:%m}/{published_at:%d}/{slug}/"
    )
