"""Domain entities for the post rendering pipeline.

This module contains immutable data structures that represent core concepts
in the rendering and indexing pipeline.
"""

from postkit.domain.document import Document, DocumentSummary, chronological_key
from postkit.domain.permalink import derive_identifier, slugify

__all__ = ["Document", "DocumentSummary", "chronological_key", "derive_identifier", "slugify"]
