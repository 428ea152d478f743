"""Storage adapters for the post corpus."""

from postkit.storage.corpus import CorpusIndex
from postkit.storage.docstore import DocStore

__all__ = ["CorpusIndex", "DocStore"]
