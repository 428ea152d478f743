"""File-backed document store.

Documents are kept as JSON lines next to a small JSON manifest holding the
rules signature they were rendered with. Both files are written to a
temporary sibling first and moved into place, so an interrupted save never
leaves a half-written store.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from postkit.domain.document import Document

logger = logging.getLogger(__name__)


class DocStore:
    """Document persistence adapter.

    Args:
        documents_path: JSONL file with one document per line
        manifest_path: JSON file with the rules signature and counts
    """

    def __init__(self, documents_path: str | Path, manifest_path: str | Path):
        self._documents_path = Path(documents_path)
        self._manifest_path = Path(manifest_path)

    @property
    def documents_path(self) -> Path:
        return self._documents_path

    @property
    def manifest_path(self) -> Path:
        return self._manifest_path

    def exists(self) -> bool:
        return self._documents_path.exists()

    def load(self) -> tuple[str | None, list[Document]]:
        """Load the stored signature and documents.

        Returns:
            (signature or None, documents); an absent store is empty

        Raises:
            ValueError: If a line is not a valid document record
        """
        signature = None
        if self._manifest_path.exists():
            manifest = json.loads(self._manifest_path.read_text(encoding="utf-8"))
            signature = manifest.get("signature")

        documents: list[Document] = []
        if not self._documents_path.exists():
            return signature, documents

        with self._documents_path.open("r", encoding="utf-8") as handle:
            for number, line in enumerate(handle, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    documents.append(Document.from_dict(json.loads(line)))
                except (KeyError, TypeError, ValueError) as exc:
                    raise ValueError(f"{self._documents_path}:{number}: invalid document record: {exc}") from exc

        logger.debug("Loaded %d documents from %s", len(documents), self._documents_path)
        return signature, documents

    def save(self, documents: Iterable[Document], signature: str) -> int:
        """Write every document and the manifest.

        Returns:
            Number of documents written
        """
        lines = [json.dumps(document.to_dict(), ensure_ascii=False) for document in documents]
        _write_atomic(self._documents_path, "".join(line + "\n" for line in lines))

        manifest = {
            "signature": signature,
            "documents": len(lines),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        _write_atomic(self._manifest_path, json.dumps(manifest, indent=2) + "\n")

        logger.debug("Saved %d documents to %s", len(lines), self._documents_path)
        return len(lines)

    def clear(self) -> None:
        """Remove the store files (used for rebuilds)."""
        self._documents_path.unlink(missing_ok=True)
        self._manifest_path.unlink(missing_ok=True)


def _write_atomic(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
