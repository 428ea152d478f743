"""Render pipeline orchestrator."""

import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Iterable

from tqdm import tqdm

from postkit.config import AppConfig
from postkit.domain.document import Document, DocumentSummary
from postkit.errors import DuplicateIdentifier, PostkitError
from postkit.pipeline.builder import BuildSettings, build_document
from postkit.pipeline.directives import DirectiveExpander
from postkit.pipeline.frontmatter import parse_source
from postkit.pipeline.signature import compute_signature, should_process
from postkit.storage.corpus import CorpusIndex
from postkit.storage.docstore import DocStore

logger = logging.getLogger(__name__)


def compute_checksum(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _new_stats(total: int = 0) -> dict:
    return {
        "total": total,
        "inserted": 0,
        "updated": 0,
        "unchanged": 0,
        "skipped": 0,
        "removed": 0,
        "errors": [],
    }


class RenderPipeline:
    """Coordinates parsing, expansion, document building and indexing.

    Parsing, expansion and building are pure and may run on worker threads;
    only the corpus commit is shared, and the corpus serializes it.
    """

    def __init__(self, corpus: CorpusIndex | None = None, config: AppConfig | None = None):
        """Initialize pipeline.

        Args:
            corpus: Corpus to commit into (a fresh one when omitted)
            config: Full pipeline configuration
        """
        self._config = config or AppConfig()
        if corpus is None:
            corpus = CorpusIndex(default_category=self._config.permalink.default_category)
        self._corpus = corpus
        self._expander = DirectiveExpander()
        self._settings = BuildSettings(
            default_category=self._config.permalink.default_category,
            slug_max_length=self._config.permalink.slug_max_length,
            category_order=self._config.categories.order,
        )
        self._signature = compute_signature(self._config)

    @property
    def corpus(self) -> CorpusIndex:
        return self._corpus

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def signature(self) -> str:
        return self._signature

    # ---- single document ----------------------------------------------------

    def prepare(self, raw: str, source: str | None = None) -> Document:
        """Parse, expand and build one document without committing it.

        Raises:
            PostkitError: Any structural or validation failure, located in
                the raw source
        """
        try:
            parsed = parse_source(
                raw,
                delimiter=self._config.front_matter.delimiter,
                required_fields=self._config.front_matter.required_fields,
            )
            rendered = self._expander.expand(
                parsed.body,
                base_offset=parsed.body_offset,
                base_line=parsed.body_line,
                source=source,
            )
            document = build_document(
                parsed,
                rendered,
                source=source,
                checksum=compute_checksum(raw),
                settings=self._settings,
            )
        except PostkitError as exc:
            raise exc.locate(source, raw=raw)

        for warning in document.warnings:
            logger.warning("Skipped metadata in %s: %s", source or "<string>", warning)
        return document

    def commit(self, document: Document) -> str:
        """Upsert a prepared document into the corpus.

        Returns:
            "inserted", "updated" or "unchanged"
        """
        try:
            status = self._corpus.upsert(document)
        except PostkitError as exc:
            raise exc.locate(document.source)
        logger.debug("%s %s", status, document.identifier)
        return status

    def render(self, raw: str, source: str | None = None) -> Document:
        """Render one raw source and commit it.

        On any failure the corpus is left untouched.
        """
        document = self.prepare(raw, source)
        self.commit(document)
        return document

    def render_file(self, path: str | Path, source: str | None = None) -> Document:
        """Read a file and render it; the path is the default source name."""
        path = Path(path)
        raw = path.read_text(encoding="utf-8")
        return self.render(raw, source or str(path))

    def remove(self, identifier: str) -> bool:
        return self._corpus.remove(identifier)

    # ---- batches ------------------------------------------------------------

    def render_many(self, items: Iterable[tuple[str, str | None]], desc: str = "Rendering") -> dict:
        """Render (raw, source) pairs; one failure never stops the batch.

        Pure stages run in a thread pool. Commits happen in input order, so
        when two sources collide the earlier one wins.

        Returns:
            Statistics dict with per-status counts and collected errors
        """
        items = list(items)
        stats = _new_stats(len(items))
        if not items:
            return stats

        workers = min(self._config.pipeline.workers, len(items))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self.prepare, raw, source) for raw, source in items]
            progress = tqdm(
                zip(items, futures),
                total=len(items),
                desc=desc,
                disable=not self._config.pipeline.show_progress,
            )
            for (_, source), future in progress:
                try:
                    status = self.commit(future.result())
                except PostkitError as exc:
                    logger.warning("Skipping %s: %s", source or "<string>", exc)
                    stats["errors"].append(
                        {"source": source, "type": type(exc).__name__, "error": str(exc)}
                    )
                    continue
                stats[status] += 1

        return stats

    def build_directory(
        self,
        content_dir: str | Path | None = None,
        store: DocStore | None = None,
        force_rebuild: bool = False,
    ) -> dict:
        """Bring the corpus in line with a directory of sources.

        Unchanged sources are skipped while the rules signature matches the
        stored one; a changed signature or ``force_rebuild`` re-renders
        everything from raw sources. Documents whose file is gone are removed.

        Returns:
            Statistics dict (see ``render_many``) plus "skipped" and "removed"
        """
        content_dir = Path(content_dir or self._config.content.content_dir)
        if not content_dir.is_dir():
            raise FileNotFoundError(f"Content directory not found: {content_dir}")

        extensions = {ext.lower() for ext in self._config.content.file_extensions}
        paths = sorted(
            path for path in content_dir.rglob("*") if path.is_file() and path.suffix.lower() in extensions
        )

        rebuild = force_rebuild
        if store is not None:
            stored_signature, stored_documents = store.load()
            if stored_signature != self._signature:
                if stored_documents:
                    logger.info("Rendering rules changed, rebuilding every document")
                rebuild = True
            if not rebuild:
                try:
                    self._corpus.load(stored_documents)
                except DuplicateIdentifier as exc:
                    logger.warning("Stored index is inconsistent (%s), rebuilding every document", exc)
                    rebuild = True
        if rebuild:
            self._corpus.clear()

        by_source = {document.source: document for document in self._corpus.all() if document.source}
        seen: set[str] = set()
        pending: list[tuple[str, str]] = []
        unreadable: list[dict] = []
        skipped = 0
        for path in paths:
            source = path.relative_to(content_dir).as_posix()
            seen.add(source)
            try:
                raw = path.read_text(encoding="utf-8")
            except UnicodeDecodeError as exc:
                logger.warning("Skipping %s: not UTF-8 text", source)
                unreadable.append({"source": source, "type": type(exc).__name__, "error": str(exc)})
                continue
            existing = by_source.get(source)
            if existing is not None and not should_process(existing.checksum, compute_checksum(raw)):
                skipped += 1
                continue
            pending.append((raw, source))

        removed = 0
        for source, document in by_source.items():
            if source not in seen and self._corpus.remove(document.identifier):
                logger.info("Removed %s (source %s is gone)", document.identifier, source)
                removed += 1

        stats = self.render_many(pending)
        stats["errors"] = unreadable + stats["errors"]
        stats["total"] = len(paths)
        stats["skipped"] = skipped
        stats["removed"] = removed

        if store is not None:
            store.save(self._corpus.all(), self._signature)

        return stats

    # ---- queries ------------------------------------------------------------

    def get(self, identifier: str) -> Document | None:
        return self._corpus.get(identifier)

    def all(self) -> list[Document]:
        return self._corpus.all()

    def by_category(self, label: str) -> list[Document]:
        return self._corpus.by_category(label)

    def between(self, start: datetime | None = None, end: datetime | None = None) -> list[Document]:
        return self._corpus.between(start, end)

    def list_all(self) -> list[DocumentSummary]:
        return [document.summary() for document in self._corpus.all()]

    def list_by_category(self, label: str) -> list[DocumentSummary]:
        return [document.summary() for document in self._corpus.by_category(label)]


def create_store(config: AppConfig) -> DocStore:
    return DocStore(config.storage.documents_path, config.storage.manifest_path)


def run_build(
    config: AppConfig | None = None,
    content_dir: str = "",
    force_rebuild: bool = False,
) -> dict:
    """Render a content directory into the configured file-backed store.

    Args:
        config: Pipeline configuration
        content_dir: Content directory (overrides config)
        force_rebuild: Re-render every document

    Returns:
        Statistics dict
    """
    config = config or AppConfig()
    pipeline = RenderPipeline(config=config)
    store = create_store(config)

    stats = pipeline.build_directory(
        content_dir or config.content.content_dir,
        store=store,
        force_rebuild=force_rebuild,
    )

    logger.info(
        "Rendered %d/%d sources (%d inserted, %d updated, %d skipped, %d removed, %d errors)",
        stats["inserted"] + stats["updated"] + stats["unchanged"],
        stats["total"],
        stats["inserted"],
        stats["updated"],
        stats["skipped"],
        stats["removed"],
        len(stats["errors"]),
    )
    return stats
