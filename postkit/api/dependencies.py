"""FastAPI dependencies for dependency injection."""

import threading
from functools import lru_cache
from typing import Generator

from postkit.config import AppConfig, load_env_config
from postkit.pipeline.pipeline import RenderPipeline, create_store
from postkit.storage.docstore import DocStore


@lru_cache
def get_config() -> AppConfig:
    """Get cached configuration.

    Loads the file named by the POSTKIT_CONFIG env var, or defaults.

    Returns:
        AppConfig: Application configuration
    """
    return load_env_config()


# ========== Pipeline Dependency ==========

_pipeline_instance: RenderPipeline | None = None


def get_pipeline_instance() -> RenderPipeline:
    global _pipeline_instance

    if _pipeline_instance is None:
        _pipeline_instance = RenderPipeline(config=get_config())
    return _pipeline_instance


def get_pipeline() -> Generator[RenderPipeline, None, None]:
    """Get RenderPipeline instance.

    Yields:
        RenderPipeline shared by every request
    """
    yield get_pipeline_instance()


# ========== Doc Store Dependency ==========

_doc_store_instance: DocStore | None = None
_save_lock = threading.Lock()


def get_doc_store_instance() -> DocStore:
    global _doc_store_instance

    if _doc_store_instance is None:
        _doc_store_instance = create_store(get_config())
    return _doc_store_instance


def get_doc_store() -> Generator[DocStore, None, None]:
    """Get DocStore instance.

    Yields:
        DocStore backing the corpus
    """
    yield get_doc_store_instance()


def persist(pipeline: RenderPipeline, store: DocStore) -> int:
    """Write the current corpus snapshot to the store.

    Saves are serialized so an older snapshot never lands after a newer one.
    """
    with _save_lock:
        return store.save(pipeline.all(), pipeline.signature)


def reset() -> None:
    """Drop cached config and singletons (used by tests)."""
    global _pipeline_instance, _doc_store_instance

    get_config.cache_clear()
    _pipeline_instance = None
    _doc_store_instance = None
