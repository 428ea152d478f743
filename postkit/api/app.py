"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from postkit import __version__
from postkit.api.dependencies import get_config, get_doc_store_instance, get_pipeline_instance
from postkit.api.routes import categories, documents
from postkit.errors import PostkitError

logger = logging.getLogger(__name__)


def _warm_corpus(app: FastAPI) -> None:
    """Fill the shared corpus from the posts directory or the stored index."""
    config = get_config()
    pipeline = get_pipeline_instance()
    store = get_doc_store_instance()

    content_dir = Path(config.content.content_dir)
    if content_dir.is_dir():
        stats = pipeline.build_directory(content_dir, store=store)
        for err in stats["errors"]:
            app.state.startup_errors.append(f"{err['source']}: {err['error']}")
        return

    if store.exists():
        signature, stored = store.load()
        if signature != pipeline.signature:
            app.state.startup_errors.append("Stored index was rendered with different rules; run 'postkit build'")
            return
        pipeline.corpus.load(stored)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Loads the corpus on startup. A broken post or store never blocks startup;
    problems are reported by /health instead.
    """
    logger.info("Starting postkit API")
    app.state.startup_errors = []

    try:
        _warm_corpus(app)
    except (OSError, ValueError, PostkitError) as e:
        logger.error("Could not load corpus: %s", e)
        app.state.startup_errors.append(str(e))

    logger.info("postkit API started with %d documents", len(get_pipeline_instance().corpus))

    yield

    logger.info("postkit API shut down")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application
    """
    config = get_config()

    app = FastAPI(
        title="postkit API",
        description="Render dated posts and query them by category and date",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(documents.router)
    app.include_router(categories.router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        errors = getattr(app.state, "startup_errors", [])
        body = {"status": "healthy", "documents": len(get_pipeline_instance().corpus)}
        if errors:
            body.update(status="degraded", startup_errors=errors)
        return body

    return app


def run() -> None:
    """Serve the API with uvicorn using the configured host and port."""
    import uvicorn

    from postkit.log import setup_logging

    config = get_config()
    setup_logging(config.logging.level)
    uvicorn.run(create_app(), host=config.api.host, port=config.api.port)
