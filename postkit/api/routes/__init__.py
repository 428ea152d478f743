"""API routers."""

from postkit.api.routes import categories, documents

__all__ = ["categories", "documents"]
