"""HTTP wrapper around the render pipeline."""

from postkit.api.app import create_app

__all__ = ["create_app"]
