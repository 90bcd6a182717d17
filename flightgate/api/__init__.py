"""HTTP API."""

from .routes import router, get_pipeline, set_pipeline

__all__ = ["router", "get_pipeline", "set_pipeline"]
