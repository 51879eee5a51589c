"""HTTP API for the verification engine."""

from .routes import router

__all__ = ["router"]
