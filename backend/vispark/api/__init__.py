"""API routes for video summarization."""

from vispark.api import routes, websocket

__all__ = ["routes", "websocket"]
