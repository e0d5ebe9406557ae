"""HTTP API layer -- FastAPI app factory and JSON routes."""

from tracker.api.app import create_api_app

__all__ = ["create_api_app"]
