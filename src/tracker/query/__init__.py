"""Read-side query layer."""

from tracker.query.service import QueryService

__all__ = ["QueryService"]
