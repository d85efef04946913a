"""Core utilities: error taxonomy and the dispatch event bus."""

from shiplink.core.errors import (
    DispatchError,
    ValidationError,
    NotFoundError,
    ConflictError,
    ForbiddenError,
)
from shiplink.core.events import (
    commit_and_publish,
    dispatch_event_bus,
    publish_status_change,
    queue_status_change,
)

__all__ = [
    "DispatchError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ForbiddenError",
    "dispatch_event_bus",
    "publish_status_change",
    "queue_status_change",
    "commit_and_publish",
]
