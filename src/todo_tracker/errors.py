"""Error taxonomy of the tracker core.

All errors are raised synchronously to the immediate caller; the core never
retries. ``StorageFailure`` is special: it is raised *after* the in-memory
mutation took place, so callers can warn that the change may not be durable.
"""

from __future__ import annotations

from typing import List, Optional


class TrackerError(Exception):
    """Base class for every error raised by the tracker core."""


class InvariantViolation(TrackerError):
    """Attempt to edit or delete the default priority level."""


class InvalidInput(TrackerError, ValueError):
    """Missing required field or a reminder date outside the allowed window."""


class InvalidState(TrackerError):
    """Operation not allowed for the entity's current status."""


class NotFound(TrackerError, LookupError):
    """Referenced entity does not exist."""


class StorageFailure(TrackerError):
    """Persistence gateway could not load or save an entity list."""

    def __init__(
        self,
        message: str,
        *,
        kind: Optional[str] = None,
        failures: Optional[List["StorageFailure"]] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.failures: List[StorageFailure] = failures or []
