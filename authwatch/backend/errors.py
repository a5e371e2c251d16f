"""
backend/errors.py

Exception hierarchy raised by the ingestion core.

  AuthWatchError
  ├── ValidationError   - bad submission, rejected before any state change
  └── StorageError      - store/registry backend failed
      └── DetectionError - event stored, but detection/upsert failed afterwards

Reaching the alert threshold (or not) is never an exception.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import AuthEvent


class AuthWatchError(Exception):
    """Base class for every error raised by the core."""


class ValidationError(AuthWatchError):
    """A submitted event is missing a field or carries an unknown status."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class StorageError(AuthWatchError):
    """The event store or alert registry backend rejected an operation."""


class DetectionError(StorageError):
    """
    The event was appended, but the detection step that follows it failed.

    The event stays recorded; callers retry with
    IngestionPipeline.redetect(exc.source_ip).
    """

    def __init__(self, message: str, event: "AuthEvent") -> None:
        super().__init__(message)
        self.event = event

    @property
    def source_ip(self) -> str:
        return self.event.source_ip
