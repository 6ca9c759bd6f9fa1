"""Error taxonomy for meter-reading operations."""

from __future__ import annotations

from typing import Optional

from models.records import Reading


class MeterReadingError(Exception):
    """Base class for errors surfaced to callers."""


class ValidationError(MeterReadingError):
    """A submitted reading was rejected before anything was written."""


class DuplicateReadingError(ValidationError):
    """The submitted value equals the latest recorded value.

    This usually means a retried submission whose first attempt was in fact
    stored, so it is reported apart from a plain low reading.
    """

    def __init__(self, message: str, latest: Reading) -> None:
        super().__init__(message)
        self.latest = latest


class NotFoundError(MeterReadingError):
    """The referenced space or room does not exist."""


class StoreError(MeterReadingError):
    """The document store failed to read or write."""


class ConflictError(StoreError):
    """The document changed between read and write."""

    def __init__(
        self,
        message: str,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.expected_version = expected_version
        self.actual_version = actual_version
