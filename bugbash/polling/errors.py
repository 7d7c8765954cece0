"""Errors raised and reported by the poll scheduler."""

from __future__ import annotations


class PollingError(Exception):
    """Base class for polling errors."""


class SchedulerAlreadyRunningError(PollingError):
    """Raised when ``start()`` is called on a running scheduler."""

    def __init__(self) -> None:
        """Attach a fixed message."""
        super().__init__("poll scheduler is already running")


class PollRecordError(PollingError):
    """A fix-event record the worker failed to process.

    Instances are delivered on the scheduler's error channel rather than
    raised, so one bad record never stops the worker.

    Attributes
    ----------
    record_id
        Identifier of the failing record.
    cause
        The exception raised while decoding or applying the record.

    """

    def __init__(self, record_id: int, cause: BaseException) -> None:
        """Wrap ``cause`` with the failing record's identifier."""
        self.record_id = record_id
        self.cause = cause
        super().__init__(f"fix event record {record_id} failed: {cause}")
