"""Observability primitives for the poll worker.

Provides structured logging and error categorisation for poll ticks, record
failures and worker lifecycle. Events are emitted as ``[event] key=value``
lines suitable for parsing by log aggregators.
"""

from __future__ import annotations

import enum
import typing as typ

from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from bugbash.logging import (
    format_event_fields,
    get_logger,
    log_error,
    log_info,
    log_warning,
)
from bugbash.scoring.errors import FixEventDecodeError

if typ.TYPE_CHECKING:
    import datetime as dt

    from bugbash.polling.errors import PollRecordError

logger = get_logger(__name__)


class PollEventType(enum.StrEnum):
    """Structured log event types for poll observability."""

    WORKER_STARTED = "poll.worker.started"
    WORKER_STOPPED = "poll.worker.stopped"
    WORKER_DETACHED = "poll.worker.detached"
    TICK_COMPLETED = "poll.tick.completed"
    TICK_FAILED = "poll.tick.failed"
    RECORD_FAILED = "poll.record.failed"
    CURSOR_SET = "poll.cursor.set"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    DECODE_FAILURE = "decode_failure"
    DATABASE_CONNECTIVITY = "database_connectivity"
    DATA_INTEGRITY = "data_integrity"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (FixEventDecodeError, ErrorCategory.DECODE_FAILURE),
    (OperationalError, ErrorCategory.DATABASE_CONNECTIVITY),
    (InterfaceError, ErrorCategory.DATABASE_CONNECTIVITY),
    (IntegrityError, ErrorCategory.DATA_INTEGRITY),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorise an exception for alert routing."""
    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category
    return ErrorCategory.UNKNOWN


class PollEventLogger:
    """Emit structured poll events through femtologging.

    Ticks and lifecycle changes log at INFO, detached workers and failing
    records at WARNING, and ticks that could not run at ERROR.
    """

    def log_worker_started(self, interval_seconds: float) -> None:
        """Log the worker task starting."""
        log_info(
            logger,
            "%s",
            format_event_fields(
                PollEventType.WORKER_STARTED, {"interval_seconds": interval_seconds}
            ),
        )

    def log_worker_stopped(self) -> None:
        """Log the worker task exiting."""
        log_info(logger, "%s", format_event_fields(PollEventType.WORKER_STOPPED, {}))

    def log_worker_detached(self, grace_seconds: float) -> None:
        """Log a worker left to finish its record after the grace period lapsed."""
        log_warning(
            logger,
            "%s",
            format_event_fields(
                PollEventType.WORKER_DETACHED, {"grace_seconds": grace_seconds}
            ),
        )

    def log_tick_completed(
        self,
        *,
        processed: int,
        failed: int,
        cursor: dt.datetime,
    ) -> None:
        """Log a drained batch and the cursor it advanced to."""
        log_info(
            logger,
            "%s",
            format_event_fields(
                PollEventType.TICK_COMPLETED,
                {
                    "records_processed": processed,
                    "records_failed": failed,
                    "cursor": cursor.isoformat(),
                },
            ),
        )

    def log_tick_failed(self, error: BaseException) -> None:
        """Log a tick that failed before or after processing its records."""
        log_error(
            logger,
            "%s",
            format_event_fields(
                PollEventType.TICK_FAILED,
                {
                    "error_type": type(error).__name__,
                    "error_category": categorize_error(error),
                    "error_message": str(error),
                },
            ),
            exc_info=error,
        )

    def log_record_failed(self, error: PollRecordError) -> None:
        """Log a record the worker skipped after a processing failure."""
        log_warning(
            logger,
            "%s",
            format_event_fields(
                PollEventType.RECORD_FAILED,
                {
                    "record_id": error.record_id,
                    "error_type": type(error.cause).__name__,
                    "error_category": categorize_error(error.cause),
                    "error_message": str(error.cause),
                },
            ),
        )

    def log_cursor_set(self, previous: dt.datetime, current: dt.datetime) -> None:
        """Log an operator overriding the persisted cursor."""
        log_info(
            logger,
            "%s",
            format_event_fields(
                PollEventType.CURSOR_SET,
                {"previous": previous.isoformat(), "current": current.isoformat()},
            ),
        )
