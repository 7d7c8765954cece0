"""Log-poll scheduler feeding fix-event records into the scoring pipeline."""

from __future__ import annotations

from .config import PollConfig
from .errors import PollingError, PollRecordError, SchedulerAlreadyRunningError
from .observability import ErrorCategory, PollEventLogger, categorize_error
from .protocol import BugBashStore, CursorStore, FixEventSource
from .scheduler import PollHandle, PollScheduler, PollTickResult
from .source import DatabaseFixEventSource, FixEventRecordInfo

__all__ = [
    "BugBashStore",
    "CursorStore",
    "DatabaseFixEventSource",
    "ErrorCategory",
    "FixEventRecordInfo",
    "FixEventSource",
    "PollConfig",
    "PollEventLogger",
    "PollHandle",
    "PollRecordError",
    "PollScheduler",
    "PollTickResult",
    "PollingError",
    "SchedulerAlreadyRunningError",
    "categorize_error",
]
