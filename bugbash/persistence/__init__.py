"""Relational persistence for campaigns, scoring and the poll cursor."""

from __future__ import annotations

from .config import StoreConfig
from .errors import (
    ParticipantNotFoundError,
    PollCursorNotFoundError,
    TimezoneAwareRequiredError,
)
from .storage import (
    EPOCH,
    POLL_CURSOR_ID,
    Base,
    BugPointValue,
    Campaign,
    FixEventRecord,
    Organization,
    Participant,
    PollCursor,
    ScoreEvent,
    SourceControlProvider,
    Team,
    init_storage,
)
from .store import PollCursorState, SqlAlchemyBugBashStore

__all__ = [
    "EPOCH",
    "POLL_CURSOR_ID",
    "Base",
    "BugPointValue",
    "Campaign",
    "FixEventRecord",
    "Organization",
    "Participant",
    "ParticipantNotFoundError",
    "PollCursor",
    "PollCursorNotFoundError",
    "PollCursorState",
    "ScoreEvent",
    "SourceControlProvider",
    "SqlAlchemyBugBashStore",
    "StoreConfig",
    "Team",
    "TimezoneAwareRequiredError",
    "init_storage",
]
