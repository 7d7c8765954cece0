"""Ports the poll scheduler drives."""

from __future__ import annotations

import typing as typ

from bugbash.scoring.protocol import ScoringStore

if typ.TYPE_CHECKING:
    import datetime as dt

    from bugbash.persistence.store import PollCursorState
    from bugbash.polling.source import FixEventRecordInfo


class CursorStore(typ.Protocol):
    """Read and write the persisted poll cursor."""

    async def select_poll_cursor(self, cursor_id: str = ...) -> PollCursorState:
        """Return the cursor stored under ``cursor_id``."""
        ...

    async def update_poll_cursor(self, cursor: PollCursorState) -> None:
        """Persist ``cursor`` under its own id."""
        ...


class BugBashStore(ScoringStore, CursorStore, typ.Protocol):
    """Full persistence surface used by the runtime."""


class FixEventSource(typ.Protocol):
    """Collaborator that yields newly-arrived fix-event records."""

    async def fetch_after(
        self, cursor: dt.datetime, limit: int
    ) -> list[FixEventRecordInfo]:
        """Return up to ``limit`` records strictly newer than ``cursor``.

        Records are ordered by non-decreasing ``received_at``, then by id.
        """
        ...

    async def fetch_at(self, received_at: dt.datetime) -> list[FixEventRecordInfo]:
        """Return every record received at exactly ``received_at``, by id."""
        ...
