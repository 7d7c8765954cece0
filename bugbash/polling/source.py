"""Database-backed source of raw fix-event records."""

from __future__ import annotations

import dataclasses
import typing as typ

from sqlalchemy import select

from bugbash.logging import get_logger, log_debug
from bugbash.persistence.storage import FixEventRecord

if typ.TYPE_CHECKING:
    import datetime as dt

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class FixEventRecordInfo:
    """One raw record as handed to the poll worker."""

    id: int
    received_at: dt.datetime
    payload: dict[str, typ.Any]


class DatabaseFixEventSource:
    """Drain :class:`FixEventRecord` rows in arrival order."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Store the session factory used for reads."""
        self._session_factory = session_factory

    async def fetch_after(
        self, cursor: dt.datetime, limit: int
    ) -> list[FixEventRecordInfo]:
        """Return up to ``limit`` records received strictly after ``cursor``."""
        stmt = (
            select(FixEventRecord)
            .where(FixEventRecord.received_at > cursor)
            .order_by(FixEventRecord.received_at, FixEventRecord.id)
            .limit(limit)
        )
        rows = await self._load(stmt)
        log_debug(logger, "Fetched %d fix-event records after %s", len(rows), cursor)
        return rows

    async def fetch_at(self, received_at: dt.datetime) -> list[FixEventRecordInfo]:
        """Return every record received at exactly ``received_at``, by id."""
        stmt = (
            select(FixEventRecord)
            .where(FixEventRecord.received_at == received_at)
            .order_by(FixEventRecord.id)
        )
        rows = await self._load(stmt)
        log_debug(logger, "Fetched %d fix-event records at %s", len(rows), received_at)
        return rows

    async def _load(
        self, stmt: Select[tuple[FixEventRecord]]
    ) -> list[FixEventRecordInfo]:
        async with self._session_factory() as session:
            rows = (await session.scalars(stmt)).all()
        return [
            FixEventRecordInfo(
                id=row.id, received_at=row.received_at, payload=dict(row.payload)
            )
            for row in rows
        ]

    async def append(
        self, payload: typ.Mapping[str, typ.Any], received_at: dt.datetime
    ) -> int:
        """Store a raw fix-event payload and return its record id."""
        async with self._session_factory() as session, session.begin():
            record = FixEventRecord(received_at=received_at, payload=dict(payload))
            session.add(record)
            await session.flush()
            return record.id
