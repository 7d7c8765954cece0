"""Unit tests for the database-backed fix-event source."""

from __future__ import annotations

import datetime as dt
import typing as typ

import pytest

from bugbash.polling.source import DatabaseFixEventSource
from tests.helpers.builders import NOW, wire_payload

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


def _at(minutes: int) -> dt.datetime:
    return NOW + dt.timedelta(minutes=minutes)


@pytest.mark.asyncio
async def test_fetch_after_is_strict_and_ordered(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """Records come back oldest first, excluding the cursor instant."""
    source = DatabaseFixEventSource(session_factory)
    late = await source.append(wire_payload(pullRequestId=3), _at(3))
    at_cursor = await source.append(wire_payload(pullRequestId=1), _at(1))
    early = await source.append(wire_payload(pullRequestId=2), _at(2))

    records = await source.fetch_after(_at(1), limit=10)

    assert [record.id for record in records] == [early, late]
    assert at_cursor not in {record.id for record in records}
    assert records[0].payload["pullRequestId"] == 2
    assert records[0].received_at == _at(2)


@pytest.mark.asyncio
async def test_fetch_after_honours_limit(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """No more than ``limit`` records are returned."""
    source = DatabaseFixEventSource(session_factory)
    for minute in range(5):
        await source.append(wire_payload(), _at(minute))

    records = await source.fetch_after(NOW - dt.timedelta(days=1), limit=2)

    assert [record.received_at for record in records] == [_at(0), _at(1)]


@pytest.mark.asyncio
async def test_same_instant_records_are_ordered_by_id(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """Ties on arrival time fall back to insertion order."""
    source = DatabaseFixEventSource(session_factory)
    first = await source.append(wire_payload(), NOW)
    second = await source.append(wire_payload(), NOW)

    records = await source.fetch_after(NOW - dt.timedelta(seconds=1), limit=10)

    assert [record.id for record in records] == [first, second]


@pytest.mark.asyncio
async def test_fetch_at_returns_whole_instant_group(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """Every record at the given instant is returned, and nothing else."""
    source = DatabaseFixEventSource(session_factory)
    first = await source.append(wire_payload(), _at(1))
    second = await source.append(wire_payload(), _at(1))
    await source.append(wire_payload(), _at(2))

    records = await source.fetch_at(_at(1))

    assert [record.id for record in records] == [first, second]
