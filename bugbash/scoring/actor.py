"""Dramatiq actor for replaying fix events outside the poller.

Operators use the actor to re-score an event that the poller skipped or
that arrived through another channel:

>>> replay_fix_event_job.send(
...     database_url="postgresql+asyncpg://...",
...     message_json='{"eventSource": "GitHub", "triggerUser": "alice", ...}',
... )

Importing the module declares the actor, which needs a broker. Deployed
workers configure one before import; otherwise an in-process ``StubBroker``
is installed when ``BUGBASH_ALLOW_STUB_BROKER`` is set or pytest is loaded.

"""

from __future__ import annotations

import asyncio
import os
import sys
import threading
import typing as typ

import dramatiq
from dramatiq.brokers.stub import StubBroker
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from bugbash.common.time import parse_aware_iso, utcnow
from bugbash.persistence.config import StoreConfig
from bugbash.persistence.store import SqlAlchemyBugBashStore
from bugbash.scoring.models import decode_fix_event
from bugbash.scoring.pipeline import apply_fix_event

if typ.TYPE_CHECKING:
    import datetime as dt

type SessionFactory = async_sessionmaker[AsyncSession]

_ENGINE_CACHE: dict[str, AsyncEngine] = {}
_STORE_CACHE: dict[str, SqlAlchemyBugBashStore] = {}
_CACHE_LOCK = threading.Lock()
_BROKER_LOCK = threading.Lock()


def stub_broker_permitted() -> bool:
    """Return whether a ``StubBroker`` may serve the replay actor."""
    opt_in = os.environ.get("BUGBASH_ALLOW_STUB_BROKER", "").strip().lower()
    return opt_in in {"1", "true", "yes"} or "pytest" in sys.modules


def install_broker() -> dramatiq.Broker:
    """Return the process broker, installing a ``StubBroker`` if permitted.

    Raises
    ------
    RuntimeError
        If no broker is configured and a stub is not permitted.

    """
    with _BROKER_LOCK:
        try:
            return dramatiq.get_broker()
        except (ImportError, LookupError):
            # The default RabbitMQ broker is unusable without its client.
            pass
        if not stub_broker_permitted():
            message = (
                "No Dramatiq broker is configured for the replay actor; "
                "configure one or set BUGBASH_ALLOW_STUB_BROKER=1"
            )
            raise RuntimeError(message)
        broker = StubBroker()
        dramatiq.set_broker(broker)
        return broker


def _get_or_create_store(database_url: str) -> SqlAlchemyBugBashStore:
    """Return the cached store for ``database_url``, creating it if absent.

    Thread-safe: Dramatiq workers run actors on several threads.
    """
    with _CACHE_LOCK:
        if database_url not in _STORE_CACHE:
            engine = _ENGINE_CACHE.get(database_url)
            if engine is None:
                # Each job runs in its own event loop; connections must not outlive it.
                engine = create_async_engine(database_url, poolclass=NullPool)
                _ENGINE_CACHE[database_url] = engine
            session_factory: SessionFactory = async_sessionmaker(
                engine, expire_on_commit=False
            )
            _STORE_CACHE[database_url] = SqlAlchemyBugBashStore(
                session_factory, StoreConfig.from_env()
            )
        return _STORE_CACHE[database_url]


async def _replay_async(
    store: SqlAlchemyBugBashStore, message_json: str, now: dt.datetime
) -> list[dict[str, typ.Any]]:
    message = decode_fix_event(message_json)
    applications = await apply_fix_event(store, now, message)
    return [application.as_summary() for application in applications]


install_broker()


@dramatiq.actor
def replay_fix_event_job(
    database_url: str,
    message_json: str,
    *,
    now_iso: str | None = None,
) -> list[dict[str, typ.Any]]:
    """Decode a fix event and apply it through the scoring pipeline.

    Parameters
    ----------
    database_url
        SQLAlchemy URL for the database.
    message_json
        Fix event in its wire JSON form.
    now_iso
        Optional ISO-8601 instant with offset used to pick active campaigns.
        Defaults to the current time.

    Returns
    -------
    list[dict[str, Any]]
        One summary per participant scored.

    Raises
    ------
    FixEventDecodeError
        If ``message_json`` is not a valid fix event.
    ValueError
        If ``now_iso`` is not an ISO-8601 timestamp with an offset.

    """
    now = utcnow() if now_iso is None else parse_aware_iso(now_iso, field="now_iso")
    store = _get_or_create_store(database_url)
    return asyncio.run(_replay_async(store, message_json, now))
