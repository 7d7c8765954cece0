"""Background worker that drains fix-event records into the scoring pipeline.

The scheduler is an explicit object owned by the composition root. It is
either stopped or running exactly one worker task::

    scheduler = PollScheduler(store, source, PollConfig.from_env())
    handle = scheduler.start()
    ...
    await scheduler.stop()

Each tick reads the persisted cursor, fetches records received strictly
after it, applies each record through :func:`apply_fix_event` and persists
the cursor past every record it handled. A record that fails to decode or
apply is reported on the handle's error channel and skipped; it is not
retried.

A full batch is extended with every remaining record that shares the last
record's ``received_at``, so the strict cursor never strands part of a
same-instant group.

Stopping is cooperative. The worker is never cancelled: a record's pipeline
application always runs to completion. When the grace period lapses the
scheduler stops waiting and detaches the worker, which exits at the next
record boundary. A worker started afterwards waits for detached ones before
its first tick.
"""

from __future__ import annotations

import asyncio
import dataclasses
import typing as typ

from bugbash.common.time import utcnow
from bugbash.persistence.storage import POLL_CURSOR_ID
from bugbash.polling.config import PollConfig
from bugbash.polling.errors import PollRecordError, SchedulerAlreadyRunningError
from bugbash.polling.observability import PollEventLogger
from bugbash.scoring.models import convert_fix_event
from bugbash.scoring.pipeline import apply_fix_event

if typ.TYPE_CHECKING:
    import datetime as dt

    from bugbash.persistence.store import PollCursorState
    from bugbash.polling.protocol import BugBashStore, FixEventSource
    from bugbash.polling.source import FixEventRecordInfo

type Clock = typ.Callable[[], dt.datetime]
type ErrorChannel = asyncio.Queue[PollRecordError]

# Failures beyond this many unread entries push out the oldest.
ERROR_CHANNEL_CAPACITY = 256


@dataclasses.dataclass(frozen=True, slots=True)
class PollHandle:
    """Controls of one worker run.

    Attributes
    ----------
    stop_event
        Signal observed by the worker before each fetch and between records.
    errors
        Per-record failures, oldest first.
    task
        The worker task.

    """

    stop_event: asyncio.Event
    errors: ErrorChannel
    task: asyncio.Task[None]


@dataclasses.dataclass(frozen=True, slots=True)
class PollTickResult:
    """Outcome of a single poll tick."""

    processed: int
    failed: int
    cursor: dt.datetime


def _report(errors: ErrorChannel | None, error: PollRecordError) -> None:
    if errors is None:
        return
    if errors.full():
        errors.get_nowait()
    errors.put_nowait(error)


class PollScheduler:
    """Start, stop and restart the poll worker and manage its cursor."""

    def __init__(
        self,
        store: BugBashStore,
        source: FixEventSource,
        config: PollConfig | None = None,
        *,
        clock: Clock = utcnow,
        event_logger: PollEventLogger | None = None,
        cursor_id: str = POLL_CURSOR_ID,
    ) -> None:
        """Wire the scheduler to its store, record source and settings."""
        self._store = store
        self._source = source
        self._config = config or PollConfig()
        self._clock = clock
        self._logger = event_logger or PollEventLogger()
        self._cursor_id = cursor_id
        self._cursor_lock = asyncio.Lock()
        self._lifecycle_lock = asyncio.Lock()
        self._handle: PollHandle | None = None
        self._detached: set[asyncio.Task[None]] = set()

    @property
    def config(self) -> PollConfig:
        """Settings the worker runs with."""
        return self._config

    @property
    def handle(self) -> PollHandle | None:
        """Controls of the current run, or ``None`` when stopped."""
        return self._handle

    @property
    def is_running(self) -> bool:
        """Whether a worker task is alive."""
        return self._handle is not None and not self._handle.task.done()

    @property
    def detached(self) -> frozenset[asyncio.Task[None]]:
        """Stopped workers still finishing their current record."""
        return frozenset(self._detached)

    def start(self) -> PollHandle:
        """Launch the worker with a fresh stop signal and error channel.

        Must be called from a running event loop. The new worker waits for
        any detached worker to exit before its first tick.

        Raises
        ------
        SchedulerAlreadyRunningError
            If a worker is already running.

        """
        if self.is_running:
            raise SchedulerAlreadyRunningError
        stop_event = asyncio.Event()
        errors: ErrorChannel = asyncio.Queue(maxsize=ERROR_CHANNEL_CAPACITY)
        task = asyncio.create_task(
            self._run(stop_event, errors, frozenset(self._detached)),
            name="bugbash-poll-worker",
        )
        self._handle = PollHandle(stop_event=stop_event, errors=errors, task=task)
        self._logger.log_worker_started(self._config.interval_seconds)
        return self._handle

    async def stop(self) -> None:
        """Signal the worker and wait up to the grace period for it to exit.

        The worker is never cancelled. If it is still applying a record when
        the grace period lapses it is detached and left to finish. Does
        nothing when the scheduler is already stopped.
        """
        async with self._lifecycle_lock:
            await self._stop_current()

    async def restart(self) -> PollHandle:
        """Stop the current worker, if any, and start a new one."""
        async with self._lifecycle_lock:
            await self._stop_current()
            return self.start()

    async def wait_detached(self) -> None:
        """Wait for every detached worker to exit."""
        if self._detached:
            await asyncio.wait(set(self._detached))

    async def _stop_current(self) -> None:
        handle = self._handle
        if handle is None:
            return
        handle.stop_event.set()
        done, _ = await asyncio.wait([handle.task], timeout=self._config.grace_seconds)
        if done:
            self._logger.log_worker_stopped()
        else:
            self._detached.add(handle.task)
            handle.task.add_done_callback(self._on_detached_done)
            self._logger.log_worker_detached(self._config.grace_seconds)
        self._handle = None

    def _on_detached_done(self, task: asyncio.Task[None]) -> None:
        self._detached.discard(task)
        self._logger.log_worker_stopped()

    async def get_cursor(self) -> PollCursorState:
        """Return the persisted cursor."""
        return await self._store.select_poll_cursor(self._cursor_id)

    async def set_cursor(self, last_polled: dt.datetime) -> PollCursorState:
        """Overwrite the persisted cursor's watermark.

        Works whether or not the worker is running and does not trigger a
        poll. Waits for an in-flight tick to persist its own cursor first.
        """
        async with self._cursor_lock:
            current = await self._store.select_poll_cursor(self._cursor_id)
            updated = current.advanced_to(last_polled)
            await self._store.update_poll_cursor(updated)
        self._logger.log_cursor_set(current.last_polled, last_polled)
        return updated

    async def poll_once(
        self,
        errors: ErrorChannel | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> PollTickResult:
        """Drain one batch of records and persist the advanced cursor.

        Parameters
        ----------
        errors
            Channel receiving a :class:`PollRecordError` per failing record.
        stop_event
            When set between records, the remaining records are left for the
            next run and the cursor stops after the last handled one.

        Returns
        -------
        PollTickResult
            Records handled, records failed and the cursor after the tick.

        """
        async with self._cursor_lock:
            cursor = await self._store.select_poll_cursor(self._cursor_id)
            records = await self._fetch_batch(cursor.last_polled)

            last_polled = cursor.last_polled
            handled = 0
            failed = 0
            for record in records:
                if stop_event is not None and stop_event.is_set():
                    break
                try:
                    message = convert_fix_event(record.payload)
                    await apply_fix_event(self._store, self._clock(), message)
                except Exception as exc:  # noqa: BLE001 - reported on the channel
                    failed += 1
                    error = PollRecordError(record.id, exc)
                    self._logger.log_record_failed(error)
                    _report(errors, error)
                handled += 1
                last_polled = max(last_polled, record.received_at)

            if last_polled != cursor.last_polled:
                await self._store.update_poll_cursor(cursor.advanced_to(last_polled))

        self._logger.log_tick_completed(
            processed=handled, failed=failed, cursor=last_polled
        )
        return PollTickResult(processed=handled, failed=failed, cursor=last_polled)

    async def _fetch_batch(self, after: dt.datetime) -> list[FixEventRecordInfo]:
        records = list(await self._source.fetch_after(after, self._config.batch_size))
        if len(records) < self._config.batch_size:
            return records
        # The cursor lands on the last timestamp; finish that group now.
        tail = records[-1].received_at
        seen = {record.id for record in records}
        records.extend(
            record
            for record in await self._source.fetch_at(tail)
            if record.id not in seen
        )
        return records

    async def _run(
        self,
        stop_event: asyncio.Event,
        errors: ErrorChannel,
        predecessors: frozenset[asyncio.Task[None]] = frozenset(),
    ) -> None:
        if predecessors:
            await asyncio.wait(predecessors)
        while not stop_event.is_set():
            try:
                await self.poll_once(errors, stop_event)
            except Exception as exc:  # noqa: BLE001 - worker outlives a bad tick
                self._logger.log_tick_failed(exc)
            try:
                await asyncio.wait_for(
                    stop_event.wait(), timeout=self._config.interval_seconds
                )
            except TimeoutError:
                continue
