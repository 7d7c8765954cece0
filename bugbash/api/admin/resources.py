"""Admin resources for the poll cursor, poll worker and score replay.

All routes sit under ``/admin`` and are guarded by
:class:`bugbash.api.auth.AdminAuthMiddleware`::

    app.add_route("/admin/poll", PollCursorResource(scheduler))
    app.add_route("/admin/poll/restart", control, suffix="restart")
    app.add_route("/admin/poll/stop", control, suffix="stop")
    app.add_route("/admin/poll/errors", control, suffix="errors")
    app.add_route("/admin/score", ScoreReplayResource(store))

"""

from __future__ import annotations

import datetime as dt
import typing as typ

import falcon
import msgspec

from bugbash.api.errors import InvalidInputError
from bugbash.api.health.resources import poller_state
from bugbash.common.time import parse_aware_iso, utcnow
from bugbash.scoring.errors import FixEventDecodeError
from bugbash.scoring.models import decode_fix_event
from bugbash.scoring.pipeline import apply_fix_event

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from bugbash.persistence.store import PollCursorState
    from bugbash.polling.errors import PollRecordError
    from bugbash.polling.scheduler import PollScheduler
    from bugbash.scoring.protocol import ScoringStore

__all__ = [
    "PollControlResource",
    "PollCursorResource",
    "PollCursorUpdate",
    "ScoreReplayResource",
]


class PollCursorUpdate(msgspec.Struct, frozen=True):
    """Request body for ``PUT /admin/poll``."""

    last_polled: typ.Annotated[dt.datetime, msgspec.Meta(tz=True)] = msgspec.field(
        name="lastPolled"
    )


def _serialize_cursor(cursor: PollCursorState) -> dict[str, typ.Any]:
    return {
        "id": cursor.id,
        "lastPolled": cursor.last_polled.isoformat(),
        "updatedAt": cursor.updated_at.isoformat() if cursor.updated_at else None,
    }


def _serialize_record_error(error: PollRecordError) -> dict[str, typ.Any]:
    return {
        "recordId": error.record_id,
        "errorType": type(error.cause).__name__,
        "message": str(error.cause),
    }


async def _read_body(req: Request) -> bytes:
    body = await req.stream.read()
    if not body:
        raise InvalidInputError("request body is required")
    return body


class PollCursorResource:
    """Read or overwrite the persisted poll cursor."""

    def __init__(self, scheduler: PollScheduler) -> None:
        """Attach the scheduler that owns the cursor."""
        self._scheduler = scheduler

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /admin/poll."""
        cursor = await self._scheduler.get_cursor()
        media = _serialize_cursor(cursor)
        media["poller"] = poller_state(self._scheduler)
        resp.media = media
        resp.status = falcon.HTTP_200

    async def on_put(self, req: Request, resp: Response) -> None:
        """Handle PUT /admin/poll with ``{"lastPolled": "<ISO-8601>"}``.

        The timestamp must carry a timezone offset. The worker is neither
        started nor woken.
        """
        body = await _read_body(req)
        try:
            update = msgspec.json.decode(body, type=PollCursorUpdate)
        except msgspec.DecodeError as exc:
            raise InvalidInputError(str(exc), field="lastPolled") from exc
        await self._scheduler.set_cursor(update.last_polled.astimezone(dt.UTC))
        resp.status = falcon.HTTP_204


class PollControlResource:
    """Restart or stop the poll worker and drain its error channel."""

    def __init__(self, scheduler: PollScheduler) -> None:
        """Attach the scheduler to control."""
        self._scheduler = scheduler

    async def on_post_restart(self, _req: Request, resp: Response) -> None:
        """Handle POST /admin/poll/restart."""
        await self._scheduler.restart()
        resp.media = {"poller": poller_state(self._scheduler)}
        resp.status = falcon.HTTP_202

    async def on_post_stop(self, _req: Request, resp: Response) -> None:
        """Handle POST /admin/poll/stop."""
        await self._scheduler.stop()
        resp.media = {"poller": poller_state(self._scheduler)}
        resp.status = falcon.HTTP_200

    async def on_get_errors(self, _req: Request, resp: Response) -> None:
        """Handle GET /admin/poll/errors, removing the returned entries."""
        drained: list[dict[str, typ.Any]] = []
        handle = self._scheduler.handle
        if handle is not None:
            while not handle.errors.empty():
                drained.append(_serialize_record_error(handle.errors.get_nowait()))
        resp.media = {"errors": drained}
        resp.status = falcon.HTTP_200


class ScoreReplayResource:
    """Apply a fix event through the scoring pipeline on demand."""

    def __init__(self, store: ScoringStore) -> None:
        """Attach the store the pipeline runs against."""
        self._store = store

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle POST /admin/score with a fix event body.

        An optional ``now`` query parameter (ISO-8601 with offset) selects
        the instant used to decide which campaigns are active.
        """
        now = self._resolve_now(req.get_param("now"))
        body = await _read_body(req)
        try:
            message = decode_fix_event(body)
        except FixEventDecodeError as exc:
            raise InvalidInputError(exc.reason) from exc

        applications = await apply_fix_event(self._store, now, message)
        resp.media = {
            "applications": [application.as_summary() for application in applications]
        }
        resp.status = falcon.HTTP_200

    @staticmethod
    def _resolve_now(raw: str | None) -> dt.datetime:
        if raw is None:
            return utcnow()
        try:
            return parse_aware_iso(raw, field="now")
        except ValueError as exc:
            raise InvalidInputError(str(exc), field="now") from exc
