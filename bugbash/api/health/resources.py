"""Liveness and readiness probe resources.

Both probes are unauthenticated and never touch the database::

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(scheduler))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from bugbash.polling.scheduler import PollScheduler

__all__ = ["HealthResource", "ReadyResource", "poller_state"]


def poller_state(scheduler: PollScheduler | None) -> str:
    """Describe the poll worker as ``running``, ``stopped`` or ``disabled``."""
    if scheduler is not None and scheduler.is_running:
        return "running"
    if scheduler is None or not scheduler.config.enabled:
        return "disabled"
    return "stopped"


class HealthResource:
    """Liveness probe; always ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe reporting the poll worker state.

    Always responds 200: an operator may stop the worker deliberately and
    must still reach the admin routes to restart it.
    """

    def __init__(self, scheduler: PollScheduler | None = None) -> None:
        """Attach the scheduler whose worker state is reported."""
        self._scheduler = scheduler

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        resp.media = {"status": "ready", "poller": poller_state(self._scheduler)}
        resp.status = HTTPStatus.OK
