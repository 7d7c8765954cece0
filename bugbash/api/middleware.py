"""ASGI lifespan middleware that ties the poll worker to the app lifecycle.

Falcon calls ``process_startup`` and ``process_shutdown`` when the ASGI
server sends lifespan events, so the worker runs inside the server's event
loop and is stopped before the loop closes::

    app = falcon.asgi.App(middleware=[PollerLifecycle(scheduler)])

"""

from __future__ import annotations

import typing as typ

from bugbash.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    from bugbash.polling.scheduler import PollScheduler

__all__ = ["PollerLifecycle"]

logger = get_logger(__name__)


class PollerLifecycle:
    """Start the poll scheduler on startup and stop it on shutdown.

    Parameters
    ----------
    scheduler
        Scheduler owned by the composition root.

    """

    def __init__(self, scheduler: PollScheduler) -> None:
        """Store the scheduler to manage."""
        self._scheduler = scheduler

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Start the worker unless polling is disabled."""
        if not self._scheduler.config.enabled:
            log_info(logger, "Polling disabled; worker not started")
            return
        if not self._scheduler.is_running:
            self._scheduler.start()

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Stop the worker and let a detached one finish its record."""
        await self._scheduler.stop()
        await self._scheduler.wait_detached()
