"""Application factory for the Bug Bash Falcon ASGI application.

Create a health-only app (no database)::

    app = create_app()

Create a full app with admin endpoints and the poll worker lifecycle::

    deps = AppDependencies(
        store=store,
        scheduler=scheduler,
        credentials=AdminCredentials.from_env(),
    )
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from bugbash.api.auth import AdminAuthMiddleware, AdminCredentials
from bugbash.api.errors import (
    AdminAuthError,
    InvalidInputError,
    handle_admin_auth,
    handle_invalid_input,
    handle_scheduler_running,
)
from bugbash.api.health.resources import HealthResource, ReadyResource
from bugbash.polling.errors import SchedulerAlreadyRunningError

if typ.TYPE_CHECKING:
    from bugbash.polling.protocol import BugBashStore
    from bugbash.polling.scheduler import PollScheduler

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    When ``store`` and ``scheduler`` are both provided the application
    registers the admin endpoints and manages the poll worker. Otherwise
    only the health endpoints are registered.

    Attributes
    ----------
    store
        Scoring and cursor persistence.
    scheduler
        Poll scheduler owned by the composition root.
    credentials
        Admin Basic credentials; unset credentials reject every admin call.

    """

    store: BugBashStore | None = None
    scheduler: PollScheduler | None = None
    credentials: AdminCredentials = dc.field(default_factory=AdminCredentials)


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None`` or incomplete, only
        ``/health`` and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    deps = dependencies or AppDependencies()
    domain = deps.store is not None and deps.scheduler is not None

    middleware: list[object] = []
    if domain:
        from bugbash.api.middleware import PollerLifecycle

        scheduler = typ.cast("PollScheduler", deps.scheduler)
        middleware.append(PollerLifecycle(scheduler))
        middleware.append(AdminAuthMiddleware(deps.credentials))

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(deps.scheduler))

    if domain:
        from bugbash.api.admin.resources import (
            PollControlResource,
            PollCursorResource,
            ScoreReplayResource,
        )

        scheduler = typ.cast("PollScheduler", deps.scheduler)
        store = typ.cast("BugBashStore", deps.store)
        control = PollControlResource(scheduler)
        app.add_route("/admin/poll", PollCursorResource(scheduler))
        app.add_route("/admin/poll/restart", control, suffix="restart")
        app.add_route("/admin/poll/stop", control, suffix="stop")
        app.add_route("/admin/poll/errors", control, suffix="errors")
        app.add_route("/admin/score", ScoreReplayResource(store))

    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(AdminAuthError, handle_admin_auth)
    app.add_error_handler(SchedulerAlreadyRunningError, handle_scheduler_running)

    return app
