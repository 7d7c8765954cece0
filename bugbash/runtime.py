"""Bug Bash runtime entrypoint.

``bugbash.runtime:create_app`` is the Granian factory target. When
``BUGBASH_DATABASE_URL`` is set it builds the engine, store, record source
and poll scheduler and returns an app with admin endpoints whose lifespan
starts and stops the poll worker. Otherwise it starts in health-only mode.

Configuration is driven by environment variables:

- ``BUGBASH_HOST``: Bind address (default ``0.0.0.0``)
- ``BUGBASH_PORT``: Listen port (default ``8080``)
- ``BUGBASH_LOG_LEVEL``: Log level (default ``INFO``)
- ``BUGBASH_DATABASE_URL``: Database connection URL (optional)
- ``BUGBASH_INIT_STORAGE``: Create tables on startup when truthy

Poll, store and admin settings are read by :class:`PollConfig`,
:class:`StoreConfig` and :class:`AdminCredentials`.

Run the service directly with ``python -m bugbash.runtime``.
"""

from __future__ import annotations

import asyncio
import os
import typing as typ

from bugbash.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_exception,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["create_app", "main"]

logger = get_logger(__name__)

_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid BUGBASH_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def _init_storage_requested() -> bool:
    raw = os.environ.get("BUGBASH_INIT_STORAGE", "")
    return raw.strip().lower() in {"1", "true", "yes"}


def create_app() -> falcon.asgi.App:
    """Create the Falcon ASGI application from the environment.

    Returns
    -------
    falcon.asgi.App
        Health-only app without ``BUGBASH_DATABASE_URL``; otherwise the full
        app with admin endpoints and the poll worker lifespan.

    """
    from bugbash.api.app import create_app as _create_api_app

    database_url = os.environ.get("BUGBASH_DATABASE_URL")

    if database_url is None:
        log_warning(logger, "BUGBASH_DATABASE_URL not set; serving health only")
        return _create_api_app()

    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from bugbash.api.app import AppDependencies
    from bugbash.api.auth import AdminCredentials
    from bugbash.persistence import SqlAlchemyBugBashStore, StoreConfig, init_storage
    from bugbash.polling import DatabaseFixEventSource, PollConfig, PollScheduler

    engine = create_async_engine(database_url)
    if _init_storage_requested():
        try:
            asyncio.run(init_storage(engine))
        except Exception as exc:
            log_exception(logger, "Storage initialisation failed", exc)
            raise
        # Connections opened under asyncio.run belong to a closed loop.
        asyncio.run(engine.dispose())

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    store = SqlAlchemyBugBashStore(session_factory, StoreConfig.from_env())
    scheduler = PollScheduler(
        store, DatabaseFixEventSource(session_factory), PollConfig.from_env()
    )
    credentials = AdminCredentials.from_env()
    if not credentials.configured:
        log_warning(
            logger,
            "BUGBASH_ADMIN_USERNAME/BUGBASH_ADMIN_PASSWORD not set; "
            "admin endpoints will reject every request",
        )

    deps = AppDependencies(store=store, scheduler=scheduler, credentials=credentials)
    return _create_api_app(deps)


def main() -> None:
    """Start the Bug Bash runtime server using Granian.

    Reads ``BUGBASH_HOST``, ``BUGBASH_PORT``, and ``BUGBASH_LOG_LEVEL`` from
    the environment and starts the ASGI server.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("BUGBASH_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port = _parse_port(os.environ.get("BUGBASH_PORT", "8080"))
    log_level_str = os.environ.get("BUGBASH_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid BUGBASH_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting Bug Bash runtime on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "bugbash.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
