"""Domain exceptions and Falcon error handlers for the API layer.

Register the handlers on the Falcon app::

    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(AdminAuthError, handle_admin_auth)
    app.add_error_handler(SchedulerAlreadyRunningError, handle_scheduler_running)

"""

from __future__ import annotations

import typing as typ

import falcon

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from bugbash.polling.errors import SchedulerAlreadyRunningError

__all__ = [
    "AdminAuthError",
    "InvalidInputError",
    "handle_admin_auth",
    "handle_invalid_input",
    "handle_scheduler_running",
]

ADMIN_REALM = "bugbash-admin"


class InvalidInputError(Exception):
    """Raised for client validation errors that should map to HTTP 400.

    Attributes
    ----------
    reason
        Human-readable description of the validation failure.
    field
        Optional name of the input field that failed validation.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Initialize with a validation reason and optional field name."""
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field is not None else reason
        super().__init__(message)


class AdminAuthError(Exception):
    """Raised when an admin request lacks valid credentials."""

    def __init__(self, reason: str) -> None:
        """Record why the request was rejected."""
        self.reason = reason
        super().__init__(reason)

    @classmethod
    def missing_header(cls) -> AdminAuthError:
        """Return an error for a request without Basic credentials."""
        return cls("basic credentials required")

    @classmethod
    def invalid_credentials(cls) -> AdminAuthError:
        """Return an error for credentials that do not match."""
        return cls("invalid credentials")

    @classmethod
    def not_configured(cls) -> AdminAuthError:
        """Return an error for a server without admin credentials."""
        return cls("admin credentials are not configured")


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to an HTTP 400 JSON response."""
    resp.status = falcon.HTTP_400
    media: dict[str, str] = {
        "title": "Invalid input",
        "description": ex.reason,
    }
    if ex.field is not None:
        media["field"] = ex.field
    resp.media = media


async def handle_admin_auth(
    _req: Request,
    resp: Response,
    ex: AdminAuthError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``AdminAuthError`` to an HTTP 401 challenge."""
    resp.status = falcon.HTTP_401
    resp.set_header("WWW-Authenticate", f'Basic realm="{ADMIN_REALM}"')
    resp.media = {"title": "Unauthorized", "description": ex.reason}


async def handle_scheduler_running(
    _req: Request,
    resp: Response,
    ex: SchedulerAlreadyRunningError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``SchedulerAlreadyRunningError`` to an HTTP 409 JSON response."""
    resp.status = falcon.HTTP_409
    resp.media = {"title": "Conflict", "description": str(ex)}
