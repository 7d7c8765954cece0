"""HTTP Basic authentication for the admin endpoints.

A single static credential pair, read from ``BUGBASH_ADMIN_USERNAME`` and
``BUGBASH_ADMIN_PASSWORD``, guards every route under ``/admin``. When either
variable is unset every admin request is rejected.
"""

from __future__ import annotations

import base64
import binascii
import dataclasses as dc
import os
import secrets
import typing as typ

from bugbash.api.errors import AdminAuthError

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = ["ADMIN_PREFIX", "AdminAuthMiddleware", "AdminCredentials"]

ADMIN_PREFIX = "/admin"


@dc.dataclass(frozen=True, slots=True)
class AdminCredentials:
    """Expected admin username and password."""

    username: str | None = None
    password: str | None = None

    @property
    def configured(self) -> bool:
        """Whether both halves of the credential are set."""
        return bool(self.username) and bool(self.password)

    @classmethod
    def from_env(cls) -> AdminCredentials:
        """Read ``BUGBASH_ADMIN_USERNAME`` and ``BUGBASH_ADMIN_PASSWORD``."""
        return cls(
            username=os.environ.get("BUGBASH_ADMIN_USERNAME") or None,
            password=os.environ.get("BUGBASH_ADMIN_PASSWORD") or None,
        )

    def verify(self, authorization: str | None) -> None:
        """Check an ``Authorization`` header value against the credentials.

        Raises
        ------
        AdminAuthError
            If credentials are not configured, the header is missing or
            malformed, or the username or password does not match.

        """
        if not self.configured:
            raise AdminAuthError.not_configured()
        username, password = _parse_basic(authorization)
        expected_user = typ.cast("str", self.username).encode()
        expected_password = typ.cast("str", self.password).encode()
        user_ok = secrets.compare_digest(username.encode(), expected_user)
        password_ok = secrets.compare_digest(password.encode(), expected_password)
        if not (user_ok and password_ok):
            raise AdminAuthError.invalid_credentials()


def _parse_basic(authorization: str | None) -> tuple[str, str]:
    if not authorization:
        raise AdminAuthError.missing_header()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "basic" or not token.strip():
        raise AdminAuthError.missing_header()
    try:
        decoded = base64.b64decode(token.strip(), validate=True).decode()
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise AdminAuthError.invalid_credentials() from exc
    username, sep, password = decoded.partition(":")
    if not sep:
        raise AdminAuthError.invalid_credentials()
    return username, password


class AdminAuthMiddleware:
    """Falcon middleware rejecting unauthenticated ``/admin`` requests."""

    def __init__(self, credentials: AdminCredentials) -> None:
        """Store the expected credentials."""
        self._credentials = credentials

    async def process_request(self, req: Request, _resp: Response) -> None:
        """Verify Basic credentials on admin paths; other paths pass through."""
        if req.path != ADMIN_PREFIX and not req.path.startswith(f"{ADMIN_PREFIX}/"):
            return
        self._credentials.verify(req.get_header("Authorization"))
