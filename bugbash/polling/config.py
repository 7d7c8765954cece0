"""Configuration for the fix-event poll scheduler.

Usage
-----
>>> config = PollConfig()
>>> config.interval_seconds
60.0

Or load from environment variables:

>>> import os
>>> os.environ["BUGBASH_POLL_INTERVAL_SECONDS"] = "15"
>>> PollConfig.from_env().interval_seconds
15.0

"""

from __future__ import annotations

import dataclasses as dc
import math
import os

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


@dc.dataclass(frozen=True, slots=True)
class PollConfig:
    """Timing and batching for the poll worker.

    Attributes
    ----------
    interval_seconds
        Pause between poll ticks. Default is 60 seconds.
    grace_seconds
        How long ``stop()`` waits for the worker to exit before detaching
        it. The worker is never cancelled. Default is 1 second.
    batch_size
        Records fetched per tick. A full batch also drains the rest of its
        last timestamp group. Default is 500.
    enabled
        Whether the runtime starts the poller on application startup.

    """

    interval_seconds: float = 60.0
    grace_seconds: float = 1.0
    batch_size: int = 500
    enabled: bool = True

    @staticmethod
    def _parse_positive_float(env_var: str, default: float) -> float:
        """Read a positive number env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            msg = f"{env_var} must be a number, got: {raw!r}"
            raise ValueError(msg) from exc
        if not math.isfinite(value) or value <= 0:
            msg = f"{env_var} must be positive, got: {value}"
            raise ValueError(msg)
        return value

    @staticmethod
    def _parse_positive_int(env_var: str, default: int) -> int:
        """Read a positive integer env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            msg = f"{env_var} must be an integer, got: {raw!r}"
            raise ValueError(msg) from exc
        if value < 1:
            msg = f"{env_var} must be positive, got: {value}"
            raise ValueError(msg)
        return value

    @staticmethod
    def _parse_bool(env_var: str, *, default: bool) -> bool:
        raw = os.environ.get(env_var, "").strip().lower()
        if not raw:
            return default
        if raw in _TRUTHY:
            return True
        if raw in _FALSY:
            return False
        msg = f"{env_var} must be a boolean flag, got: {raw!r}"
        raise ValueError(msg)

    @classmethod
    def from_env(cls) -> PollConfig:
        """Create configuration from environment variables.

        Reads ``BUGBASH_POLL_INTERVAL_SECONDS``, ``BUGBASH_POLL_GRACE_SECONDS``,
        ``BUGBASH_POLL_BATCH_SIZE`` and ``BUGBASH_POLL_ENABLED``.

        Raises
        ------
        ValueError
            If any variable is set to an invalid value.

        """
        return cls(
            interval_seconds=cls._parse_positive_float(
                "BUGBASH_POLL_INTERVAL_SECONDS", 60.0
            ),
            grace_seconds=cls._parse_positive_float("BUGBASH_POLL_GRACE_SECONDS", 1.0),
            batch_size=cls._parse_positive_int("BUGBASH_POLL_BATCH_SIZE", 500),
            enabled=cls._parse_bool("BUGBASH_POLL_ENABLED", default=True),
        )
