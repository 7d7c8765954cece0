"""Bug Bash log output through femtologging.

Messages are interpolated before they reach femtologging, which takes a
finished string. Scoring and polling events are rendered as
``[event.name] key=value ...`` lines by :func:`format_event_fields`::

    logger = get_logger(__name__)
    log_info(logger, "%s", format_event_fields("poll.worker.stopped", {}))

"""

from __future__ import annotations

import enum
import typing as typ

from femtologging import basicConfig, get_logger

DEFAULT_LEVEL = "INFO"


class LogLevel(enum.StrEnum):
    """Level names femtologging accepts."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class _SupportsLog(typ.Protocol):
    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Map ``BUGBASH_LOG_LEVEL`` text onto a femtologging level.

    Returns
    -------
    tuple[str, bool]
        The level to use and whether the input had to be replaced by
        :data:`DEFAULT_LEVEL`.

    """
    candidate = (level or "").strip().upper()
    if candidate in LogLevel.__members__:
        return candidate, False
    return DEFAULT_LEVEL, True


def configure_logging(level: str, *, force: bool = False) -> tuple[str, bool]:
    """Install the root femtologging handler at the normalised ``level``."""
    resolved, replaced = normalize_log_level(level)
    basicConfig(level=resolved, force=force)
    return resolved, replaced


def format_log_message(template: str, *args: object) -> str:
    """Interpolate ``args`` into a percent-style ``template``.

    A template without arguments is returned unchanged, so literal ``%``
    signs survive.
    """
    return template % args if args else template


def format_event_fields(event: str, fields: typ.Mapping[str, object]) -> str:
    """Render an event name and its fields as one log line.

    >>> format_event_fields("poll.tick.completed", {"records": 3})
    '[poll.tick.completed] records=3'
    """
    parts = [f"[{event}]"]
    parts.extend(f"{key}={value}" for key, value in fields.items())
    return " ".join(parts)


def emit(
    logger: _SupportsLog,
    level: LogLevel,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Send an interpolated message to ``logger`` at ``level``."""
    logger.log(
        level.value,
        format_log_message(template, *args),
        exc_info=exc_info,
        stack_info=False,
    )


def log_debug(logger: _SupportsLog, template: str, *args: object) -> None:
    """Emit at DEBUG."""
    emit(logger, LogLevel.DEBUG, template, *args)


def log_info(
    logger: _SupportsLog, template: str, *args: object, exc_info: object | None = None
) -> None:
    """Emit at INFO."""
    emit(logger, LogLevel.INFO, template, *args, exc_info=exc_info)


def log_warning(
    logger: _SupportsLog, template: str, *args: object, exc_info: object | None = None
) -> None:
    """Emit at WARNING, optionally with the exception that caused it."""
    emit(logger, LogLevel.WARNING, template, *args, exc_info=exc_info)


def log_error(
    logger: _SupportsLog, template: str, *args: object, exc_info: object | None = None
) -> None:
    """Emit at ERROR, optionally with the exception that caused it."""
    emit(logger, LogLevel.ERROR, template, *args, exc_info=exc_info)


def log_exception(logger: _SupportsLog, message: str, exc: BaseException) -> None:
    """Emit ``message`` at ERROR with ``exc`` attached as its traceback."""
    emit(logger, LogLevel.ERROR, message, exc_info=exc)


__all__ = [
    "DEFAULT_LEVEL",
    "LogLevel",
    "configure_logging",
    "emit",
    "format_event_fields",
    "format_log_message",
    "get_logger",
    "log_debug",
    "log_error",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
