"""Unit tests for the femtologging helpers."""

from __future__ import annotations

import typing as typ

import pytest

from bugbash import logging as bugbash_logging
from bugbash.logging import (
    LogLevel,
    configure_logging,
    emit,
    format_event_fields,
    format_log_message,
    log_debug,
    log_error,
    log_exception,
    log_info,
    log_warning,
    normalize_log_level,
)
from tests.helpers.logs import LogCall, RecordingLogger


class TestNormalizeLogLevel:
    """Tests for normalize_log_level."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("debug", "DEBUG"), ("  Warn ", "WARN"), ("CRITICAL", "CRITICAL")],
    )
    def test_known_levels_are_upper_cased(self, raw: str, expected: str) -> None:
        """Known names are accepted whatever their case or padding."""
        assert normalize_log_level(raw) == (expected, False), (
            f"Expected {raw!r} to be accepted as {expected}."
        )

    @pytest.mark.parametrize("raw", [None, "", "verbose"])
    def test_unknown_levels_fall_back_to_info(self, raw: str | None) -> None:
        """Missing or unknown names are replaced and flagged."""
        assert normalize_log_level(raw) == ("INFO", True), (
            f"Expected {raw!r} to fall back to INFO."
        )


def test_configure_logging_installs_resolved_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """basicConfig receives the resolved level and the force flag."""
    seen: list[dict[str, typ.Any]] = []
    monkeypatch.setattr(
        bugbash_logging, "basicConfig", lambda **kwargs: seen.append(kwargs)
    )

    assert configure_logging("loud") == ("INFO", True)
    assert configure_logging("error", force=True) == ("ERROR", False)
    assert seen == [
        {"level": "INFO", "force": False},
        {"level": "ERROR", "force": True},
    ], "Expected one basicConfig call per configure_logging call."


def test_format_log_message_leaves_bare_templates_alone() -> None:
    """Templates are interpolated only when arguments are given."""
    assert format_log_message("%d of %s", 3, "five") == "3 of five"
    assert format_log_message("100% done") == "100% done"


def test_format_event_fields_keeps_field_order() -> None:
    """Fields follow the bracketed event name in insertion order."""
    line = format_event_fields(
        "poll.tick.completed", {"records_processed": 3, "cursor": "2024-07-14"}
    )
    assert line == "[poll.tick.completed] records_processed=3 cursor=2024-07-14"
    assert format_event_fields("poll.worker.stopped", {}) == "[poll.worker.stopped]"


@pytest.mark.parametrize(
    ("helper", "level"),
    [
        (log_info, "INFO"),
        (log_warning, "WARNING"),
        (log_error, "ERROR"),
    ],
)
def test_level_helpers_forward_exc_info(
    helper: typ.Callable[..., None], level: str
) -> None:
    """Each helper interpolates its template and passes the exception on."""
    logger = RecordingLogger()
    exc = ValueError("boom")

    helper(logger, "record %d: %s", 7, "bad", exc_info=exc)

    assert logger.calls == [LogCall(level, "record 7: bad", exc)]


def test_log_debug_has_no_exception_slot() -> None:
    """DEBUG lines carry no exception information."""
    logger = RecordingLogger()

    log_debug(logger, "fetched %d", 4)

    assert logger.calls == [LogCall("DEBUG", "fetched 4", None)]


def test_log_exception_attaches_exception() -> None:
    """The exception is attached at ERROR and the message is not interpolated."""
    logger = RecordingLogger()
    exc = RuntimeError("db down")

    log_exception(logger, "Storage initialisation failed (100%)", exc)

    assert logger.calls == [
        LogCall("ERROR", "Storage initialisation failed (100%)", exc)
    ]


def test_emit_uses_the_enum_value() -> None:
    """emit sends the plain level name femtologging expects."""
    logger = RecordingLogger()

    emit(logger, LogLevel.CRITICAL, "halt")

    assert logger.calls[0].level == "CRITICAL"
