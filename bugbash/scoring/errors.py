"""Errors specific to the scoring engine."""

from __future__ import annotations


class ScoringError(Exception):
    """Base class for scoring errors."""


class FixEventDecodeError(ScoringError):
    """Raised when a fix-event payload cannot be decoded into a message."""

    def __init__(self, reason: str) -> None:
        """Record why decoding failed."""
        self.reason = reason
        super().__init__(f"invalid fix event: {reason}")


class MalformedClassificationError(ScoringError):
    """A classification entry that is neither a count nor a nested mapping.

    Instances are collected rather than raised: the aggregator keeps walking
    and callers decide whether to log or discard them.
    """

    def __init__(self, path: tuple[str, ...], type_name: str) -> None:
        """Record where the entry sits in the tree and what it held."""
        self.path = path
        self.type_name = type_name
        label = "/".join(path)
        super().__init__(
            f"classification {label!r} has unsupported value type {type_name}"
        )
