"""Persistence-layer error types."""

from __future__ import annotations


class TimezoneAwareRequiredError(ValueError):
    """Raised when datetime inputs lack timezone information."""

    def __init__(self, context: str) -> None:
        """Attach a consistent message for the failing context."""
        super().__init__(f"{context} must be timezone aware")

    @classmethod
    def for_column(cls) -> TimezoneAwareRequiredError:
        """Return an error for a naive value bound to a UTC column."""
        return cls("datetime column values")


class ParticipantNotFoundError(LookupError):
    """Raised when a score update targets a participant row that is gone."""

    def __init__(self, participant_id: str) -> None:
        """Record the missing participant identifier."""
        self.participant_id = participant_id
        super().__init__(f"participant {participant_id} does not exist")


class PollCursorNotFoundError(LookupError):
    """Raised when the poll cursor row cannot be updated."""

    def __init__(self, cursor_id: str) -> None:
        """Record the missing cursor identifier."""
        self.cursor_id = cursor_id
        super().__init__(f"poll cursor {cursor_id} does not exist")
