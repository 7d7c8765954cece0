"""Structured log events for the scoring engine."""

from __future__ import annotations

import enum
import typing as typ

from bugbash.logging import format_event_fields, get_logger, log_info, log_warning
from bugbash.logging import log_error as _log_error

if typ.TYPE_CHECKING:
    from bugbash.scoring.errors import MalformedClassificationError
    from bugbash.scoring.models import FixEventMessage, ScoreApplication

logger = get_logger(__name__)


class ScoringEventType(enum.StrEnum):
    """Structured log event types for scoring observability."""

    ORGANIZATION_UNTRACKED = "scoring.organization.untracked"
    PARTICIPANTS_RESOLVED = "scoring.participants.resolved"
    CLASSIFICATION_MALFORMED = "scoring.classification.malformed"
    SCORE_APPLIED = "scoring.score.applied"
    APPLY_FAILED = "scoring.apply.failed"


def _message_fields(message: FixEventMessage) -> dict[str, object]:
    return {
        "event_source": message.event_source,
        "repo": f"{message.repo_owner}/{message.repo_name}",
        "pull_request_id": message.pull_request_id,
        "trigger_user": message.trigger_user,
    }


class ScoringEventLogger:
    """Emit scoring events through femtologging.

    Successful steps log at INFO, discarded input at WARNING and aborted
    applications at ERROR.
    """

    def log_organization_untracked(self, message: FixEventMessage) -> None:
        """Log a fix event skipped because its owner is not tracked."""
        log_info(
            logger,
            "%s",
            format_event_fields(
                ScoringEventType.ORGANIZATION_UNTRACKED, _message_fields(message)
            ),
        )

    def log_participants_resolved(self, message: FixEventMessage, count: int) -> None:
        """Log how many participants a fix event resolved to."""
        fields = _message_fields(message)
        fields["participants"] = count
        log_info(
            logger,
            "%s",
            format_event_fields(ScoringEventType.PARTICIPANTS_RESOLVED, fields),
        )

    def log_malformed_classification(
        self,
        message: FixEventMessage,
        campaign_name: str,
        error: MalformedClassificationError,
    ) -> None:
        """Log a classification entry that was ignored during scoring."""
        fields = _message_fields(message)
        fields["campaign"] = campaign_name
        fields["label"] = "/".join(error.path)
        fields["value_type"] = error.type_name
        log_warning(
            logger,
            "%s",
            format_event_fields(ScoringEventType.CLASSIFICATION_MALFORMED, fields),
        )

    def log_score_applied(
        self, message: FixEventMessage, application: ScoreApplication
    ) -> None:
        """Log a committed score event and running-total adjustment."""
        fields = _message_fields(message)
        fields["participant_id"] = application.participant.id
        fields["campaign"] = application.participant.campaign_name
        fields["new_points"] = application.new_points
        fields["prior_points"] = application.prior_points
        fields["delta"] = application.delta
        log_info(
            logger, "%s", format_event_fields(ScoringEventType.SCORE_APPLIED, fields)
        )

    def log_apply_failed(
        self,
        message: FixEventMessage,
        error: BaseException,
        *,
        applied: int,
        resolved: int,
    ) -> None:
        """Log an application aborted part-way through its participants."""
        fields = _message_fields(message)
        fields["applied"] = applied
        fields["resolved"] = resolved
        fields["error_type"] = type(error).__name__
        fields["error_message"] = str(error)
        _log_error(
            logger,
            "%s",
            format_event_fields(ScoringEventType.APPLY_FAILED, fields),
            exc_info=error,
        )
