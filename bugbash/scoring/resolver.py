"""Resolve a fix event to the enrolled participants it scores."""

from __future__ import annotations

import typing as typ

from bugbash.scoring.observability import ScoringEventLogger

if typ.TYPE_CHECKING:
    import datetime as dt

    from bugbash.scoring.models import FixEventMessage, ParticipantInfo
    from bugbash.scoring.protocol import ScoringStore


async def resolve_participants(
    store: ScoringStore,
    message: FixEventMessage,
    now: dt.datetime,
    *,
    event_logger: ScoringEventLogger | None = None,
) -> list[ParticipantInfo]:
    """Return every participant the fix event should be scored for.

    Events from untracked organisations, unregistered users and users with
    no active campaign resolve to an empty list. A user enrolled in several
    active campaigns is returned once per campaign. Store errors propagate.

    Parameters
    ----------
    store
        Persistence capabilities used for the organisation and roster checks.
    message
        Incoming fix event. Its trigger user is lower-cased before matching.
    now
        Instant used to decide which campaigns are active.

    """
    logger_ = event_logger or ScoringEventLogger()

    if not await store.is_organization_valid(message.event_source, message.repo_owner):
        logger_.log_organization_untracked(message)
        return []

    normalized = message.with_normalized_user()
    participants = await store.select_participants_to_score(normalized, now)
    logger_.log_participants_resolved(normalized, len(participants))
    return participants
