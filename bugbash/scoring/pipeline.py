"""Apply a fix event to every participant it scores for."""

from __future__ import annotations

import typing as typ

from bugbash.scoring.calculator import compute_score
from bugbash.scoring.models import ScoreApplication
from bugbash.scoring.observability import ScoringEventLogger
from bugbash.scoring.resolver import resolve_participants

if typ.TYPE_CHECKING:
    import datetime as dt

    from bugbash.scoring.models import FixEventMessage
    from bugbash.scoring.protocol import ScoringStore


async def apply_fix_event(
    store: ScoringStore,
    now: dt.datetime,
    message: FixEventMessage,
    *,
    event_logger: ScoringEventLogger | None = None,
) -> list[ScoreApplication]:
    """Score ``message`` for each resolved participant and persist the result.

    Every participant gets an audit score event holding the absolute points
    for this pull request, and their running score is adjusted by the
    difference from the previously recorded absolute points. Re-delivering
    the same event therefore adds nothing.

    Participants are processed in resolver order. The first store failure
    stops the loop and is re-raised; participants already processed keep
    their committed score events and totals.

    Parameters
    ----------
    store
        Persistence capabilities for resolution, pricing and writes.
    now
        Instant used to decide which campaigns are active.
    message
        Fix event to apply.

    Returns
    -------
    list[ScoreApplication]
        One entry per participant, in processing order. Empty when nobody
        matched.

    """
    logger_ = event_logger or ScoringEventLogger()
    participants = await resolve_participants(
        store, message, now, event_logger=logger_
    )

    applications: list[ScoreApplication] = []
    try:
        for participant in participants:
            new_points = await compute_score(
                store, message, participant.campaign_name, event_logger=logger_
            )
            prior_points = await store.select_prior_score(participant, message)
            application = ScoreApplication(
                participant=participant,
                new_points=new_points,
                prior_points=prior_points,
            )
            await store.insert_score_event(participant, message, new_points)
            await store.update_participant_score(participant, application.delta)
            logger_.log_score_applied(message, application)
            applications.append(application)
    except Exception as exc:
        logger_.log_apply_failed(
            message, exc, applied=len(applications), resolved=len(participants)
        )
        raise

    return applications
