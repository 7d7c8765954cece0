"""Persistence capabilities the scoring engine depends on.

The engine never talks to SQLAlchemy directly. It calls the narrow async
interface below, implemented for production by
:class:`bugbash.persistence.store.SqlAlchemyBugBashStore` and in tests by
in-memory fakes. Store failures are raised by the implementation and
propagate through the engine unchanged.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt

    from bugbash.scoring.models import FixEventMessage, ParticipantInfo


class PointValueLookup(typ.Protocol):
    """Resolve the point value of a classification label."""

    async def select_point_value(
        self, message: FixEventMessage, campaign_name: str, label: str
    ) -> float:
        """Return the points awarded per fix of ``label`` in the campaign."""
        ...


class ScoringStore(PointValueLookup, typ.Protocol):
    """Everything the resolver, calculator and pipeline read or write."""

    async def is_organization_valid(self, event_source: str, repo_owner: str) -> bool:
        """Return whether ``repo_owner`` is a tracked organisation."""
        ...

    async def select_participants_to_score(
        self, message: FixEventMessage, now: dt.datetime
    ) -> list[ParticipantInfo]:
        """Return participants matching the trigger user in active campaigns."""
        ...

    async def select_prior_score(
        self, participant: ParticipantInfo, message: FixEventMessage
    ) -> float:
        """Return the last recorded absolute points for this participant and PR."""
        ...

    async def insert_score_event(
        self,
        participant: ParticipantInfo,
        message: FixEventMessage,
        new_points: float,
    ) -> None:
        """Append an immutable score event holding the absolute points."""
        ...

    async def update_participant_score(
        self, participant: ParticipantInfo, delta: float
    ) -> None:
        """Add ``delta`` to the participant's running score."""
        ...
