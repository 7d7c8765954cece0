"""SQLAlchemy implementation of the scoring and poll-cursor store."""

from __future__ import annotations

import dataclasses
import typing as typ

from sqlalchemy import func, select, update

from bugbash.common.time import utcnow
from bugbash.persistence.config import StoreConfig
from bugbash.persistence.errors import ParticipantNotFoundError, PollCursorNotFoundError
from bugbash.persistence.storage import (
    EPOCH,
    POLL_CURSOR_ID,
    BugPointValue,
    Campaign,
    Organization,
    Participant,
    PollCursor,
    ScoreEvent,
)
from bugbash.scoring.models import ParticipantInfo

if typ.TYPE_CHECKING:
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from bugbash.scoring.models import FixEventMessage


@dataclasses.dataclass(frozen=True, slots=True)
class PollCursorState:
    """Snapshot of the persisted poll cursor."""

    id: str
    last_polled: dt.datetime
    updated_at: dt.datetime | None = None

    def advanced_to(self, last_polled: dt.datetime) -> PollCursorState:
        """Return a copy whose watermark is ``last_polled``."""
        return dataclasses.replace(self, last_polled=last_polled)


def _participant_info(row: Participant) -> ParticipantInfo:
    return ParticipantInfo(
        id=row.id,
        campaign_name=row.campaign_name,
        scp_name=row.scp_name,
        login_name=row.login_name,
        score=row.score,
        team_name=row.team_name,
        joined_at=row.joined_at,
    )


class SqlAlchemyBugBashStore:
    """Scoring and cursor persistence over an async session factory.

    Each call runs in its own transaction, so a pipeline that fails part-way
    through a fix event leaves earlier writes committed. Database errors are
    raised as ``sqlalchemy.exc.SQLAlchemyError`` and never retried here.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: StoreConfig | None = None,
    ) -> None:
        """Store the session factory and fallback point value."""
        self._session_factory = session_factory
        self._config = config or StoreConfig()

    async def is_organization_valid(self, event_source: str, repo_owner: str) -> bool:
        """Return whether ``repo_owner`` is tracked for ``event_source``."""
        async with self._session_factory() as session:
            found = await session.scalar(
                select(Organization.id)
                .where(
                    Organization.scp_name == event_source,
                    Organization.name == repo_owner,
                )
                .limit(1)
            )
        return found is not None

    async def select_participants_to_score(
        self, message: FixEventMessage, now: dt.datetime
    ) -> list[ParticipantInfo]:
        """Return enrolments of the trigger user in campaigns active at ``now``."""
        stmt = (
            select(Participant)
            .join(Campaign, Campaign.name == Participant.campaign_name)
            .where(
                Participant.scp_name == message.event_source,
                func.lower(Participant.login_name) == message.trigger_user.lower(),
                Campaign.start_on <= now,
                Campaign.end_on >= now,
            )
            .order_by(Campaign.start_on, Participant.id)
        )
        async with self._session_factory() as session:
            rows = (await session.scalars(stmt)).all()
        return [_participant_info(row) for row in rows]

    async def select_point_value(
        self, message: FixEventMessage, campaign_name: str, label: str
    ) -> float:
        """Return the campaign's value for ``label`` or the configured default."""
        async with self._session_factory() as session:
            value = await session.scalar(
                select(BugPointValue.point_value).where(
                    BugPointValue.campaign_name == campaign_name,
                    BugPointValue.category == label,
                )
            )
        if value is None:
            return self._config.default_point_value
        return value

    async def select_prior_score(
        self, participant: ParticipantInfo, message: FixEventMessage
    ) -> float:
        """Return the newest recorded points for this participant and PR."""
        async with self._session_factory() as session:
            points = await session.scalar(
                select(ScoreEvent.points)
                .where(
                    ScoreEvent.participant_id == participant.id,
                    ScoreEvent.repo_owner == message.repo_owner,
                    ScoreEvent.repo_name == message.repo_name,
                    ScoreEvent.pull_request_id == message.pull_request_id,
                )
                .order_by(ScoreEvent.id.desc())
                .limit(1)
            )
        return 0.0 if points is None else points

    async def insert_score_event(
        self,
        participant: ParticipantInfo,
        message: FixEventMessage,
        new_points: float,
    ) -> None:
        """Append a score event holding ``new_points`` as the absolute total."""
        async with self._session_factory() as session, session.begin():
            session.add(
                ScoreEvent(
                    participant_id=participant.id,
                    campaign_name=participant.campaign_name,
                    scp_name=participant.scp_name,
                    login_name=participant.login_name,
                    repo_owner=message.repo_owner,
                    repo_name=message.repo_name,
                    pull_request_id=message.pull_request_id,
                    points=new_points,
                    recorded_at=utcnow(),
                )
            )

    async def update_participant_score(
        self, participant: ParticipantInfo, delta: float
    ) -> None:
        """Add ``delta`` to the participant's running score in the database.

        Raises
        ------
        ParticipantNotFoundError
            If the participant row no longer exists.

        """
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(Participant)
                .where(Participant.id == participant.id)
                .values(score=Participant.score + delta)
            )
            if result.rowcount == 0:
                raise ParticipantNotFoundError(participant.id)

    async def select_poll_cursor(
        self, cursor_id: str = POLL_CURSOR_ID
    ) -> PollCursorState:
        """Load the poll cursor, creating it at the epoch when absent."""
        async with self._session_factory() as session, session.begin():
            row = await session.get(PollCursor, cursor_id)
            if row is None:
                row = PollCursor(id=cursor_id, last_polled=EPOCH, updated_at=utcnow())
                session.add(row)
                await session.flush()
            return PollCursorState(
                id=row.id, last_polled=row.last_polled, updated_at=row.updated_at
            )

    async def update_poll_cursor(self, cursor: PollCursorState) -> None:
        """Persist ``cursor.last_polled`` for the cursor's id.

        Raises
        ------
        PollCursorNotFoundError
            If no cursor row with that id exists.

        """
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(PollCursor)
                .where(PollCursor.id == cursor.id)
                .values(last_polled=cursor.last_polled, updated_at=utcnow())
            )
            if result.rowcount == 0:
                raise PollCursorNotFoundError(cursor.id)
