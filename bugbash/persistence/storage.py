"""Persistence models for campaigns, participants, scoring and polling."""

from __future__ import annotations

import datetime as dt
import typing as typ
import uuid

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine

from bugbash.common.time import utcnow
from bugbash.persistence.errors import TimezoneAwareRequiredError

POLL_CURSOR_ID = "1"
EPOCH = dt.datetime(1970, 1, 1, tzinfo=dt.UTC)


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base declarative class for Bug Bash models."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Force bound datetime values to UTC with tzinfo."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise TimezoneAwareRequiredError.for_column()
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Ensure result datetimes are UTC and timezone aware."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


class SourceControlProvider(Base):
    """Source-control provider (e.g. GitHub) that fix events originate from."""

    __tablename__ = "source_control_providers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(64), unique=True)
    url: Mapped[str | None] = mapped_column(String(255), default=None)


class Organization(Base):
    """Tracked organisation; fix events from other owners are ignored."""

    __tablename__ = "organizations"
    __table_args__ = (
        UniqueConstraint("scp_name", "name", name="uq_organizations_scp_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    scp_name: Mapped[str] = mapped_column(
        ForeignKey("source_control_providers.name", ondelete="CASCADE")
    )
    name: Mapped[str] = mapped_column(String(255))


class Campaign(Base):
    """Time-boxed contest with its own roster and point table."""

    __tablename__ = "campaigns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), unique=True)
    start_on: Mapped[dt.datetime] = mapped_column(UTCDateTime())
    end_on: Mapped[dt.datetime] = mapped_column(UTCDateTime())
    created_on: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    created_by: Mapped[str | None] = mapped_column(String(255), default=None)
    note: Mapped[str | None] = mapped_column(String(1024), default=None)

    participants: Mapped[list[Participant]] = relationship(back_populates="campaign")


class Team(Base):
    """Team of participants within a campaign."""

    __tablename__ = "teams"
    __table_args__ = (
        UniqueConstraint("campaign_name", "name", name="uq_teams_campaign_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    campaign_name: Mapped[str] = mapped_column(
        ForeignKey("campaigns.name", ondelete="CASCADE")
    )
    name: Mapped[str] = mapped_column(String(255))
    organization: Mapped[str | None] = mapped_column(String(255), default=None)


class Participant(Base):
    """Enrolment of a source-control login in a campaign."""

    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint(
            "campaign_name",
            "scp_name",
            "login_name",
            name="uq_participants_campaign_scp_login",
        ),
        Index("ix_participants_login", "login_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    campaign_name: Mapped[str] = mapped_column(
        ForeignKey("campaigns.name", ondelete="CASCADE")
    )
    scp_name: Mapped[str] = mapped_column(
        ForeignKey("source_control_providers.name", ondelete="CASCADE")
    )
    login_name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(320), default=None)
    display_name: Mapped[str | None] = mapped_column(String(255), default=None)
    team_name: Mapped[str | None] = mapped_column(String(255), default=None)
    score: Mapped[float] = mapped_column(Float, default=0.0)
    joined_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)

    campaign: Mapped[Campaign] = relationship(back_populates="participants")


class BugPointValue(Base):
    """Point value of a defect category within a campaign."""

    __tablename__ = "bug_point_values"
    __table_args__ = (
        UniqueConstraint(
            "campaign_name", "category", name="uq_bug_point_values_campaign_category"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    campaign_name: Mapped[str] = mapped_column(
        ForeignKey("campaigns.name", ondelete="CASCADE")
    )
    category: Mapped[str] = mapped_column(String(255))
    point_value: Mapped[float] = mapped_column(Float)


class ScoreEvent(Base):
    """Append-only audit record of one scoring computation."""

    __tablename__ = "score_events"
    __table_args__ = (
        Index(
            "ix_score_events_participant_pr",
            "participant_id",
            "repo_owner",
            "repo_name",
            "pull_request_id",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    participant_id: Mapped[str] = mapped_column(
        ForeignKey("participants.id", ondelete="CASCADE")
    )
    campaign_name: Mapped[str] = mapped_column(String(255))
    scp_name: Mapped[str] = mapped_column(String(64))
    login_name: Mapped[str] = mapped_column(String(255))
    repo_owner: Mapped[str] = mapped_column(String(255))
    repo_name: Mapped[str] = mapped_column(String(255))
    pull_request_id: Mapped[int] = mapped_column(Integer)
    points: Mapped[float] = mapped_column(Float)
    recorded_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)


class PollCursor(Base):
    """Watermark of the most recent fix-event record already processed."""

    __tablename__ = "poll_cursors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    last_polled: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=EPOCH)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )


class FixEventRecord(Base):
    """Raw fix-event payload as delivered by external tooling."""

    __tablename__ = "fix_event_records"
    __table_args__ = (Index("ix_fix_event_records_received_at", "received_at"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    received_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    payload: Mapped[dict[str, typ.Any]] = mapped_column(JSON)


async def init_storage(engine: AsyncEngine) -> None:
    """Create all tables and seed the poll cursor row if absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        existing = await conn.scalar(
            select(PollCursor.id).where(PollCursor.id == POLL_CURSOR_ID)
        )
        if existing is None:
            await conn.execute(
                PollCursor.__table__.insert().values(
                    id=POLL_CURSOR_ID, last_polled=EPOCH, updated_at=utcnow()
                )
            )
