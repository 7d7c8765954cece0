"""Shared fixtures for BDD feature tests.

Step functions are synchronous and drive async code with ``asyncio.run``,
so the engine here uses ``NullPool``: no connection outlives the event loop
that opened it.
"""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
from pytest_bdd import given, parsers, then
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from bugbash.persistence import init_storage
from tests.helpers.builders import (
    participant_score,
    seed_campaign,
    seed_participant,
    seed_provider_and_org,
)

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def feature_session_factory(
    tmp_path: Path,
) -> typ.Iterator[async_sessionmaker[AsyncSession]]:
    """Yield a session factory over a fresh sqlite file with tables created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'bugbash_feature.db'}", poolclass=NullPool
    )
    asyncio.run(init_storage(engine))
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        asyncio.run(engine.dispose())


class BugBashContext(typ.TypedDict, total=False):
    """Scenario state shared by scoring and polling steps."""

    session_factory: async_sessionmaker[AsyncSession]
    participants: dict[str, str]


@pytest.fixture
def bugbash_context(
    feature_session_factory: async_sessionmaker[AsyncSession],
) -> BugBashContext:
    """Seed the tracked provider and organisation ``GitHub/acme``."""
    asyncio.run(seed_provider_and_org(feature_session_factory))
    return {"session_factory": feature_session_factory, "participants": {}}


@given(
    parsers.parse(
        'a campaign "{campaign}" running now with category "{category}" '
        "worth {points:d} points"
    )
)
def given_campaign(
    bugbash_context: BugBashContext, campaign: str, category: str, points: int
) -> None:
    """Create a campaign around the fixed test instant with one priced category."""
    asyncio.run(
        seed_campaign(
            bugbash_context["session_factory"],
            campaign,
            point_values={category: points},
        )
    )


@given(parsers.parse('"{login}" is enrolled in "{campaign}"'))
def given_enrolled(bugbash_context: BugBashContext, login: str, campaign: str) -> None:
    """Enrol a login in a campaign."""
    participant_id = asyncio.run(
        seed_participant(bugbash_context["session_factory"], campaign, login)
    )
    bugbash_context["participants"][login] = participant_id


@then(parsers.parse('"{login}" has {points:d} points'))
def then_participant_points(
    bugbash_context: BugBashContext, login: str, points: int
) -> None:
    """Assert a participant's running score."""
    participant_id = bugbash_context["participants"][login]
    score = asyncio.run(
        participant_score(bugbash_context["session_factory"], participant_id)
    )
    assert score == points, f"expected {login} to have {points} points, got {score}"
