"""Unit tests for the admin cursor, poll control and score replay resources.

The scheduler starts a real worker task, so these tests drive the app with
:class:`falcon.testing.ASGIConductor` on the test's own event loop.

Usage
-----
Run with pytest::

    pytest tests/unit/test_api_admin.py

"""

from __future__ import annotations

import asyncio
import datetime as dt
import typing as typ

import falcon
import falcon.asgi
import falcon.testing
import pytest

from bugbash.api.app import AppDependencies, create_app
from bugbash.persistence import EPOCH
from bugbash.polling.config import PollConfig
from bugbash.polling.scheduler import PollScheduler
from bugbash.polling.source import DatabaseFixEventSource
from tests.helpers.admin import CREDENTIALS, admin_headers
from tests.helpers.builders import (
    NOW,
    participant_score,
    seed_campaign,
    seed_participant,
    seed_provider_and_org,
    wire_payload,
)
from tests.helpers.fake_source import FakeSource, make_record
from tests.helpers.fake_store import FakeStore

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from bugbash.persistence import SqlAlchemyBugBashStore

# Polling is disabled so lifespan startup leaves the worker stopped.
ADMIN_CONFIG = PollConfig(interval_seconds=0.01, grace_seconds=0.5, enabled=False)


@pytest.fixture
def store() -> FakeStore:
    """Provide a tracked org with ``alice`` enrolled once."""
    fake = FakeStore()
    fake.track_organization("GitHub", "acme")
    fake.enroll("p-1", "alice", "summer-bash")
    return fake


@pytest.fixture
def source() -> FakeSource:
    """Provide an empty record source."""
    return FakeSource()


@pytest.fixture
def scheduler(store: FakeStore, source: FakeSource) -> PollScheduler:
    """Provide a stopped scheduler over the fake store and source."""
    return PollScheduler(store, source, ADMIN_CONFIG, clock=lambda: NOW)


@pytest.fixture
def app(store: FakeStore, scheduler: PollScheduler) -> falcon.asgi.App:
    """Build the full app with admin credentials configured."""
    deps = AppDependencies(store=store, scheduler=scheduler, credentials=CREDENTIALS)
    return create_app(deps)


async def _wait_until(predicate: typ.Callable[[], bool], timeout: float = 2.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


class TestPollCursorResource:
    """GET and PUT /admin/poll."""

    @pytest.mark.asyncio
    async def test_get_returns_cursor_and_poller_state(
        self, app: falcon.asgi.App
    ) -> None:
        """The seeded cursor is reported with the worker state."""
        async with falcon.testing.ASGIConductor(app) as conductor:
            result = await conductor.simulate_get(
                "/admin/poll", headers=admin_headers()
            )

        assert result.status == falcon.HTTP_200, "expected HTTP 200"
        assert result.json == {
            "id": "1",
            "lastPolled": EPOCH.isoformat(),
            "updatedAt": None,
            "poller": "disabled",
        }

    @pytest.mark.asyncio
    async def test_put_overwrites_cursor_without_polling(
        self, app: falcon.asgi.App, store: FakeStore, source: FakeSource
    ) -> None:
        """A valid update is persisted in UTC and does not wake the worker."""
        async with falcon.testing.ASGIConductor(app) as conductor:
            result = await conductor.simulate_put(
                "/admin/poll",
                headers=admin_headers(),
                json={"lastPolled": "2021-11-01T14:00:00+02:00"},
            )

        assert result.status == falcon.HTTP_204, "expected HTTP 204"
        assert store.cursor.last_polled == dt.datetime(
            2021, 11, 1, 12, 0, tzinfo=dt.UTC
        )
        assert store.cursor.last_polled.utcoffset() == dt.timedelta(0)
        assert source.fetches == [], "cursor update must not trigger a poll"

    @pytest.mark.parametrize(
        "body",
        [
            {"lastPolled": "2021-11-01T12:00:00"},
            {"lastPolled": "yesterday"},
            {"lastPolled": 1635768000},
            {},
        ],
    )
    @pytest.mark.asyncio
    async def test_put_rejects_invalid_timestamps(
        self, app: falcon.asgi.App, store: FakeStore, body: dict[str, object]
    ) -> None:
        """Naive, unparseable and missing timestamps answer 400."""
        async with falcon.testing.ASGIConductor(app) as conductor:
            result = await conductor.simulate_put(
                "/admin/poll", headers=admin_headers(), json=body
            )

        assert result.status == falcon.HTTP_400, "expected HTTP 400"
        assert result.json["field"] == "lastPolled"
        assert store.cursor.last_polled == EPOCH

    @pytest.mark.asyncio
    async def test_put_rejects_empty_body(self, app: falcon.asgi.App) -> None:
        """An empty body answers 400."""
        async with falcon.testing.ASGIConductor(app) as conductor:
            result = await conductor.simulate_put(
                "/admin/poll", headers=admin_headers()
            )

        assert result.status == falcon.HTTP_400, "expected HTTP 400"
        assert result.json["description"] == "request body is required"


class TestPollControlResource:
    """POST /admin/poll/restart, POST /admin/poll/stop, GET /admin/poll/errors."""

    @pytest.mark.asyncio
    async def test_restart_then_stop(
        self, app: falcon.asgi.App, scheduler: PollScheduler
    ) -> None:
        """Restart launches a worker even when polling is disabled at startup."""
        async with falcon.testing.ASGIConductor(app) as conductor:
            restarted = await conductor.simulate_post(
                "/admin/poll/restart", headers=admin_headers()
            )
            assert restarted.status == falcon.HTTP_202, "expected HTTP 202"
            assert restarted.json == {"poller": "running"}
            assert scheduler.is_running

            again = await conductor.simulate_post(
                "/admin/poll/restart", headers=admin_headers()
            )
            assert again.status == falcon.HTTP_202, "restart of a running worker"

            stopped = await conductor.simulate_post(
                "/admin/poll/stop", headers=admin_headers()
            )

        assert stopped.status == falcon.HTTP_200, "expected HTTP 200"
        assert stopped.json == {"poller": "disabled"}
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_stop_when_stopped_is_a_no_op(self, app: falcon.asgi.App) -> None:
        """Stopping an idle worker still answers 200."""
        async with falcon.testing.ASGIConductor(app) as conductor:
            result = await conductor.simulate_post(
                "/admin/poll/stop", headers=admin_headers()
            )
        assert result.status == falcon.HTTP_200, "expected HTTP 200"

    @pytest.mark.asyncio
    async def test_errors_are_drained(
        self, app: falcon.asgi.App, scheduler: PollScheduler, source: FakeSource
    ) -> None:
        """Failed records are listed once and then removed."""
        source.records.append(make_record(9, 1, pullRequestId="bad"))

        async with falcon.testing.ASGIConductor(app) as conductor:
            handle = scheduler.start()
            await _wait_until(lambda: not handle.errors.empty())
            first = await conductor.simulate_get(
                "/admin/poll/errors", headers=admin_headers()
            )
            second = await conductor.simulate_get(
                "/admin/poll/errors", headers=admin_headers()
            )
            await scheduler.stop()

        assert first.status == falcon.HTTP_200, "expected HTTP 200"
        (entry,) = first.json["errors"]
        assert entry["recordId"] == 9
        assert entry["errorType"] == "FixEventDecodeError"
        assert second.json == {"errors": []}

    @pytest.mark.asyncio
    async def test_errors_without_worker_is_empty(self, app: falcon.asgi.App) -> None:
        """A stopped scheduler has no error channel to drain."""
        async with falcon.testing.ASGIConductor(app) as conductor:
            result = await conductor.simulate_get(
                "/admin/poll/errors", headers=admin_headers()
            )
        assert result.json == {"errors": []}


class TestScoreReplayResource:
    """POST /admin/score."""

    @pytest.mark.asyncio
    async def test_replay_applies_event(
        self, app: falcon.asgi.App, store: FakeStore
    ) -> None:
        """The event is scored and each application is summarised."""
        async with falcon.testing.ASGIConductor(app) as conductor:
            result = await conductor.simulate_post(
                "/admin/score",
                headers=admin_headers(),
                json=wire_payload(**{"fixed-bugs": 2}),
            )

        assert result.status == falcon.HTTP_200, "expected HTTP 200"
        assert result.json == {
            "applications": [
                {
                    "participantId": "p-1",
                    "campaign": "summer-bash",
                    "loginName": "alice",
                    "newPoints": 2,
                    "priorPoints": 0,
                    "delta": 2,
                }
            ]
        }
        assert store.scores["p-1"] == 2

    @pytest.mark.asyncio
    async def test_now_selects_active_campaigns(
        self, app: falcon.asgi.App, store: FakeStore
    ) -> None:
        """Replaying at an instant outside every campaign applies nothing."""
        store.add_campaign(
            "summer-bash",
            (NOW - dt.timedelta(days=1), NOW + dt.timedelta(days=1)),
        )

        async with falcon.testing.ASGIConductor(app) as conductor:
            result = await conductor.simulate_post(
                "/admin/score",
                headers=admin_headers(),
                params={"now": "2020-01-01T00:00:00+00:00"},
                json=wire_payload(**{"fixed-bugs": 2}),
            )

        assert result.json == {"applications": []}
        assert store.score_events == []

    @pytest.mark.parametrize("now", ["2024-07-14T12:00:00", "not-a-date"])
    @pytest.mark.asyncio
    async def test_invalid_now_is_rejected(
        self, app: falcon.asgi.App, now: str
    ) -> None:
        """``now`` must be an ISO-8601 instant with an offset."""
        async with falcon.testing.ASGIConductor(app) as conductor:
            result = await conductor.simulate_post(
                "/admin/score",
                headers=admin_headers(),
                params={"now": now},
                json=wire_payload(),
            )

        assert result.status == falcon.HTTP_400, "expected HTTP 400"
        assert result.json["field"] == "now"

    @pytest.mark.asyncio
    async def test_malformed_event_is_rejected(
        self, app: falcon.asgi.App, store: FakeStore
    ) -> None:
        """Bodies that do not decode as fix events answer 400."""
        async with falcon.testing.ASGIConductor(app) as conductor:
            result = await conductor.simulate_post(
                "/admin/score",
                headers=admin_headers(),
                json=wire_payload(pullRequestId="forty-two"),
            )

        assert result.status == falcon.HTTP_400, "expected HTTP 400"
        assert store.score_events == []


@pytest.mark.asyncio
async def test_replay_against_sql_store(
    session_factory: async_sessionmaker[AsyncSession],
    sql_store: SqlAlchemyBugBashStore,
) -> None:
    """Replaying twice through the SQL store leaves the total unchanged."""
    await seed_provider_and_org(session_factory)
    await seed_campaign(session_factory, "summer-bash", point_values={"G104": 3})
    participant_id = await seed_participant(session_factory, "summer-bash", "Alice")
    scheduler = PollScheduler(
        sql_store, DatabaseFixEventSource(session_factory), ADMIN_CONFIG
    )
    app = create_app(
        AppDependencies(store=sql_store, scheduler=scheduler, credentials=CREDENTIALS)
    )
    payload = wire_payload(
        triggerUser="ALICE", **{"fixed-bug-types": {"G104": 2}, "fixed-bugs": 1}
    )

    async with falcon.testing.ASGIConductor(app) as conductor:
        params = {"now": NOW.isoformat()}
        first = await conductor.simulate_post(
            "/admin/score", headers=admin_headers(), params=params, json=payload
        )
        second = await conductor.simulate_post(
            "/admin/score", headers=admin_headers(), params=params, json=payload
        )

    assert first.json["applications"][0]["newPoints"] == 7
    assert second.json["applications"][0]["delta"] == 0
    assert await participant_score(session_factory, participant_id) == 7
