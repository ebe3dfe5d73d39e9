"""End-to-end sweeps: real SQLite store, real prober, HTTP mocked via respx."""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import timedelta
from pathlib import Path

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from linksweep.domain.entities.link import LinkStatus
from linksweep.infrastructure.config import AppConfig
from linksweep.infrastructure.persistence import SqlLinkStore
from linksweep.interfaces.app import create_app
from linksweep.interfaces.composition import build_link_checker, open_resources

pytestmark = pytest.mark.integration


def _config(tmp_path: Path, **checker: object) -> AppConfig:
    return AppConfig.model_validate(
        {
            "environment": "test",
            "database": {"url": f"sqlite+aiosqlite:///{tmp_path / 'links.db'}"},
            "checker": {"batch_delay_seconds": 0, **checker},
            "scheduler": {"enabled": False},
        }
    )


@pytest.fixture()
async def always_due_store(tmp_path: Path) -> AsyncIterator[SqlLinkStore]:
    """Store where every link is due again right after being checked."""
    store = SqlLinkStore.from_url(
        f"sqlite+aiosqlite:///{tmp_path / 'due.db'}",
        recheck_after=timedelta(0),
    )
    await store.create_schema()
    yield store
    await store.aclose()


class TestSweepAgainstSqlite:
    @pytest.mark.asyncio
    async def test_mixed_sweep_persists_outcomes(
        self,
        tmp_path: Path,
        link_store: SqlLinkStore,
        http_client: httpx.AsyncClient,
        respx_mock: respx.MockRouter,
    ) -> None:
        respx_mock.head("https://up.example/").respond(200)
        respx_mock.head("https://gone.example/").respond(404)
        respx_mock.head("https://down.example/").mock(
            side_effect=httpx.ConnectError("Connection refused")
        )
        up = await link_store.add_link("https://up.example/")
        gone = await link_store.add_link("https://gone.example/")
        down = await link_store.add_link("https://down.example/")
        checker = build_link_checker(
            _config(tmp_path),
            store=link_store,
            http_client=http_client,
            proxy_client=http_client,
        )

        sweep = await checker.check_all()

        assert (sweep.checked, sweep.live, sweep.dead, sweep.errors) == (3, 1, 2, 0)
        up_row = await link_store.get_link(up.id)
        gone_row = await link_store.get_link(gone.id)
        down_row = await link_store.get_link(down.id)
        assert up_row is not None and up_row.status is LinkStatus.LIVE
        assert up_row.last_verified_at == up_row.last_checked_at
        assert gone_row is not None and gone_row.status_code == 404
        assert gone_row.error_message == "HTTP 404: Not Found"
        assert down_row is not None and down_row.status_code is None
        assert down_row.error_message == "Connection refused"
        assert (await link_store.statistics()).needing_check == 0

    @pytest.mark.asyncio
    async def test_third_failure_prunes_the_link(
        self,
        tmp_path: Path,
        always_due_store: SqlLinkStore,
        http_client: httpx.AsyncClient,
        respx_mock: respx.MockRouter,
    ) -> None:
        respx_mock.head("https://gone.example/").respond(410)
        record = await always_due_store.add_link("https://gone.example/")
        checker = build_link_checker(
            _config(tmp_path),
            store=always_due_store,
            http_client=http_client,
            proxy_client=http_client,
        )

        first = await checker.check_batch()
        second = await checker.check_batch()
        assert (first.dead, second.dead) == (1, 1)
        assert await always_due_store.read_failure_count(record.id) == 2

        third = await checker.check_batch()
        assert (third.checked, third.deleted, third.dead) == (1, 1, 0)
        assert await always_due_store.get_link(record.id) is None

    @pytest.mark.asyncio
    async def test_recovery_resets_failures(
        self,
        tmp_path: Path,
        always_due_store: SqlLinkStore,
        http_client: httpx.AsyncClient,
        respx_mock: respx.MockRouter,
    ) -> None:
        route = respx_mock.head("https://flaky.example/")
        route.side_effect = [
            httpx.Response(503),
            httpx.Response(503),
            httpx.Response(200),
        ]
        record = await always_due_store.add_link("https://flaky.example/")
        checker = build_link_checker(
            _config(tmp_path),
            store=always_due_store,
            http_client=http_client,
            proxy_client=http_client,
        )

        for _ in range(3):
            await checker.check_batch()

        stored = await always_due_store.get_link(record.id)
        assert stored is not None
        assert stored.status is LinkStatus.LIVE
        assert stored.consecutive_failures == 0


class TestComposition:
    @pytest.mark.asyncio
    async def test_open_resources_wires_a_working_checker(
        self, tmp_path: Path, respx_mock: respx.MockRouter
    ) -> None:
        respx_mock.head("https://up.example/").respond(200)
        config = _config(tmp_path)

        async with open_resources(config) as resources:
            await resources.link_store.add_link("https://up.example/")
            sweep = await resources.link_checker.check_all()
            request = respx_mock.calls.last.request

        assert sweep.live == 1
        assert request.headers["User-Agent"] == config.http_user_agent
        assert resources.http_client.is_closed
        assert resources.proxy_client.is_closed

    def test_app_lifespan_serves_statistics(self, tmp_path: Path) -> None:
        app = create_app(_config(tmp_path))

        with TestClient(app) as client:
            health = client.get("/api/v1/healthz")
            stats = client.get("/api/v1/check-links")
            status = client.post("/api/v1/check-links", json={"action": "status"})

        assert health.status_code == 200
        assert health.json() == {"status": "ok", "scheduler_running": False}
        assert stats.status_code == 200
        assert stats.json()["statistics"]["total"] == 0
        jobs = status.json()["scheduler"]["jobs"]
        assert [job["name"] for job in jobs] == ["link-checker"]
        assert jobs[0]["active"] is False
