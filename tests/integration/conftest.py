"""Shared fixtures for integration tests.

These tests use real infrastructure components (SqlLinkStore on SQLite,
HttpLinkProber over httpx) with mocked HTTP via respx.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
import respx

from linksweep.infrastructure.persistence import SqlLinkStore


@pytest.fixture()
async def http_client() -> AsyncIterator[httpx.AsyncClient]:
    """Real httpx.AsyncClient for use with respx mocking."""
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
async def link_store(tmp_path: Path) -> AsyncIterator[SqlLinkStore]:
    """Real SqlLinkStore backed by a SQLite file under tmp_path."""
    store = SqlLinkStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'links.db'}")
    await store.create_schema()
    yield store
    await store.aclose()


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    """Explicit respx mock router for request interception."""
    with respx.mock(assert_all_called=False) as router:
        yield router
