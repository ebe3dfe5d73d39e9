"""Shared test fixtures for the linksweep test suite."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pytest

from linksweep.domain.entities.link import (
    CheckResult,
    DueLink,
    LinkStatistics,
    LinkStatus,
    LinkStatusUpdate,
)
from linksweep.domain.exceptions import LinkNotFoundError

# ---------------------------------------------------------------------------
# Fake ports
# ---------------------------------------------------------------------------


@dataclass
class StoredLink:
    id: str
    url: str
    status: LinkStatus = LinkStatus.UNKNOWN
    status_code: int | None = None
    error_message: str | None = None
    last_checked_at: datetime | None = None
    last_verified_at: datetime | None = None
    consecutive_failures: int = 0


@dataclass
class FakeLinkStore:
    """In-memory LinkStorePort; due means never checked or checked > 24h ago."""

    links: dict[str, StoredLink] = field(default_factory=dict)
    recheck_after: timedelta = timedelta(hours=24)
    fail_reads_for: set[str] = field(default_factory=set)
    fetch_calls: int = 0

    def add(self, link_id: str, url: str, **fields: object) -> StoredLink:
        link = StoredLink(id=link_id, url=url, **fields)  # type: ignore[arg-type]
        self.links[link_id] = link
        return link

    def _is_due(self, link: StoredLink, now: datetime) -> bool:
        return link.last_checked_at is None or link.last_checked_at < now - self.recheck_after

    async def fetch_due_links(self, limit: int) -> list[DueLink]:
        self.fetch_calls += 1
        now = datetime.now(timezone.utc)
        due = [link for link in self.links.values() if self._is_due(link, now)]
        due.sort(
            key=lambda link: (
                link.last_checked_at is not None,
                link.last_checked_at or now,
            )
        )
        return [
            DueLink(id=link.id, url=link.url, last_checked_at=link.last_checked_at)
            for link in due[:limit]
        ]

    async def read_failure_count(self, link_id: str) -> int:
        if link_id in self.fail_reads_for:
            raise RuntimeError(f"store unavailable for {link_id}")
        link = self.links.get(link_id)
        if link is None:
            raise LinkNotFoundError(link_id)
        return link.consecutive_failures

    async def write_link_status(self, link_id: str, update: LinkStatusUpdate) -> None:
        link = self.links.get(link_id)
        if link is None:
            raise LinkNotFoundError(link_id)
        link.status = update.status
        link.status_code = update.status_code
        link.error_message = update.error_message
        link.last_checked_at = update.last_checked_at
        link.consecutive_failures = update.consecutive_failures
        if update.last_verified_at is not None:
            link.last_verified_at = update.last_verified_at

    async def delete_link(self, link_id: str) -> None:
        if self.links.pop(link_id, None) is None:
            raise LinkNotFoundError(link_id)

    async def statistics(self) -> LinkStatistics:
        now = datetime.now(timezone.utc)
        values = list(self.links.values())
        return LinkStatistics(
            total=len(values),
            live=sum(1 for v in values if v.status is LinkStatus.LIVE),
            dead=sum(1 for v in values if v.status is LinkStatus.DEAD),
            unknown=sum(1 for v in values if v.status is LinkStatus.UNKNOWN),
            needing_check=sum(1 for v in values if self._is_due(v, now)),
        )


class FakeProber:
    """LinkProberPort returning canned results per URL (default: live 200).

    An Exception outcome is raised instead of returned.
    """

    def __init__(
        self,
        outcomes: dict[str, CheckResult | Exception] | None = None,
        *,
        delay: float = 0.0,
    ) -> None:
        self.outcomes = outcomes or {}
        self.delay = delay
        self.calls: list[str] = []

    async def check_link(self, url: str) -> CheckResult:
        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes.get(
            url, CheckResult(url=url, status=LinkStatus.LIVE, status_code=200)
        )
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_store() -> FakeLinkStore:
    return FakeLinkStore()


@pytest.fixture()
def fake_prober() -> FakeProber:
    return FakeProber()
