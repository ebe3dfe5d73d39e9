"""Link checking use case: batch sweeps over the link store."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum

import structlog

from linksweep.domain.entities.link import (
    BatchResult,
    CheckResult,
    DueLink,
    LinkStatus,
    LinkStatusUpdate,
    SweepResult,
    UpdateOutcome,
)
from linksweep.domain.ports.link_prober import LinkProberPort
from linksweep.domain.ports.link_store import LinkStorePort

log = structlog.get_logger(__name__)

LINK_CHECKER_JOB = "link-checker"


class _LinkOutcome(Enum):
    LIVE = "live"
    DEAD = "dead"
    DELETED = "deleted"
    ERROR = "error"


class LinkChecker:
    """Probes due links, tracks consecutive failures and prunes dead links.

    Flow per sweep:
        1. Fetch up to ``batch_size`` due links (never-checked first)
        2. Probe + update them concurrently
        3. Repeat after ``batch_delay_seconds`` while batches come back full
    """

    def __init__(
        self,
        store: LinkStorePort,
        prober: LinkProberPort,
        *,
        batch_size: int = 10,
        max_consecutive_failures: int = 3,
        batch_delay_seconds: float = 1.0,
    ) -> None:
        """Initialize the checker.

        Args:
            store: Link store (due-link queries, point reads/writes/deletes).
            prober: Single-URL liveness probe.
            batch_size: Links per batch; also the probe concurrency.
            max_consecutive_failures: Dead checks in a row before deletion.
            batch_delay_seconds: Pause between consecutive batches.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if max_consecutive_failures < 1:
            raise ValueError("max_consecutive_failures must be >= 1")
        self._store = store
        self._prober = prober
        self.batch_size = batch_size
        self.max_consecutive_failures = max_consecutive_failures
        self.batch_delay_seconds = batch_delay_seconds

    async def check_url(self, url: str) -> CheckResult:
        """Probe a single URL without touching the store."""
        return await self._prober.check_link(url)

    async def update_link_status(
        self, link_id: str, result: CheckResult
    ) -> UpdateOutcome:
        """Fold *result* into the stored link, deleting it at the threshold.

        Only a live result resets the failure counter. Store errors propagate.
        """
        current = await self._store.read_failure_count(link_id)
        failures = current + 1 if result.status is LinkStatus.DEAD else 0

        if failures >= self.max_consecutive_failures:
            await self._store.delete_link(link_id)
            log.info(
                "link_pruned",
                link_id=link_id,
                url=result.url,
                consecutive_failures=failures,
                error=result.error_message,
            )
            return UpdateOutcome(deleted=True, consecutive_failures=failures)

        await self._store.write_link_status(
            link_id,
            LinkStatusUpdate(
                status=result.status,
                status_code=result.status_code,
                error_message=result.error_message,
                last_checked_at=result.checked_at,
                consecutive_failures=failures,
                last_verified_at=result.checked_at if result.is_live else None,
            ),
        )
        return UpdateOutcome(deleted=False, consecutive_failures=failures)

    async def _process(self, link: DueLink) -> _LinkOutcome:
        try:
            result = await self._prober.check_link(link.url)
            outcome = await self.update_link_status(link.id, result)
        except Exception as e:
            log.error(
                "link_check_failed",
                link_id=link.id,
                url=link.url,
                error=str(e),
                exc_info=True,
            )
            return _LinkOutcome.ERROR

        if outcome.deleted:
            return _LinkOutcome.DELETED
        if result.is_live:
            return _LinkOutcome.LIVE
        return _LinkOutcome.DEAD

    async def check_batch(self) -> BatchResult:
        """Check one batch of due links. A zeroed result means nothing is due."""
        links = await self._store.fetch_due_links(self.batch_size)
        batch = BatchResult()
        if not links:
            return batch

        log.debug("link_batch_started", links=len(links))
        outcomes = await asyncio.gather(*(self._process(link) for link in links))

        for outcome in outcomes:
            if outcome is _LinkOutcome.ERROR:
                batch.errors += 1
                continue
            batch.checked += 1
            if outcome is _LinkOutcome.DELETED:
                batch.deleted += 1
            elif outcome is _LinkOutcome.LIVE:
                batch.live += 1
            else:
                batch.dead += 1

        log.info("link_batch_done", **batch.to_dict())
        return batch

    async def check_all(self) -> SweepResult:
        """Run batches until one checks fewer links than ``batch_size``."""
        sweep = SweepResult()
        log.info("link_sweep_started", batch_size=self.batch_size)

        while True:
            batch = await self.check_batch()
            sweep.add(batch)
            # Errored links are not retried within the same sweep.
            if batch.checked < self.batch_size:
                break
            await asyncio.sleep(self.batch_delay_seconds)

        sweep.finished_at = datetime.now(timezone.utc)
        log.info("link_sweep_done", **sweep.to_dict())
        return sweep


class LinkCheckJob:
    """Scheduler job that runs a full link sweep."""

    name = LINK_CHECKER_JOB

    def __init__(self, checker: LinkChecker) -> None:
        self._checker = checker

    async def run(self) -> SweepResult:
        return await self._checker.check_all()
