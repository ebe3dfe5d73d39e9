"""Domain entities for link health tracking.

Pure value objects with no framework dependencies and no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class LinkStatus(str, Enum):
    """Liveness state stored on a link."""

    LIVE = "live"
    DEAD = "dead"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DueLink:
    """Projection of a link that is due for a health check."""

    id: str
    url: str
    last_checked_at: datetime | None = None


@dataclass(frozen=True)
class LinkRecord:
    """Stored link with its health-tracking fields."""

    id: str
    url: str
    title: str = ""
    status: LinkStatus = LinkStatus.UNKNOWN
    status_code: int | None = None
    error_message: str | None = None
    last_checked_at: datetime | None = None
    last_verified_at: datetime | None = None
    consecutive_failures: int = 0
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of probing a single URL. Never persisted as-is."""

    url: str
    status: LinkStatus
    status_code: int | None = None
    error_message: str | None = None
    checked_at: datetime = field(default_factory=_utcnow)

    @property
    def is_live(self) -> bool:
        return self.status is LinkStatus.LIVE

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "url": self.url,
            "status": self.status.value,
            "status_code": self.status_code,
            "error_message": self.error_message,
            "checked_at": self.checked_at.isoformat(),
        }


@dataclass(frozen=True)
class LinkStatusUpdate:
    """Fields written back to the store after a non-fatal check."""

    status: LinkStatus
    status_code: int | None
    error_message: str | None
    last_checked_at: datetime
    consecutive_failures: int
    # Only set when the check came back live.
    last_verified_at: datetime | None = None


@dataclass(frozen=True)
class UpdateOutcome:
    """Result of folding a CheckResult into the store."""

    deleted: bool
    consecutive_failures: int = 0


@dataclass
class BatchResult:
    """Aggregate counts for one batch of link checks."""

    checked: int = 0
    live: int = 0
    dead: int = 0
    deleted: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "checked": self.checked,
            "live": self.live,
            "dead": self.dead,
            "deleted": self.deleted,
            "errors": self.errors,
        }


@dataclass
class SweepResult(BatchResult):
    """Aggregate counts for a full sweep across all due batches."""

    batches: int = 0
    started_at: datetime = field(default_factory=_utcnow)
    finished_at: datetime | None = None

    def add(self, batch: BatchResult) -> None:
        """Accumulate a finished batch into the sweep totals."""
        self.checked += batch.checked
        self.live += batch.live
        self.dead += batch.dead
        self.deleted += batch.deleted
        self.errors += batch.errors
        self.batches += 1

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(super().to_dict())
        data.update(
            {
                "batches": self.batches,
                "started_at": self.started_at.isoformat(),
                "finished_at": _iso(self.finished_at),
                "duration_seconds": self.duration_seconds,
            }
        )
        return data


@dataclass(frozen=True)
class LinkStatistics:
    """Counts of stored links by status, plus how many are currently due."""

    total: int = 0
    live: int = 0
    dead: int = 0
    unknown: int = 0
    needing_check: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "live": self.live,
            "dead": self.dead,
            "unknown": self.unknown,
            "needing_check": self.needing_check,
        }
