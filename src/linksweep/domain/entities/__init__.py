from .job import JobOutcome, JobRun, JobStatus
from .link import (
    BatchResult,
    CheckResult,
    DueLink,
    LinkRecord,
    LinkStatistics,
    LinkStatus,
    LinkStatusUpdate,
    SweepResult,
    UpdateOutcome,
)

__all__ = [
    "BatchResult",
    "CheckResult",
    "DueLink",
    "JobOutcome",
    "JobRun",
    "JobStatus",
    "LinkRecord",
    "LinkStatistics",
    "LinkStatus",
    "LinkStatusUpdate",
    "SweepResult",
    "UpdateOutcome",
]
