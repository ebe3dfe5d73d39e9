"""Domain exceptions for link persistence and job scheduling."""

from __future__ import annotations


class LinkStoreError(Exception):
    """Raised when the link store fails to read, write or delete."""


class LinkNotFoundError(LinkStoreError):
    """Raised when a link id is not present in the store."""

    def __init__(self, link_id: str) -> None:
        super().__init__(f"Link not found: {link_id}")
        self.link_id = link_id


class SchedulerError(Exception):
    """Base class for job scheduler errors."""


class JobNotFoundError(SchedulerError):
    """Raised when a job name is not registered with the scheduler."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Job not registered: {name}")
        self.name = name
