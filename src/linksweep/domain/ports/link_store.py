"""Port for the link store the health checker reads and writes."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from linksweep.domain.entities.link import (
    DueLink,
    LinkStatistics,
    LinkStatusUpdate,
)


@runtime_checkable
class LinkStorePort(Protocol):
    """Async access to stored links.

    Point operations MUST raise ``LinkNotFoundError`` for an unknown id
    instead of silently doing nothing. Backend failures raise
    ``LinkStoreError``.
    """

    async def fetch_due_links(self, limit: int) -> list[DueLink]:
        """Return up to *limit* links due for a check.

        Due means never checked, or last checked before the recheck window.
        Ordered by ``last_checked_at`` ascending with never-checked first.
        """
        ...

    async def read_failure_count(self, link_id: str) -> int:
        """Return the link's current consecutive failure counter."""
        ...

    async def write_link_status(self, link_id: str, update: LinkStatusUpdate) -> None:
        """Persist the health fields of a link."""
        ...

    async def delete_link(self, link_id: str) -> None:
        """Delete a link and everything that depends on it."""
        ...

    async def statistics(self) -> LinkStatistics:
        """Count links by status plus the number currently due."""
        ...
