"""Port for probing link liveness."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from linksweep.domain.entities.link import CheckResult


@runtime_checkable
class LinkProberPort(Protocol):
    """Checks whether a URL is reachable.

    Implementations never raise: every failure becomes a dead CheckResult.
    """

    async def check_link(self, url: str) -> CheckResult:
        """Probe *url* once and describe what happened."""
        ...
