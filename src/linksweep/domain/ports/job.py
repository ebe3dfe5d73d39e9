"""Port for work the job scheduler can run."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class JobPort(Protocol):
    """A unit of recurring work. The scheduler only ever calls ``run()``."""

    async def run(self) -> Any: ...
