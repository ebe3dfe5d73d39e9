"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from linksweep.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from linksweep.application.use_cases.link_checker import LinkChecker
    from linksweep.infrastructure.persistence.sql_link_store import SqlLinkStore
    from linksweep.infrastructure.scheduling.job_scheduler import JobScheduler


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    http_client: httpx.AsyncClient
    proxy_client: httpx.AsyncClient
    link_store: SqlLinkStore

    # Application services
    link_checker: LinkChecker

    # Background jobs (constructed here, started/stopped by lifespan)
    scheduler: JobScheduler
