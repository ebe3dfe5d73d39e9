"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from linksweep.application.use_cases.link_checker import (
    LINK_CHECKER_JOB,
    LinkChecker,
    LinkCheckJob,
)
from linksweep.infrastructure.checking import (
    DirectTransport,
    HttpLinkProber,
    ProxiedTransport,
    TransportSelector,
)
from linksweep.infrastructure.config.schema import AppConfig
from linksweep.infrastructure.persistence.sql_link_store import SqlLinkStore
from linksweep.infrastructure.scheduling.job_scheduler import JobScheduler
from linksweep.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


@dataclass
class Resources:
    """Everything a sweep needs, opened and closed together."""

    http_client: httpx.AsyncClient
    proxy_client: httpx.AsyncClient
    link_store: SqlLinkStore
    link_checker: LinkChecker


def _build_http_client(
    config: AppConfig, *, proxy: str | None = None
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        proxy=proxy,
        timeout=httpx.Timeout(config.checker.timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=False,
    )


def build_prober(
    config: AppConfig,
    *,
    http_client: httpx.AsyncClient,
    proxy_client: httpx.AsyncClient,
) -> HttpLinkProber:
    """Wire the direct and SOCKS transports into an HttpLinkProber."""
    checker_cfg = config.checker
    transports = TransportSelector(
        direct=DirectTransport(http_client),
        proxied=ProxiedTransport(proxy_client, checker_cfg.proxy_endpoint),
    )
    return HttpLinkProber(transports, timeout=checker_cfg.timeout_seconds)


def build_link_checker(
    config: AppConfig,
    *,
    store: SqlLinkStore,
    http_client: httpx.AsyncClient,
    proxy_client: httpx.AsyncClient,
) -> LinkChecker:
    """Wire prober + store into a LinkChecker according to *config*."""
    checker_cfg = config.checker
    prober = build_prober(
        config, http_client=http_client, proxy_client=proxy_client
    )
    return LinkChecker(
        store,
        prober,
        batch_size=checker_cfg.batch_size,
        max_consecutive_failures=checker_cfg.max_consecutive_failures,
        batch_delay_seconds=checker_cfg.batch_delay_seconds,
    )


def build_scheduler(config: AppConfig, checker: LinkChecker) -> JobScheduler:
    """Create the scheduler with the link-checker job registered (not started)."""
    scheduler = JobScheduler()
    scheduler.add_job(
        LINK_CHECKER_JOB,
        LinkCheckJob(checker),
        config.scheduler.sweep_interval_seconds,
    )
    return scheduler


@asynccontextmanager
async def open_http_clients(
    config: AppConfig,
) -> AsyncIterator[tuple[httpx.AsyncClient, httpx.AsyncClient]]:
    """Open the direct and SOCKS-proxied clients; yields ``(direct, proxied)``."""
    http_client = _build_http_client(config)
    proxy_client = _build_http_client(config, proxy=config.checker.proxy_endpoint)
    log.info(
        "http_clients_initialized",
        timeout_seconds=config.checker.timeout_seconds,
        proxy_endpoint=config.checker.proxy_endpoint,
    )
    try:
        yield http_client, proxy_client
    finally:
        await proxy_client.aclose()
        await http_client.aclose()
        log.info("http_clients_closed")


@asynccontextmanager
async def open_resources(config: AppConfig) -> AsyncIterator[Resources]:
    """Open HTTP clients and the link store; close them in reverse order.

    Order matters:
        1. Link store (schema created on first open)
        2. Direct HTTP client
        3. SOCKS-proxied HTTP client (onion hosts only)
        4. LinkChecker (stateless, wires the above)
    """
    store = SqlLinkStore.from_url(
        config.database_url,
        echo=config.database_echo,
        recheck_after=timedelta(hours=config.checker.recheck_after_hours),
    )
    await store.create_schema()

    try:
        async with open_http_clients(config) as (http_client, proxy_client):
            checker = build_link_checker(
                config,
                store=store,
                http_client=http_client,
                proxy_client=proxy_client,
            )
            yield Resources(
                http_client=http_client,
                proxy_client=proxy_client,
                link_store=store,
                link_checker=checker,
            )
    finally:
        await store.aclose()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: initialize resources, drive the scheduler lifecycle."""
    state = cast(AppState, app.state)
    config = state.config

    async with open_resources(config) as resources:
        state.http_client = resources.http_client
        state.proxy_client = resources.proxy_client
        state.link_store = resources.link_store
        state.link_checker = resources.link_checker

        state.scheduler = build_scheduler(config, resources.link_checker)
        if config.scheduler.enabled:
            state.scheduler.start()
            log.info(
                "link_checker_scheduled",
                interval_hours=config.scheduler.sweep_interval_hours,
            )
        else:
            log.info("link_checker_schedule_disabled")

        log.info("app_startup_complete")
        try:
            yield
        finally:
            await state.scheduler.aclose(
                timeout=config.scheduler.shutdown_timeout_seconds
            )
            log.info("scheduler_stopped")

    log.info("app_shutdown_complete")
