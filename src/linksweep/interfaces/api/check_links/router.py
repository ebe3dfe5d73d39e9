"""Manual trigger and status endpoints for the link checker."""

from __future__ import annotations

from typing import Any, cast
from urllib.parse import urlparse

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from linksweep.application.use_cases.link_checker import LINK_CHECKER_JOB
from linksweep.domain.exceptions import LinkStoreError
from linksweep.infrastructure.scheduling.job_scheduler import JobScheduler
from linksweep.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/check-links", tags=["check-links"])

_INVALID_ACTION = 'Invalid action. Use "all", "single", or "status"'


class CheckLinksRequest(BaseModel):
    action: str = Field(description='One of "all", "single" or "status".')
    url: str | None = Field(default=None, description='URL to probe for "single".')


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": message}
    )


def _scheduler_status(scheduler: JobScheduler) -> dict[str, Any]:
    return {
        "running": scheduler.is_running,
        "jobs": [s.to_dict() for s in scheduler.get_all_job_statuses()],
    }


def _is_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.hostname)


@router.post("")
async def check_links(request: Request, body: CheckLinksRequest) -> JSONResponse:
    """Run a sweep, probe one URL, or report scheduler status."""
    state = cast(AppState, request.app.state)

    if body.action == "all":
        run = await state.scheduler.trigger(LINK_CHECKER_JOB)
        if run.skipped:
            return _error(409, "A link check is already running")
        if run.outcome == "failed":
            return _error(500, f"Link check failed: {run.error}")
        return JSONResponse(
            content={
                "success": True,
                "message": "Link check completed",
                "results": run.result.to_dict(),
            }
        )

    if body.action == "single":
        if not body.url:
            return _error(400, "URL is required for single link check")
        if not _is_http_url(body.url):
            return _error(400, f"Not an absolute http(s) URL: {body.url}")
        result = await state.link_checker.check_url(body.url)
        return JSONResponse(content={"success": True, "result": result.to_dict()})

    if body.action == "status":
        return JSONResponse(
            content={"success": True, "scheduler": _scheduler_status(state.scheduler)}
        )

    return _error(400, _INVALID_ACTION)


@router.get("")
async def link_statistics(request: Request) -> JSONResponse:
    """Return scheduler status and link counts by health state."""
    state = cast(AppState, request.app.state)

    try:
        stats = await state.link_store.statistics()
    except LinkStoreError as e:
        log.error("link_statistics_failed", error=str(e))
        return _error(500, "Failed to get link statistics")

    return JSONResponse(
        content={
            "success": True,
            "scheduler": _scheduler_status(state.scheduler),
            "statistics": stats.to_dict(),
        }
    )
