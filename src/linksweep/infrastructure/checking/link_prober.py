"""Link prober: a single bounded HEAD request per URL."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import structlog

from linksweep.domain.entities.link import CheckResult, LinkStatus
from linksweep.infrastructure.checking.transports import (
    ProbeTransport,
    TransportSelector,
)

log = structlog.get_logger(__name__)

MAX_REDIRECTS = 10


class HttpLinkProber:
    """Checks URL liveness with a HEAD request.

    - Transport is chosen per hop: redirects are followed here, not by
      httpx, so a redirect onto an onion host still goes through the proxy.
    - The whole request, redirects included, is raced against ``timeout``;
      the loser is cancelled.
    - 2xx is live, everything else (status, exception, timeout) is dead.
    - No retries. Repeated failures are tracked by the caller.
    """

    def __init__(self, transports: TransportSelector, timeout: float = 10.0) -> None:
        self._transports = transports
        self._timeout = timeout

    async def _head_following(
        self, url: str, route: list[ProbeTransport]
    ) -> httpx.Response:
        """HEAD *url*, following up to MAX_REDIRECTS hops.

        Every transport used is appended to *route*; the last one is the
        transport of the current hop.
        """
        for _ in range(MAX_REDIRECTS + 1):
            transport = self._transports.select(url)
            route.append(transport)
            resp = await transport.head(url)
            if resp.next_request is None:
                return resp
            url = str(resp.next_request.url)
            log.debug("link_probe_redirect", location=url, status_code=resp.status_code)

        raise httpx.TooManyRedirects(
            f"Exceeded {MAX_REDIRECTS} redirects", request=resp.request
        )

    async def check_link(self, url: str) -> CheckResult:
        """Probe *url* and return a CheckResult. Never raises."""
        checked_at = datetime.now(timezone.utc)
        route: list[ProbeTransport] = []

        try:
            resp = await asyncio.wait_for(
                self._head_following(url, route), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            transport = route[-1] if route else self._transports.select(url)
            message = f"Request timeout after {self._timeout:g}s"
            if transport is self._transports.proxied:
                message = transport.describe_error(TimeoutError(message))
            log.debug("link_probe_timeout", url=url, transport=transport.name)
            return CheckResult(
                url=url,
                status=LinkStatus.DEAD,
                error_message=message,
                checked_at=checked_at,
            )
        except Exception as exc:  # noqa: BLE001
            transport = route[-1] if route else self._transports.select(url)
            message = transport.describe_error(exc)
            log.debug(
                "link_probe_error",
                url=url,
                transport=transport.name,
                error=message,
            )
            return CheckResult(
                url=url,
                status=LinkStatus.DEAD,
                error_message=message,
                checked_at=checked_at,
            )

        transport = route[-1]
        if resp.is_success:
            log.debug(
                "link_probe_live",
                url=url,
                transport=transport.name,
                status_code=resp.status_code,
            )
            return CheckResult(
                url=url,
                status=LinkStatus.LIVE,
                status_code=resp.status_code,
                checked_at=checked_at,
            )

        log.debug(
            "link_probe_dead",
            url=url,
            transport=transport.name,
            status_code=resp.status_code,
        )
        return CheckResult(
            url=url,
            status=LinkStatus.DEAD,
            status_code=resp.status_code,
            error_message=f"HTTP {resp.status_code}: {resp.reason_phrase}",
            checked_at=checked_at,
        )
