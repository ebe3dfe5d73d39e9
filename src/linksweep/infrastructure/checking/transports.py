"""Egress strategies for link probes.

Regular hosts are probed directly. Anonymity-network hosts (``.onion``)
are only ever probed through the SOCKS proxy: direct egress would leak
the checker's origin and cannot resolve those names anyway.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from urllib.parse import urlparse

import httpx

ONION_SUFFIX = ".onion"


def is_onion_host(host: str | None) -> bool:
    """Return True if *host* is on the reserved onion top-level domain."""
    if not host:
        return False
    return host.lower().rstrip(".").endswith(ONION_SUFFIX)


def host_of(url: str) -> str | None:
    """Extract the hostname from *url*, or None if it cannot be parsed."""
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def _error_text(exc: BaseException) -> str:
    text = str(exc)
    return text if text else exc.__class__.__name__


@runtime_checkable
class ProbeTransport(Protocol):
    """Egress path for a single probe request."""

    @property
    def name(self) -> str:
        """Short label used in logs ('direct', 'socks')."""
        ...

    async def head(self, url: str) -> httpx.Response:
        """Send one HEAD request for *url*. Redirects are not followed."""
        ...

    def describe_error(self, exc: BaseException) -> str:
        """Render a failure of :meth:`head` as an error message."""
        ...


class DirectTransport:
    """Probe over the shared httpx client with no proxy."""

    name = "direct"

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    async def head(self, url: str) -> httpx.Response:
        return await self._http.head(url, follow_redirects=False)

    def describe_error(self, exc: BaseException) -> str:
        return _error_text(exc)


class ProxiedTransport:
    """Probe through a SOCKS proxy.

    The httpx client must be built with ``proxy=proxy_url``; hostnames are
    handed to the proxy unresolved.
    """

    name = "socks"

    def __init__(self, http_client: httpx.AsyncClient, proxy_url: str) -> None:
        self._http = http_client
        self.proxy_url = proxy_url

    async def head(self, url: str) -> httpx.Response:
        return await self._http.head(url, follow_redirects=False)

    def describe_error(self, exc: BaseException) -> str:
        if isinstance(exc, (httpx.ProxyError, httpx.ConnectError)):
            return f"SOCKS proxy {self.proxy_url} unavailable: {_error_text(exc)}"
        return f"SOCKS proxy {self.proxy_url}: {_error_text(exc)}"


class TransportSelector:
    """Pick the transport for a URL once per probe."""

    def __init__(self, direct: ProbeTransport, proxied: ProbeTransport) -> None:
        self.direct = direct
        self.proxied = proxied

    def select(self, url: str) -> ProbeTransport:
        if is_onion_host(host_of(url)):
            return self.proxied
        return self.direct
