from .link_prober import HttpLinkProber
from .transports import (
    DirectTransport,
    ProbeTransport,
    ProxiedTransport,
    TransportSelector,
    is_onion_host,
)

__all__ = [
    "DirectTransport",
    "HttpLinkProber",
    "ProbeTransport",
    "ProxiedTransport",
    "TransportSelector",
    "is_onion_host",
]
