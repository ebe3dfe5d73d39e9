"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "linksweep",
    "environment": "dev",
    "http": {
        "user_agent": "linksweep/0.1.0 (+link health checker)",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "database": {
        "url": "sqlite+aiosqlite:///./linksweep.db",
        "echo": False,
    },
    "checker": {
        "timeout_seconds": 10.0,
        "batch_size": 10,
        "max_consecutive_failures": 3,
        "proxy_endpoint": "socks5://127.0.0.1:9050",
        "batch_delay_seconds": 1.0,
        "recheck_after_hours": 24.0,
    },
    "scheduler": {
        "enabled": True,
        "sweep_interval_hours": 24.0,
        "shutdown_timeout_seconds": 10.0,
    },
}
