from __future__ import annotations

from .load import load_config
from .schema import AppConfig, CheckerConfig, EnvOverrides, SchedulerConfig

__all__ = [
    "AppConfig",
    "CheckerConfig",
    "EnvOverrides",
    "SchedulerConfig",
    "load_config",
]
