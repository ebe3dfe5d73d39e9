"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Any, Literal, Optional
from urllib.parse import urlparse

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]

_SOCKS_SCHEMES = {"socks5", "socks5h"}


class CheckerConfig(BaseModel):
    """Link checking engine settings (YAML section: checker.*)."""

    timeout_seconds: float = Field(
        default=10.0,
        description="Deadline for a single probe (seconds).",
    )
    batch_size: int = Field(
        default=10,
        description="Links per batch; also the number of concurrent probes.",
    )
    max_consecutive_failures: int = Field(
        default=3,
        description="Dead checks in a row after which a link is deleted.",
    )
    proxy_endpoint: str = Field(
        default="socks5://127.0.0.1:9050",
        description="SOCKS proxy used for .onion hosts (never bypassed).",
    )
    batch_delay_seconds: float = Field(
        default=1.0,
        description="Pause between consecutive batches of a sweep.",
    )
    recheck_after_hours: float = Field(
        default=24.0,
        description="A link is due again once its last check is this old.",
    )

    @field_validator("timeout_seconds", "recheck_after_hours")
    @classmethod
    def _validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("batch_size", "max_consecutive_failures")
    @classmethod
    def _validate_at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("batch_delay_seconds")
    @classmethod
    def _validate_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("batch_delay_seconds must be >= 0")
        return v

    @field_validator("proxy_endpoint")
    @classmethod
    def _validate_proxy(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in _SOCKS_SCHEMES or not parsed.hostname:
            raise ValueError(
                f"proxy_endpoint must be a socks5:// or socks5h:// URL, got {v!r}"
            )
        return v


class SchedulerConfig(BaseModel):
    """Background sweep scheduling (YAML section: scheduler.*)."""

    enabled: bool = Field(
        default=True,
        description="Start the periodic link-checker job on startup.",
    )
    sweep_interval_hours: float = Field(
        default=24.0,
        description="Period between scheduled sweeps (hours).",
    )
    shutdown_timeout_seconds: float = Field(
        default=10.0,
        description="How long shutdown waits for an in-flight sweep.",
    )

    @field_validator("sweep_interval_hours")
    @classmethod
    def _validate_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("sweep_interval_hours must be > 0")
        return v

    @field_validator("shutdown_timeout_seconds")
    @classmethod
    def _validate_shutdown_timeout(cls, v: float) -> float:
        if v < 0:
            raise ValueError("shutdown_timeout_seconds must be >= 0")
        return v

    @property
    def sweep_interval_seconds(self) -> float:
        return self.sweep_interval_hours * 3600.0


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/logging/database/checker/scheduler).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="linksweep", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP (YAML section: http.*)
    http_user_agent: str = Field(
        default="linksweep/0.1.0 (+link health checker)",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent sent with every probe.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    # Link store (YAML section: database.*)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./linksweep.db",
        validation_alias=AliasChoices(
            "database_url",
            AliasPath("database", "url"),
        ),
        description="SQLAlchemy async database URL of the link store.",
    )
    database_echo: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "database_echo",
            AliasPath("database", "echo"),
        ),
        description="Log every SQL statement (debugging only).",
    )

    checker: CheckerConfig = Field(default_factory=CheckerConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)

    @field_validator("database_url")
    @classmethod
    def _validate_database_url(cls, v: str) -> str:
        if "://" not in v:
            raise ValueError(f"database_url is not a URL: {v!r}")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {"user_agent": self.http_user_agent},
            "logging": {"level": self.log_level, "format": self.log_format},
            "database": {"url": self.database_url, "echo": self.database_echo},
            "checker": self.checker.model_dump(),
            "scheduler": self.scheduler.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    load.py creates EnvOverrides() to read LINKSWEEP_* variables, keeps only
    the ones that were set, and merges them over YAML/defaults before
    validating AppConfig.

    Supported env var examples (flat, explicit):
    - LINKSWEEP_DATABASE_URL
    - LINKSWEEP_LOG_LEVEL
    - LINKSWEEP_CHECKER_BATCH_SIZE
    - LINKSWEEP_CHECKER_PROXY_ENDPOINT
    - LINKSWEEP_SCHEDULER_ENABLED
    """

    model_config = SettingsConfigDict(
        env_prefix="LINKSWEEP_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    database_url: Optional[str] = None
    database_echo: Optional[bool] = None

    checker_timeout_seconds: Optional[float] = None
    checker_batch_size: Optional[int] = None
    checker_max_consecutive_failures: Optional[int] = None
    checker_proxy_endpoint: Optional[str] = None
    checker_batch_delay_seconds: Optional[float] = None
    checker_recheck_after_hours: Optional[float] = None

    scheduler_enabled: Optional[bool] = None
    scheduler_sweep_interval_hours: Optional[float] = None
    scheduler_shutdown_timeout_seconds: Optional[float] = None

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
