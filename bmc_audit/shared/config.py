"""Configuration management using Pydantic Settings.

Loads configuration from environment variables with validation.
"""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from bmc_audit.domain.models import RunMode


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    api_title: str = Field(default="BMC Audit Service", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")
    api_description: str = Field(
        default="Plan and run multi-pass bounded model checking audits of C/C++ sources",
        description="API description",
    )

    # Checker Configuration
    checker_path: str = Field(
        default="esbmc", description="Model checker executable name or absolute path"
    )
    probe_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        le=600.0,
        description="Deadline for solver probing and loop discovery in seconds",
    )

    # Pass Configuration
    default_timeout_seconds: float = Field(
        default=300.0,
        gt=0.0,
        le=86400.0,
        description="Per-pass timeout passed to the checker in seconds",
    )
    timeout_grace_seconds: float = Field(
        default=5.0,
        ge=0.0,
        le=300.0,
        description="Extra time before the runner kills a pass that ignored its own timeout",
    )
    default_run_mode: RunMode = Field(
        default=RunMode.CONCURRENT, description="Run passes concurrently or sequentially"
    )
    context_bound: int = Field(
        default=2, ge=1, le=16, description="Context-switch bound for the concurrency pass"
    )

    # Planning Configuration
    cpu_count: int | None = Field(
        default=None,
        ge=1,
        le=1024,
        description="Parallelism available to the checker (defaults to os.cpu_count())",
    )

    # CORS Configuration
    cors_allowed_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    # Logging
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @property
    def effective_cpu_count(self) -> int:
        """Configured CPU count, or what the host reports."""
        return self.cpu_count or os.cpu_count() or 1
