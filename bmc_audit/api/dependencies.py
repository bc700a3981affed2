"""Dependency injection for FastAPI.

Provides singleton instances of infrastructure components and per-request services.
"""

from functools import lru_cache

from bmc_audit.application.audit_service import AuditService
from bmc_audit.infrastructure.checker.esbmc_executor import EsbmcExecutor
from bmc_audit.shared.config import Settings


@lru_cache
def get_settings() -> Settings:
    """Get application settings (singleton).

    Cached because settings are expensive to load and should be reused.

    Returns:
        Application settings
    """
    return Settings()


@lru_cache
def get_checker_backend() -> EsbmcExecutor:
    """Get checker backend (singleton).

    Cached so every request shares one view of the running checker processes.

    Returns:
        ESBMC executor
    """
    settings = get_settings()
    return EsbmcExecutor(
        checker_path=settings.checker_path,
        probe_timeout=settings.probe_timeout_seconds,
        timeout_grace=settings.timeout_grace_seconds,
    )


def get_audit_service() -> AuditService:
    """Get audit service (per-request).

    NOT cached because AuditService tracks the phase of a single audit.

    Returns:
        Audit service instance
    """
    return AuditService(checker=get_checker_backend(), settings=get_settings())
