"""API request/response models.

Separate from domain models to allow different validation rules.
"""

from typing import Literal

from pydantic import BaseModel, Field

from bmc_audit.application.report_formatter import format_report
from bmc_audit.domain.models import (
    AuditRequest,
    CheckKind,
    CheckSet,
    DefaultCheck,
    Report,
    RunMode,
    UnwindStrategy,
    VerificationIntent,
)


class AuditRunRequest(BaseModel):
    """Request model for auditing one C/C++ source file.

    The service selects a solver, discovers the loops of the artifact once,
    plans an unwinding strategy and runs one checker pass per requested
    check category. The default properties (array bounds, pointer safety,
    division by zero, user assertions) are always verified unless switched
    off through ``disabled_defaults``.
    """

    artifact_path: str = Field(
        min_length=1,
        description="Path of the source file to verify, as seen by the service host",
        examples=["/srv/audits/ring_buffer.c"],
    )

    checks: list[CheckKind] | Literal["all"] = Field(
        default_factory=list,
        description=(
            "Additional check categories beyond the defaults, or 'all'. "
            "The concurrency pass only runs when thread creation is detected."
        ),
        examples=[["memory", "overflow"], "all"],
    )

    disabled_defaults: list[DefaultCheck] = Field(
        default_factory=list,
        description="Default properties to switch off explicitly",
        examples=[["div_by_zero"]],
    )

    intent: VerificationIntent = Field(
        default=VerificationIntent.BUG_HUNTING,
        description=(
            "bug_hunting plans bounded model checking; prove_correctness plans "
            "k-induction with a bounded fallback"
        ),
    )

    mode: RunMode | None = Field(
        default=None, description="Run passes concurrently or sequentially (server default if omitted)"
    )

    timeout_seconds: float | None = Field(
        default=None, gt=0.0, le=86400.0, description="Per-pass timeout in seconds"
    )

    cpu_count: int | None = Field(
        default=None, ge=1, le=1024, description="Parallelism available to the checker"
    )

    unwind_override: UnwindStrategy | None = Field(
        default=None,
        description="Bypass planning and run every pass with this strategy (no fallback)",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"artifact_path": "/srv/audits/ring_buffer.c", "checks": ["memory", "overflow"]},
                {"artifact_path": "/srv/audits/worker_pool.c", "checks": "all"},
                {
                    "artifact_path": "/srv/audits/sort.c",
                    "intent": "prove_correctness",
                    "timeout_seconds": 120,
                },
            ]
        }
    }

    def to_domain(self, default_mode: RunMode) -> AuditRequest:
        """Convert to the domain request, filling server-side defaults."""
        if self.checks == "all":
            requested = frozenset(CheckKind)
        else:
            requested = frozenset(self.checks)

        return AuditRequest(
            artifact_path=self.artifact_path,
            checks=CheckSet(
                requested=requested, disabled_defaults=frozenset(self.disabled_defaults)
            ),
            intent=self.intent,
            mode=self.mode or default_mode,
            timeout_seconds=self.timeout_seconds,
            cpu_count=self.cpu_count,
            unwind_override=self.unwind_override,
        )


class AuditRunResponse(BaseModel):
    """Response model containing the audit report and a plain-text summary.

    An inconclusive report is a successful response: the status field, not
    the HTTP status code, says whether the artifact was proven clean.
    """

    report: Report = Field(description="Aggregated per-pass results, findings and counts")
    summary: str = Field(description="Human-readable rendering of the report, without traces")

    @classmethod
    def from_domain(cls, report: Report) -> "AuditRunResponse":
        return cls(report=report, summary=format_report(report, show_traces=False))


class ErrorResponse(BaseModel):
    """Error response model returned when an audit cannot be performed."""

    error: str = Field(
        description="Human-readable error message describing why the audit halted",
        examples=[
            "No supported solver available (reported solvers=[])",
            "Loop discovery failed for /srv/audits/broken.c",
        ],
    )
    details: dict | None = Field(
        default=None,
        description="Additional structured error details, when available",
    )
