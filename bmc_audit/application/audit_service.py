"""Audit service orchestrating solver selection, planning, pass execution and aggregation.

This is the application layer that coordinates domain logic.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from bmc_audit.domain.exceptions import AuditError, DiscoveryError
from bmc_audit.domain.models import (
    AuditRequest,
    PassResult,
    PassSpec,
    Report,
    StrategyPlan,
    Verdict,
)
from bmc_audit.domain.planning.pass_builder import build_passes
from bmc_audit.domain.planning.strategy_planner import plan
from bmc_audit.domain.steps.loop_profiling import LoopProfilingStep, detect_threading
from bmc_audit.domain.steps.pass_execution import PassRunner
from bmc_audit.domain.steps.solver_selection import SolverSelectionStep
from bmc_audit.domain.verification.result_aggregator import aggregate
from bmc_audit.shared.result import Err, Ok, Result

if TYPE_CHECKING:
    from bmc_audit.domain.interfaces import CheckerBackend
    from bmc_audit.shared.config import Settings

logger = logging.getLogger(__name__)

# Primary verdicts that hand the pass over to the fallback strategy
FALLBACK_VERDICTS = frozenset({Verdict.UNKNOWN, Verdict.TIMED_OUT})


class AuditPhase(str, Enum):
    """Lifecycle of one audit: PLANNED -> RUNNING_PRIMARY -> [RUNNING_FALLBACK ->] DONE."""

    PLANNED = "planned"
    RUNNING_PRIMARY = "running_primary"
    RUNNING_FALLBACK = "running_fallback"
    DONE = "done"


class AuditService:
    """Runs one audit of one artifact."""

    def __init__(self, checker: "CheckerBackend", settings: "Settings"):
        """Initialize audit service.

        Args:
            checker: Backend that talks to the model checker
            settings: Application settings
        """
        self.checker = checker
        self.settings = settings
        self.phase = AuditPhase.PLANNED

    def _enter(self, phase: AuditPhase) -> None:
        logger.info(f"Audit phase: {self.phase.value} -> {phase.value}")
        self.phase = phase

    async def audit(
        self,
        request: AuditRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> Result[Report, AuditError]:
        """Audit one artifact.

        Solver selection and loop discovery are preconditions: if either
        fails, no verification process is spawned and no report is produced.

        Args:
            request: What to verify and how
            cancel_event: Batch cancellation signal; a cancelled audit still
                returns a (partial) report

        Returns:
            Ok(Report) once all passes completed or were abandoned
            Err(AuditError) if a precondition could not be established
        """
        artifact_path = request.artifact_path
        logger.info(
            f"Starting audit of {artifact_path} (intent={request.intent.value}, "
            f"mode={request.mode.value}, checks={sorted(k.value for k in request.checks.enabled)})"
        )

        # Precondition 1: solver
        match await SolverSelectionStep(self.checker).execute():
            case Err(error):
                logger.error(f"Audit halted: {error}")
                return Err(error)
            case Ok(solver):
                pass

        # Precondition 2: loop structure (discovered once, shared by every pass)
        match await LoopProfilingStep(self.checker).execute(artifact_path):
            case Err(error):
                logger.error(f"Audit halted: {error}")
                return Err(error)
            case Ok(profile):
                pass

        try:
            threading_detected = detect_threading(
                Path(artifact_path).read_text(errors="replace")
            )
        except OSError as e:
            logger.error(f"Audit halted: cannot read {artifact_path}: {e}")
            return Err(DiscoveryError(f"Cannot read artifact: {e}", artifact_path=artifact_path))

        if request.unwind_override is not None:
            strategy_plan = StrategyPlan(primary=request.unwind_override)
            logger.info(f"Using strategy override: {strategy_plan.primary.kind}")
        else:
            strategy_plan = plan(
                profile,
                request.cpu_count or self.settings.effective_cpu_count,
                request.intent,
            )

        timeout = request.timeout_seconds or self.settings.default_timeout_seconds
        pass_plan = build_passes(
            request.checks,
            solver,
            strategy_plan.primary,
            threading_detected,
            timeout,
            context_bound=self.settings.context_bound,
        )

        # Loop ids and bounds are only valid for the bytes that were profiled
        if profile.is_stale():
            logger.error(f"Audit halted: {artifact_path} changed after loop discovery")
            return Err(
                DiscoveryError(
                    "Artifact changed after loop discovery; re-run the audit",
                    artifact_path=artifact_path,
                )
            )

        runner = PassRunner(self.checker, artifact_path)

        self._enter(AuditPhase.RUNNING_PRIMARY)
        results = await runner.run(pass_plan.specs, request.mode, cancel_event)
        cancelled = len(results) < len(pass_plan.specs)

        superseded: list[PassResult] = []
        fallback_used = False
        if strategy_plan.fallback is not None and not cancelled:
            retry = [
                (index, spec.with_unwind(strategy_plan.fallback))
                for index, (spec, result) in enumerate(zip(pass_plan.specs, results))
                if result.verdict in FALLBACK_VERDICTS
            ]
            if retry:
                self._enter(AuditPhase.RUNNING_FALLBACK)
                fallback_used = True
                cancelled = await self._run_fallback(
                    runner, retry, results, superseded, request, cancel_event
                )

        self._enter(AuditPhase.DONE)
        report = aggregate(
            results,
            artifact_path=artifact_path,
            solver=solver,
            strategy=strategy_plan.primary,
            not_applicable=pass_plan.not_applicable,
            superseded=superseded,
            fallback_used=fallback_used,
            cancelled=cancelled,
        )
        logger.info(f"Audit of {artifact_path} finished: {report.status.value}")
        return Ok(report)

    async def _run_fallback(
        self,
        runner: PassRunner,
        retry: list[tuple[int, PassSpec]],
        results: list[PassResult],
        superseded: list[PassResult],
        request: AuditRequest,
        cancel_event: asyncio.Event | None,
    ) -> bool:
        """Re-run inconclusive passes with fresh fallback specs; returns whether cancelled."""
        logger.info(
            f"Primary strategy inconclusive for {[results[i].pass_id for i, _ in retry]}, "
            f"running fallback {retry[0][1].unwind.kind}"
        )
        fallback_results = await runner.run([spec for _, spec in retry], request.mode, cancel_event)
        by_id = {r.pass_id: r for r in fallback_results}

        for index, spec in retry:
            replacement = by_id.get(spec.id)
            if replacement is not None:
                superseded.append(results[index])
                results[index] = replacement

        return len(fallback_results) < len(retry)
