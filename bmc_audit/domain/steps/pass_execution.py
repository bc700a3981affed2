"""Pass execution: run pass specs against the checker, sequentially or concurrently.

Results always come back in submission order, whatever order the processes
finish in. Setting the cancel event stops the batch: in-flight passes are
terminated, unstarted passes never start, and the results completed so far
are returned.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from bmc_audit.domain.exceptions import CheckerUnavailableError
from bmc_audit.domain.models import PassResult, PassSpec, RunMode, Verdict

if TYPE_CHECKING:
    from bmc_audit.domain.interfaces import CheckerBackend

logger = logging.getLogger(__name__)


class PassRunner:
    """Executes pass specs for one artifact."""

    def __init__(self, checker: "CheckerBackend", artifact_path: str):
        """Initialize pass runner.

        Args:
            checker: Backend that spawns checker processes
            artifact_path: Source file every pass verifies
        """
        self.checker = checker
        self.artifact_path = artifact_path

    async def run(
        self,
        specs: Sequence[PassSpec],
        mode: RunMode = RunMode.CONCURRENT,
        cancel_event: asyncio.Event | None = None,
    ) -> list[PassResult]:
        """Run every spec and return one result per completed spec, in input order.

        Args:
            specs: Passes to run
            mode: Sequential or concurrent execution
            cancel_event: Batch cancellation signal

        Returns:
            Results in the order of ``specs``; shorter than ``specs`` only
            when the batch was cancelled
        """
        cancel_event = cancel_event or asyncio.Event()
        logger.info(f"Running {len(specs)} passes ({mode.value}) on {self.artifact_path}")

        if mode is RunMode.SEQUENTIAL:
            results = await self._run_sequential(specs, cancel_event)
        else:
            results = await self._run_concurrent(specs, cancel_event)

        if len(results) < len(specs):
            logger.warning(
                f"Batch cancelled: {len(results)}/{len(specs)} passes completed"
            )
        return results

    async def _run_sequential(
        self, specs: Sequence[PassSpec], cancel_event: asyncio.Event
    ) -> list[PassResult]:
        results: list[PassResult] = []

        for spec in specs:
            if cancel_event.is_set():
                break

            task = asyncio.create_task(self._run_one(spec))
            cancel_waiter = asyncio.create_task(cancel_event.wait())
            try:
                done, _ = await asyncio.wait(
                    {task, cancel_waiter}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                await self._discard(task if not task.done() else None, cancel_waiter)

            if task not in done:
                break
            results.append(task.result())

        return results

    async def _run_concurrent(
        self, specs: Sequence[PassSpec], cancel_event: asyncio.Event
    ) -> list[PassResult]:
        tasks = {asyncio.create_task(self._run_one(spec)): index for index, spec in enumerate(specs)}
        completed: dict[int, PassResult] = {}
        pending = set(tasks)
        cancel_waiter = asyncio.create_task(cancel_event.wait())

        try:
            while pending:
                done, _ = await asyncio.wait(
                    pending | {cancel_waiter}, return_when=asyncio.FIRST_COMPLETED
                )
                for task in done - {cancel_waiter}:
                    pending.discard(task)
                    completed[tasks[task]] = task.result()
                if cancel_waiter in done:
                    break
        finally:
            await self._discard(*pending, cancel_waiter)

        return [completed[index] for index in sorted(completed)]

    @staticmethod
    async def _discard(*tasks: asyncio.Task | None) -> None:
        """Cancel tasks and wait until they have finished cleaning up."""
        live = [t for t in tasks if t is not None]
        for task in live:
            task.cancel()
        await asyncio.gather(*live, return_exceptions=True)

    async def _run_one(self, spec: PassSpec) -> PassResult:
        logger.debug(f"Dispatching pass {spec.id} (timeout={spec.timeout_seconds}s)")

        try:
            run = await self.checker.verify(self.artifact_path, spec)
        except CheckerUnavailableError as e:
            logger.error(f"Pass {spec.id} could not start the checker: {e}")
            return PassResult(
                pass_id=spec.id,
                category=spec.category,
                verdict=Verdict.PROCESS_ERROR,
                raw_output=str(e),
                duration_ms=0.0,
                strategy=spec.unwind.kind,
            )

        if run.verdict in (Verdict.TIMED_OUT, Verdict.PROCESS_ERROR):
            logger.warning(f"Pass {spec.id} finished with {run.verdict.value} (exit={run.exit_code})")
        else:
            logger.info(f"Pass {spec.id} finished with {run.verdict.value} in {run.duration_ms:.0f}ms")

        return PassResult(
            pass_id=spec.id,
            category=spec.category,
            verdict=run.verdict,
            raw_output=run.raw_output,
            counterexample=run.counterexample,
            duration_ms=run.duration_ms,
            exit_code=run.exit_code,
            strategy=spec.unwind.kind,
        )
