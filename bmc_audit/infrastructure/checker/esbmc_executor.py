"""ESBMC-based checker executor.

Runs the checker as asyncio subprocesses. Each process is started in its own
session so that a timeout or cancellation can kill the whole process group,
including the workers ``--k-induction-parallel`` forks.
"""

import asyncio
import logging
import os
import shlex
import signal
import time
from collections.abc import Sequence
from dataclasses import dataclass

from bmc_audit.domain.exceptions import CheckerUnavailableError, DiscoveryError
from bmc_audit.domain.models import CheckerRun, DiscoveredLoop, PassSpec, SolverChoice, Verdict
from bmc_audit.infrastructure.checker.esbmc_cli import (
    LIST_SOLVERS_ARGS,
    build_show_loops_args,
    build_verify_args,
)
from bmc_audit.infrastructure.checker.output_parser import (
    classify_verdict,
    detect_frontend_error,
    parse_counterexample,
    parse_loops,
    parse_solvers,
)

logger = logging.getLogger(__name__)

# How long to keep reading pipes after a kill, for output already written
PIPE_DRAIN_SECONDS = 1.0


@dataclass(frozen=True)
class ProcessOutcome:
    """Raw outcome of one checker process."""

    returncode: int | None
    stdout: str
    stderr: str
    timed_out: bool
    duration_ms: float

    @property
    def output(self) -> str:
        if not self.stderr:
            return self.stdout
        return f"{self.stdout}\n{self.stderr}" if self.stdout else self.stderr


class EsbmcExecutor:
    """CheckerBackend implementation driving the ``esbmc`` executable."""

    def __init__(
        self,
        checker_path: str = "esbmc",
        probe_timeout: float = 30.0,
        timeout_grace: float = 5.0,
    ) -> None:
        """Initialize executor.

        Args:
            checker_path: Checker executable name or path
            probe_timeout: Deadline for solver probing and loop discovery, in seconds
            timeout_grace: Extra seconds the runner waits beyond a pass's own
                ``--timeout`` before killing the process
        """
        self.checker_path = checker_path
        self.probe_timeout = probe_timeout
        self.timeout_grace = timeout_grace
        self._active: set[asyncio.subprocess.Process] = set()
        logger.info(f"Initialized EsbmcExecutor (checker={checker_path})")

    @property
    def active_process_count(self) -> int:
        """Number of spawned processes not yet reaped."""
        return len(self._active)

    async def list_solvers(self) -> frozenset[SolverChoice]:
        outcome = await self._invoke(LIST_SOLVERS_ARGS, self.probe_timeout)
        if outcome.timed_out:
            raise CheckerUnavailableError(
                f"Solver probe timed out after {self.probe_timeout}s",
                checker_path=self.checker_path,
            )
        solvers = parse_solvers(outcome.output)
        logger.debug(f"Checker reports solvers: {sorted(s.value for s in solvers)}")
        return solvers

    async def show_loops(self, artifact_path: str) -> list[DiscoveredLoop]:
        outcome = await self._invoke(build_show_loops_args(artifact_path), self.probe_timeout)
        if outcome.timed_out:
            raise DiscoveryError(
                f"Loop discovery timed out after {self.probe_timeout}s",
                artifact_path=artifact_path,
            )

        error = detect_frontend_error(outcome.returncode, outcome.output)
        if error:
            raise DiscoveryError(
                f"Checker could not parse artifact: {error}",
                artifact_path=artifact_path,
                checker_output=outcome.output,
            )

        return parse_loops(outcome.output)

    async def verify(self, artifact_path: str, spec: PassSpec) -> CheckerRun:
        deadline = spec.timeout_seconds + self.timeout_grace
        outcome = await self._invoke(build_verify_args(artifact_path, spec), deadline)

        verdict = classify_verdict(outcome.returncode, outcome.output, outcome.timed_out)
        raw_output = outcome.output
        if outcome.timed_out:
            raw_output = f"{raw_output}\nTerminated by runner after {deadline:.1f}s".lstrip()

        return CheckerRun(
            verdict=verdict,
            raw_output=raw_output,
            counterexample=(
                parse_counterexample(outcome.output)
                if verdict is Verdict.VIOLATION_FOUND
                else None
            ),
            exit_code=outcome.returncode,
            duration_ms=outcome.duration_ms,
        )

    async def _invoke(self, args: Sequence[str], timeout: float) -> ProcessOutcome:
        """Run the checker with a deadline; the process is always reaped."""
        argv = [self.checker_path, *args]
        logger.debug(f"Running: {shlex.join(argv)} (deadline={timeout}s)")

        t0 = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            raise CheckerUnavailableError(
                f"Cannot start checker '{self.checker_path}': {e}",
                checker_path=self.checker_path,
            ) from e

        self._active.add(proc)
        timed_out = False
        stdout_buf, stderr_buf = bytearray(), bytearray()
        # Pipes are read incrementally so a killed run keeps its partial output
        collector = asyncio.ensure_future(
            asyncio.gather(
                self._drain(proc.stdout, stdout_buf),
                self._drain(proc.stderr, stderr_buf),
                proc.wait(),
            )
        )
        try:
            await asyncio.wait_for(asyncio.shield(collector), timeout=timeout)
        except TimeoutError:
            timed_out = True
            logger.warning(f"Checker exceeded {timeout}s, terminating pid {proc.pid}")
        finally:
            await self._terminate(proc)
            self._active.discard(proc)
            await self._settle(collector, proc.pid)

        return ProcessOutcome(
            returncode=None if timed_out else proc.returncode,
            stdout=stdout_buf.decode(errors="replace"),
            stderr=stderr_buf.decode(errors="replace"),
            timed_out=timed_out,
            duration_ms=(time.monotonic() - t0) * 1000.0,
        )

    @staticmethod
    async def _drain(stream: asyncio.StreamReader | None, sink: bytearray) -> None:
        if stream is None:
            return
        while True:
            chunk = await stream.read(65536)
            if not chunk:
                return
            sink.extend(chunk)

    @staticmethod
    async def _settle(collector: asyncio.Future, pid: int) -> None:
        """Collect what the process left in its pipes, giving up after a short wait."""
        try:
            await asyncio.wait_for(collector, timeout=PIPE_DRAIN_SECONDS)
        except TimeoutError:
            # A detached grandchild still holds the pipe open
            logger.warning(f"Output of pid {pid} still open after kill, discarding the rest")

    @staticmethod
    async def _terminate(proc: asyncio.subprocess.Process) -> None:
        """Kill the process group if still running, then wait for the exit status."""
        if proc.returncode is None:
            try:
                if hasattr(os, "killpg"):
                    os.killpg(proc.pid, signal.SIGKILL)
                else:
                    proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()
