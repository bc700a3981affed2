"""
Domain interfaces (protocols) for dependency inversion.

The domain never spawns processes itself. Everything it needs from the
external model checker goes through the CheckerBackend protocol, so steps
can be tested against mocks and the executor swapped without touching the
planning logic.
"""

from typing import Protocol, runtime_checkable

from bmc_audit.domain.models import CheckerRun, DiscoveredLoop, PassSpec, SolverChoice


@runtime_checkable
class CheckerBackend(Protocol):
    """
    Protocol for invoking the external bounded model checker.

    Implementations:
    - EsbmcExecutor (asyncio subprocesses around the ``esbmc`` binary)

    Implementations own the lifecycle of every process they spawn: a process
    is always terminated and reaped on timeout, on error, and when the
    awaiting task is cancelled.
    """

    async def list_solvers(self) -> frozenset[SolverChoice]:
        """
        Probe which SMT back-ends the checker was built with.

        Returns:
            Recognized solvers (possibly empty)

        Raises:
            CheckerUnavailableError: If the checker cannot be started
        """
        ...

    async def show_loops(self, artifact_path: str) -> list[DiscoveredLoop]:
        """
        Run loop discovery on the artifact.

        Args:
            artifact_path: Source file to inspect

        Returns:
            Loops in the order the checker reports them

        Raises:
            DiscoveryError: If the checker cannot parse the artifact
            CheckerUnavailableError: If the checker cannot be started
        """
        ...

    async def verify(self, artifact_path: str, spec: PassSpec) -> CheckerRun:
        """
        Run one verification pass.

        Never raises for timeouts or unexpected exit codes; those come back
        as TimedOut / ProcessError verdicts with the raw output preserved.

        Args:
            artifact_path: Source file to verify
            spec: Pass to run

        Returns:
            Classified checker run
        """
        ...
