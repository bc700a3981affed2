"""Solver selection: probe the checker and pick a back-end by priority."""

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from bmc_audit.domain.exceptions import AuditError, CheckerUnavailableError, NoSolverAvailable
from bmc_audit.domain.models import SOLVER_PRIORITY, SolverChoice
from bmc_audit.shared.result import Err, Ok, Result

if TYPE_CHECKING:
    from bmc_audit.domain.interfaces import CheckerBackend

logger = logging.getLogger(__name__)


def select_solver(available: Iterable[SolverChoice]) -> SolverChoice:
    """Pick the highest-priority solver present: Boolector, Bitwuzla, then Z3.

    Args:
        available: Solvers reported by the checker

    Returns:
        The selected solver (never SolverChoice.NONE)

    Raises:
        NoSolverAvailable: If none of the recognized solvers is present
    """
    present = set(available)
    for solver in SOLVER_PRIORITY:
        if solver in present:
            return solver

    raise NoSolverAvailable(
        "No supported SMT solver available (need one of boolector, bitwuzla, z3)",
        available=sorted(s.value for s in present),
    )


class SolverSelectionStep:
    """Probe the checker once and select the solver for the whole audit."""

    def __init__(self, checker: "CheckerBackend"):
        self.checker = checker

    async def execute(self) -> Result[SolverChoice, AuditError]:
        """Probe available solvers and select one.

        Returns:
            Ok(SolverChoice) with the selected solver
            Err(NoSolverAvailable | CheckerUnavailableError) otherwise
        """
        try:
            available = await self.checker.list_solvers()
        except CheckerUnavailableError as e:
            logger.error(f"Solver probe failed: {e}")
            return Err(e)

        try:
            solver = select_solver(available)
        except NoSolverAvailable as e:
            logger.error(str(e))
            return Err(e)

        logger.info(f"Selected solver {solver.value} from {sorted(s.value for s in available)}")
        return Ok(solver)
