"""Pass building: expand a check selection into independent pass specs.

Pass templates are fixed and emitted in report order: default, memory,
overflow, ub-shift, concurrency. Order only matters for the report layout;
passes share nothing and may run in any order.
"""

import logging

from bmc_audit.domain.exceptions import NoSolverAvailable
from bmc_audit.domain.models import (
    CheckKind,
    CheckSet,
    DefaultCheck,
    NotApplicablePass,
    PassPlan,
    PassSpec,
    SolverChoice,
    UnwindStrategy,
)

logger = logging.getLogger(__name__)

PASS_ORDER: tuple[CheckKind, ...] = (
    CheckKind.DEFAULT,
    CheckKind.MEMORY,
    CheckKind.OVERFLOW,
    CheckKind.UB_SHIFT,
    CheckKind.CONCURRENCY,
)

DEFAULT_CONTEXT_BOUND = 2

_NEGATIVE_DEFAULT_FLAGS: dict[DefaultCheck, str] = {
    DefaultCheck.BOUNDS: "--no-bounds-check",
    DefaultCheck.POINTER: "--no-pointer-check",
    DefaultCheck.DIV_BY_ZERO: "--no-div-by-zero-check",
    DefaultCheck.ASSERTIONS: "--no-assertions",
}


def check_flags(kind: CheckKind, context_bound: int = DEFAULT_CONTEXT_BOUND) -> tuple[str, ...]:
    """Checker flags that enable one check category."""
    if kind is CheckKind.MEMORY:
        return ("--memory-leak-check",)
    if kind is CheckKind.OVERFLOW:
        return ("--overflow-check", "--unsigned-overflow-check")
    if kind is CheckKind.UB_SHIFT:
        return ("--ub-shift-check",)
    if kind is CheckKind.CONCURRENCY:
        return ("--deadlock-check", "--data-races-check", "--context-bound", str(context_bound))
    return ()


def negative_default_flags(checks: CheckSet) -> tuple[str, ...]:
    """Opt-out flags for default properties, in a stable order."""
    return tuple(_NEGATIVE_DEFAULT_FLAGS[d] for d in DefaultCheck if d in checks.disabled_defaults)


def build_passes(
    checks: CheckSet,
    solver: SolverChoice,
    unwind: UnwindStrategy,
    threading_detected: bool,
    timeout_seconds: float,
    context_bound: int = DEFAULT_CONTEXT_BOUND,
) -> PassPlan:
    """Expand a check set into one PassSpec per pass.

    Args:
        checks: Requested checks (default checks are always included)
        solver: Selected solver
        unwind: Strategy every pass runs with
        threading_detected: Whether the artifact uses threads
        timeout_seconds: Per-pass timeout
        context_bound: Context-switch bound for the concurrency pass

    Returns:
        PassPlan with specs in report order; on a single-threaded artifact
        the concurrency pass is listed as not applicable instead

    Raises:
        NoSolverAvailable: If solver is SolverChoice.NONE
    """
    if solver is SolverChoice.NONE:
        raise NoSolverAvailable("Cannot build passes without a solver")

    negative = negative_default_flags(checks)
    specs: list[PassSpec] = []
    not_applicable: list[NotApplicablePass] = []

    for kind in PASS_ORDER:
        # Single-threaded artifacts report concurrency as not applicable even when unrequested
        if kind is CheckKind.CONCURRENCY and not threading_detected:
            not_applicable.append(
                NotApplicablePass(
                    category=kind,
                    reason="no thread creation detected in the artifact",
                )
            )
            continue

        if kind not in checks:
            continue

        specs.append(
            PassSpec(
                id=kind.value,
                category=kind,
                solver=solver,
                unwind=unwind,
                checks=CheckSet(
                    requested=frozenset({kind}), disabled_defaults=checks.disabled_defaults
                ),
                timeout_seconds=timeout_seconds,
                extra_flags=(*check_flags(kind, context_bound), *negative),
            )
        )

    logger.info(
        f"Built {len(specs)} passes ({', '.join(s.id for s in specs)}); "
        f"not applicable: {[p.category.value for p in not_applicable]}"
    )
    return PassPlan(specs=tuple(specs), not_applicable=tuple(not_applicable))
