"""Command-line rendering for ESBMC invocations.

Invocation shape:
    <checker> <artifact> [solver-flag] [unwind-flags] [check-flags] --timeout <N>s
"""

import math

from bmc_audit.domain.models import (
    EnforceContract,
    Incremental,
    KInduction,
    LoopInvariant,
    NoUnwind,
    PassSpec,
    ReplaceCallWithContract,
    UnwindSet,
    UnwindStrategy,
)

LIST_SOLVERS_ARGS: tuple[str, ...] = ("--list-solvers",)


def unwind_flags(unwind: UnwindStrategy) -> tuple[str, ...]:
    """Flags for one unwind strategy."""
    match unwind:
        case NoUnwind():
            return ()
        case UnwindSet(bounds=bounds):
            if not bounds:
                return ()
            return ("--unwindset", ",".join(f"{loop}:{bound}" for loop, bound in bounds.items()))
        case Incremental():
            return ("--incremental-bmc",)
        case KInduction(parallel=True):
            return ("--k-induction-parallel",)
        case KInduction():
            return ("--k-induction",)
        case EnforceContract(functions=functions):
            return tuple(flag for f in functions for flag in ("--enforce-contract", f))
        case ReplaceCallWithContract(functions=functions):
            return tuple(flag for f in functions for flag in ("--replace-call-with-contract", f))
        case LoopInvariant():
            return ("--loop-invariant", "--ir")
    raise ValueError(f"Unsupported unwind strategy: {unwind!r}")


def format_timeout(seconds: float) -> str:
    """Render a timeout the way the checker's --timeout option expects it."""
    return f"{max(1, math.ceil(seconds))}s"


def build_verify_args(artifact_path: str, spec: PassSpec) -> list[str]:
    """Arguments (without the executable) for one verification pass."""
    return [
        artifact_path,
        spec.solver.flag,
        *unwind_flags(spec.unwind),
        *spec.extra_flags,
        "--timeout",
        format_timeout(spec.timeout_seconds),
    ]


def build_show_loops_args(artifact_path: str) -> list[str]:
    """Arguments for loop discovery."""
    return [artifact_path, "--show-loops"]
