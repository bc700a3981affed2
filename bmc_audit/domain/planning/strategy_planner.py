"""Strategy planning: choose how loops are bounded for an audit.

Bug hunting picks a BMC strategy from the loop profile. Proving correctness
starts with k-induction and keeps the BMC strategy as the fallback for an
inconclusive proof attempt.
"""

import logging

from bmc_audit.domain.models import (
    Incremental,
    KInduction,
    LoopProfile,
    NoUnwind,
    StrategyPlan,
    UnwindSet,
    UnwindStrategy,
    VerificationIntent,
)

logger = logging.getLogger(__name__)

# k-induction runs its base, forward and inductive cases in parallel above this
PARALLEL_K_INDUCTION_MIN_CPUS = 4


def plan_bmc(profile: LoopProfile) -> UnwindStrategy:
    """Pick the bounded-model-checking strategy for a loop profile.

    A single bound-unknown loop makes the whole artifact Incremental. An
    unwind set that only covers some loops would silently under-verify the
    others, so partial unwind sets are never built.
    """
    if profile.is_empty:
        return NoUnwind()

    if profile.all_bounds_known:
        return UnwindSet(
            bounds={loop.id: loop.bound_hint for loop in profile.loops}  # type: ignore[misc]
        )

    return Incremental()


def plan(profile: LoopProfile, cpu_count: int, intent: VerificationIntent) -> StrategyPlan:
    """Produce the primary strategy and optional fallback.

    Args:
        profile: Loop profile of the artifact
        cpu_count: Available parallelism
        intent: Bug hunting or correctness proof

    Returns:
        StrategyPlan; fallback is set only for ProveCorrectness
    """
    if intent is VerificationIntent.PROVE_CORRECTNESS:
        strategy_plan = StrategyPlan(
            primary=KInduction(parallel=cpu_count > PARALLEL_K_INDUCTION_MIN_CPUS),
            fallback=plan_bmc(profile),
        )
    else:
        strategy_plan = StrategyPlan(primary=plan_bmc(profile))

    logger.info(
        f"Planned strategy for {profile.artifact_path}: primary={strategy_plan.primary.kind}, "
        f"fallback={strategy_plan.fallback.kind if strategy_plan.fallback else None}"
    )
    return strategy_plan
