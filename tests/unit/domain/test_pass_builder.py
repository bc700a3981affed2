"""Unit tests for pass building.

Tests cover:
- Fixed pass order and per-category flags
- Default checks always present, opt-out via negative flags
- Concurrency applicability
- Rejection of SolverChoice.NONE
"""

import pytest

from bmc_audit.domain.exceptions import NoSolverAvailable
from bmc_audit.domain.models import (
    CheckKind,
    CheckSet,
    DefaultCheck,
    Incremental,
    KInduction,
    SolverChoice,
)
from bmc_audit.domain.planning.pass_builder import build_passes, check_flags


def _build(checks: CheckSet, threading: bool = False, **kwargs):
    return build_passes(
        checks,
        SolverChoice.BOOLECTOR,
        Incremental(),
        threading,
        timeout_seconds=kwargs.pop("timeout_seconds", 60.0),
        **kwargs,
    )


class TestBuildPasses:
    """Tests for build_passes."""

    def test_empty_selection_still_runs_default_pass(self) -> None:
        plan = _build(CheckSet())

        assert [s.id for s in plan.specs] == ["default"]
        assert plan.specs[0].extra_flags == ()

    def test_memory_and_overflow(self) -> None:
        plan = _build(CheckSet.of(CheckKind.MEMORY, CheckKind.OVERFLOW))

        assert [s.category for s in plan.specs] == [
            CheckKind.DEFAULT,
            CheckKind.MEMORY,
            CheckKind.OVERFLOW,
        ]
        assert plan.specs[1].extra_flags == ("--memory-leak-check",)
        assert plan.specs[2].extra_flags == ("--overflow-check", "--unsigned-overflow-check")

    def test_all_checks_with_threading_in_report_order(self) -> None:
        plan = _build(CheckSet.all(), threading=True)

        assert [s.id for s in plan.specs] == [
            "default",
            "memory",
            "overflow",
            "ub_shift",
            "concurrency",
        ]
        assert plan.not_applicable == ()
        assert plan.specs[3].extra_flags == ("--ub-shift-check",)
        assert plan.specs[4].extra_flags == (
            "--deadlock-check",
            "--data-races-check",
            "--context-bound",
            "2",
        )

    def test_concurrency_requested_without_threading_is_not_applicable(self) -> None:
        plan = _build(CheckSet.all(), threading=False)

        assert CheckKind.CONCURRENCY not in [s.category for s in plan.specs]
        assert len(plan.not_applicable) == 1
        assert plan.not_applicable[0].category is CheckKind.CONCURRENCY
        assert "thread" in plan.not_applicable[0].reason

    def test_single_threaded_artifact_lists_concurrency_even_if_unrequested(self) -> None:
        plan = _build(CheckSet.of(CheckKind.MEMORY), threading=False)

        assert [p.category for p in plan.not_applicable] == [CheckKind.CONCURRENCY]

    def test_threaded_artifact_without_concurrency_request(self) -> None:
        plan = _build(CheckSet.of(CheckKind.MEMORY), threading=True)

        assert [s.id for s in plan.specs] == ["default", "memory"]
        assert plan.not_applicable == ()

    def test_context_bound_is_configurable(self) -> None:
        plan = _build(CheckSet.of(CheckKind.CONCURRENCY), threading=True, context_bound=4)

        assert plan.specs[-1].extra_flags[-2:] == ("--context-bound", "4")

    def test_disabled_defaults_apply_to_every_pass(self) -> None:
        checks = CheckSet.of(
            CheckKind.OVERFLOW,
            disabled_defaults=frozenset({DefaultCheck.DIV_BY_ZERO, DefaultCheck.BOUNDS}),
        )

        plan = _build(checks)

        for spec in plan.specs:
            assert "--no-bounds-check" in spec.extra_flags
            assert "--no-div-by-zero-check" in spec.extra_flags
            assert "--no-pointer-check" not in spec.extra_flags
        assert plan.specs[0].extra_flags == ("--no-bounds-check", "--no-div-by-zero-check")

    def test_each_spec_carries_solver_unwind_and_timeout(self) -> None:
        plan = build_passes(
            CheckSet.of(CheckKind.MEMORY),
            SolverChoice.Z3,
            KInduction(parallel=True),
            False,
            timeout_seconds=42.0,
        )

        for spec in plan.specs:
            assert spec.solver is SolverChoice.Z3
            assert spec.unwind == KInduction(parallel=True)
            assert spec.timeout_seconds == 42.0

    def test_pass_ids_are_unique(self) -> None:
        plan = _build(CheckSet.all(), threading=True)

        ids = [s.id for s in plan.specs]
        assert len(ids) == len(set(ids))

    def test_solver_none_rejected(self) -> None:
        with pytest.raises(NoSolverAvailable):
            build_passes(CheckSet(), SolverChoice.NONE, Incremental(), False, 60.0)


class TestCheckFlags:
    def test_default_has_no_flags(self) -> None:
        assert check_flags(CheckKind.DEFAULT) == ()
