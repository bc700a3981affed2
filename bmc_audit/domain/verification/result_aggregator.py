"""Result aggregation: fold per-pass results into one report.

Pure: no I/O, no logging side effects beyond a summary line.
"""

import logging
from collections.abc import Sequence

from bmc_audit.domain.models import (
    CheckKind,
    Finding,
    NotApplicablePass,
    OverallStatus,
    PassResult,
    Report,
    SolverChoice,
    UnwindStrategy,
    Verdict,
)

logger = logging.getLogger(__name__)


def overall_status(results: Sequence[PassResult], cancelled: bool = False) -> OverallStatus:
    """Derive the overall status.

    Any violation wins. Otherwise any inconclusive pass, a cancelled batch,
    or an empty batch makes the audit inconclusive. Clean requires every
    included pass to be Successful.
    """
    verdicts = [r.verdict for r in results]
    if Verdict.VIOLATION_FOUND in verdicts:
        return OverallStatus.VIOLATIONS_PRESENT
    if cancelled or not verdicts or any(v is not Verdict.SUCCESSFUL for v in verdicts):
        return OverallStatus.INCONCLUSIVE
    return OverallStatus.CLEAN


def collect_findings(results: Sequence[PassResult]) -> tuple[Finding, ...]:
    """Deduplicate violations reported by several passes.

    Two violations are the same finding when they share the property
    description and source location. A finding is attributed to the most
    specific category that reported it.
    """
    findings: dict[tuple, dict] = {}

    for result in results:
        if result.verdict is not Verdict.VIOLATION_FOUND:
            continue

        prop = result.counterexample.violated_property if result.counterexample else None
        if prop is None:
            key: tuple = ("unlocated", result.pass_id)
            entry = {
                "category": result.category,
                "property": "violation reported without a parsable counterexample",
                "file": None,
                "line": None,
                "function": None,
                "pass_ids": [],
            }
        else:
            key = (prop.description, prop.file, prop.line)
            entry = {
                "category": result.category,
                "property": prop.description,
                "file": prop.file,
                "line": prop.line,
                "function": prop.function,
                "pass_ids": [],
            }

        existing = findings.setdefault(key, entry)
        existing["pass_ids"].append(result.pass_id)
        if existing["category"] is CheckKind.DEFAULT and result.category is not CheckKind.DEFAULT:
            existing["category"] = result.category

    return tuple(
        Finding(**{**entry, "pass_ids": tuple(entry["pass_ids"])}) for entry in findings.values()
    )


def aggregate(
    results: Sequence[PassResult],
    *,
    artifact_path: str,
    solver: SolverChoice,
    strategy: UnwindStrategy,
    not_applicable: Sequence[NotApplicablePass] = (),
    superseded: Sequence[PassResult] = (),
    fallback_used: bool = False,
    cancelled: bool = False,
) -> Report:
    """Build the report for one audit.

    Not-applicable passes never ran, so they appear only in
    ``not_applicable`` and count towards neither the evaluated passes nor
    any per-category count.

    Args:
        results: Final result per pass, in plan order
        artifact_path: Verified artifact
        solver: Solver the passes ran with
        strategy: Primary unwind strategy
        not_applicable: Requested passes skipped as irrelevant
        superseded: Primary results replaced by fallback runs
        fallback_used: Whether any fallback pass ran
        cancelled: Whether the batch was cancelled before completing

    Returns:
        Read-only Report
    """
    violation_counts: dict[CheckKind, int] = {}
    inconclusive_counts: dict[CheckKind, int] = {}
    for result in results:
        violation_counts.setdefault(result.category, 0)
        inconclusive_counts.setdefault(result.category, 0)
        if result.verdict is Verdict.VIOLATION_FOUND:
            violation_counts[result.category] += 1
        elif result.verdict.is_inconclusive:
            inconclusive_counts[result.category] += 1

    status = overall_status(results, cancelled=cancelled)
    report = Report(
        artifact_path=artifact_path,
        solver=solver,
        strategy=strategy,
        fallback_used=fallback_used,
        status=status,
        results=tuple(results),
        superseded=tuple(superseded),
        not_applicable=tuple(not_applicable),
        evaluated_passes=len(results),
        applicable_concurrency_passes=sum(
            1 for r in results if r.category is CheckKind.CONCURRENCY
        ),
        violation_counts=violation_counts,
        inconclusive_counts=inconclusive_counts,
        findings=collect_findings(results),
        cancelled=cancelled,
    )

    logger.info(
        f"Aggregated {report.evaluated_passes} passes for {artifact_path}: {status.value}"
    )
    return report
