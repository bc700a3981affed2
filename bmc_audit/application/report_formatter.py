"""Human-readable rendering of audit reports."""

from bmc_audit.domain.models import OverallStatus, Report, Verdict

_STATUS_LABELS = {
    OverallStatus.CLEAN: "CLEAN",
    OverallStatus.VIOLATIONS_PRESENT: "VIOLATIONS PRESENT",
    OverallStatus.INCONCLUSIVE: "INCONCLUSIVE",
}

_VERDICT_LABELS = {
    Verdict.SUCCESSFUL: "successful",
    Verdict.VIOLATION_FOUND: "VIOLATION",
    Verdict.UNKNOWN: "unknown",
    Verdict.TIMED_OUT: "timed out",
    Verdict.PROCESS_ERROR: "process error",
}


def format_report(report: Report, show_traces: bool = True) -> str:
    """Render a report as plain text.

    Args:
        report: Report to render
        show_traces: Include counterexample traces of violating passes

    Returns:
        Multi-line text block
    """
    rule = "=" * 60
    lines = [
        rule,
        f"Audit of {report.artifact_path}",
        rule,
        f"Solver:    {report.solver.value}",
        f"Strategy:  {report.strategy.kind}" + (" (fallback used)" if report.fallback_used else ""),
        f"Status:    {_STATUS_LABELS[report.status]}" + (" (cancelled)" if report.cancelled else ""),
        f"Passes:    {report.evaluated_passes} evaluated, "
        f"{report.applicable_concurrency_passes} concurrency",
        "",
    ]

    for result in report.results:
        seconds = result.duration_ms / 1000
        lines.append(
            f"  [{_VERDICT_LABELS[result.verdict]:>13}] {result.pass_id:<24} "
            f"{result.strategy:<14} {seconds:7.2f}s"
        )

    for skipped in report.not_applicable:
        lines.append(f"  [{'n/a':>13}] {skipped.category.value:<24} {skipped.reason}")

    if report.superseded:
        lines.append("")
        lines.append("Superseded by fallback:")
        for result in report.superseded:
            lines.append(f"  {result.pass_id}: {_VERDICT_LABELS[result.verdict]}")

    if report.findings:
        lines.append("")
        lines.append(f"Findings ({len(report.findings)}):")
        for finding in report.findings:
            location = f"{finding.file}:{finding.line}" if finding.file else "<unknown location>"
            lines.append(f"  - [{finding.category.value}] {finding.property}")
            lines.append(f"    at {location} (reported by {', '.join(finding.pass_ids)})")

    if show_traces:
        for result in report.results:
            if result.counterexample is not None:
                lines.append("")
                lines.append(f"--- {result.pass_id} ---")
                lines.append(result.counterexample.format_trace())

    return "\n".join(lines)
