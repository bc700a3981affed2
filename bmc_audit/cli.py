"""Command-line entry point: audit one source file and print the report.

Exit codes: 0 clean, 1 violations present, 2 inconclusive, 3 fatal error.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from bmc_audit.application.audit_service import AuditService
from bmc_audit.application.report_formatter import format_report
from bmc_audit.domain.models import (
    AuditRequest,
    CheckKind,
    CheckSet,
    DefaultCheck,
    OverallStatus,
    RunMode,
    VerificationIntent,
)
from bmc_audit.infrastructure.checker.esbmc_executor import EsbmcExecutor
from bmc_audit.shared.config import Settings
from bmc_audit.shared.logging_config import configure_logging
from bmc_audit.shared.result import Err, Ok

logger = logging.getLogger(__name__)

EXIT_CLEAN = 0
EXIT_VIOLATIONS = 1
EXIT_INCONCLUSIVE = 2
EXIT_ERROR = 3

_EXIT_CODES = {
    OverallStatus.CLEAN: EXIT_CLEAN,
    OverallStatus.VIOLATIONS_PRESENT: EXIT_VIOLATIONS,
    OverallStatus.INCONCLUSIVE: EXIT_INCONCLUSIVE,
}


def _option(value: str) -> str:
    return value.strip().lower().replace("-", "_")


def parse_checks(text: str) -> frozenset[CheckKind]:
    """Parse ``memory,overflow`` or ``all`` into check kinds."""
    if _option(text) == "all":
        return frozenset(CheckKind)
    kinds = set()
    for item in filter(None, (part.strip() for part in text.split(","))):
        try:
            kinds.add(CheckKind(_option(item)))
        except ValueError:
            choices = ", ".join(k.value for k in CheckKind)
            raise argparse.ArgumentTypeError(
                f"unknown check '{item}' (choose from {choices}, or all)"
            ) from None
    return frozenset(kinds)


def _default_check(text: str) -> DefaultCheck:
    try:
        return DefaultCheck(_option(text))
    except ValueError:
        raise argparse.ArgumentTypeError(f"unknown default check '{text}'") from None


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer '{text}'") from None
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def _positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number '{text}'") from None
    if not value > 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {text}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bmc-audit",
        description="Plan and run a multi-pass bounded model checking audit of a C/C++ file",
    )
    parser.add_argument("artifact", type=Path, help="Source file to verify")
    parser.add_argument(
        "--checks",
        type=parse_checks,
        default=frozenset(),
        help="Comma-separated check categories in addition to the defaults "
        "(memory, overflow, concurrency, ub-shift) or 'all'",
    )
    parser.add_argument(
        "--intent",
        choices=[i.value for i in VerificationIntent],
        type=_option,
        default=VerificationIntent.BUG_HUNTING.value,
        help="bug-hunting (bounded checking) or prove-correctness (k-induction)",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in RunMode],
        type=_option,
        default=None,
        help="Run passes concurrently or sequentially (default: from settings)",
    )
    parser.add_argument(
        "--timeout", type=_positive_float, default=None, help="Per-pass timeout in seconds"
    )
    parser.add_argument(
        "--cpus", type=_positive_int, default=None, help="Parallelism available to the checker"
    )
    parser.add_argument(
        "--no-default-check",
        type=_default_check,
        action="append",
        default=[],
        dest="disabled_defaults",
        help="Switch off a default property (bounds, pointer, div-by-zero, assertions); "
        "may be repeated",
    )
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument(
        "--log-level", default=None, help="Logging level (default: from settings)"
    )
    return parser


def build_request(args: argparse.Namespace, settings: Settings) -> AuditRequest:
    return AuditRequest(
        artifact_path=str(args.artifact),
        checks=CheckSet(
            requested=args.checks, disabled_defaults=frozenset(args.disabled_defaults)
        ),
        intent=VerificationIntent(args.intent),
        mode=RunMode(args.mode) if args.mode else settings.default_run_mode,
        timeout_seconds=args.timeout,
        cpu_count=args.cpus,
    )


async def run_audit(args: argparse.Namespace, settings: Settings) -> int:
    """Run the audit, printing the (possibly partial) report.

    Ctrl-C cancels the batch: running checker processes are killed and the
    report of the passes that completed is still printed.
    """
    checker = EsbmcExecutor(
        checker_path=settings.checker_path,
        probe_timeout=settings.probe_timeout_seconds,
        timeout_grace=settings.timeout_grace_seconds,
    )
    service = AuditService(checker=checker, settings=settings)

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    try:
        result = await service.audit(build_request(args, settings), cancel_event=cancel_event)
    finally:
        loop.remove_signal_handler(signal.SIGINT)

    match result:
        case Err(error):
            print(f"Error: {error}", file=sys.stderr)
            return EXIT_ERROR
        case Ok(report):
            if args.json:
                print(report.model_dump_json(indent=2))
            else:
                print(format_report(report))
            return _EXIT_CODES[report.status]


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings()
    configure_logging(args.log_level or settings.log_level)

    if not args.artifact.is_file():
        print(f"Error: Artifact not found: {args.artifact}", file=sys.stderr)
        return EXIT_ERROR

    try:
        return asyncio.run(run_audit(args, settings))
    except KeyboardInterrupt:
        # Interrupted outside the audit itself (startup or printing)
        print("Interrupted", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
