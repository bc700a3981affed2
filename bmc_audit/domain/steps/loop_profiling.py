"""Loop profiling: discover loops once per artifact and classify their bounds.

A loop is bound-known when the checker reports a bound, or when its header
is a counted ``for`` loop whose start, limit and step are all literals.
Everything else (while loops, data-dependent limits, pointer walks) is
bound-unknown.
"""

import logging
import math
import re
from pathlib import Path
from typing import TYPE_CHECKING

from bmc_audit.domain.exceptions import AuditError, CheckerUnavailableError, DiscoveryError
from bmc_audit.domain.models import DiscoveredLoop, LoopDescriptor, LoopProfile, digest_artifact
from bmc_audit.shared.result import Err, Ok, Result

if TYPE_CHECKING:
    from bmc_audit.domain.interfaces import CheckerBackend

logger = logging.getLogger(__name__)

_FOR_HEADER = re.compile(
    r"for\s*\(\s*"
    r"(?:[A-Za-z_][\w\s\*]*?\s+)?(?P<var>[A-Za-z_]\w*)\s*=\s*(?P<start>-?\d+)\s*;\s*"
    r"(?P<lhs>[A-Za-z_]\w*)\s*(?P<op><=|<|>=|>|!=)\s*(?P<limit>-?\d+)[uUlL]*\s*;\s*"
    r"(?P<step>[^)]*)\)"
)

_THREADING_PATTERNS = re.compile(
    r"#\s*include\s*<(?:pthread\.h|threads\.h|thread)>"
    r"|\bpthread_create\s*\("
    r"|\bthrd_create\s*\("
    r"|\bstd::thread\b"
)


def _step_of(var: str, step_text: str) -> int | None:
    text = step_text.replace(" ", "")
    v = re.escape(var)
    if re.fullmatch(rf"{v}\+\+|\+\+{v}", text):
        return 1
    if re.fullmatch(rf"{v}--|--{v}", text):
        return -1
    m = re.fullmatch(rf"{v}(?P<op>[+-])=(?P<n>\d+)|{v}={v}(?P<op2>[+-])(?P<n2>\d+)", text)
    if m:
        op = m.group("op") or m.group("op2")
        n = int(m.group("n") or m.group("n2"))
        if n == 0:
            return None
        return n if op == "+" else -n
    return None


def infer_bound(source_line: str) -> int | None:
    """Infer an unwind bound from a counted ``for`` loop header.

    Args:
        source_line: Source line containing the loop header

    Returns:
        Iteration count + 1 (enough to fully unroll the loop), or None when
        the bound is not syntactically evident
    """
    m = _FOR_HEADER.search(source_line)
    if not m or m.group("var") != m.group("lhs"):
        return None

    step = _step_of(m.group("var"), m.group("step"))
    if step is None:
        return None

    start = int(m.group("start"))
    limit = int(m.group("limit"))
    op = m.group("op")

    if step > 0:
        if op == "<":
            span = limit - start
        elif op == "<=":
            span = limit - start + 1
        elif op == "!=" and step == 1 and limit >= start:
            span = limit - start
        else:
            return None
    else:
        if op == ">":
            span = start - limit
        elif op == ">=":
            span = start - limit + 1
        elif op == "!=" and step == -1 and start >= limit:
            span = start - limit
        else:
            return None

    iterations = max(0, math.ceil(span / abs(step)))
    return iterations + 1


def detect_threading(source: str) -> bool:
    """Return True if the source uses a thread API (pthreads, C11 threads, std::thread)."""
    return _THREADING_PATTERNS.search(source) is not None


def _same_file(reported: str | None, artifact: Path) -> bool:
    return reported is None or Path(reported).name == artifact.name


class LoopProfilingStep:
    """Run loop discovery once and classify every loop's bound."""

    def __init__(self, checker: "CheckerBackend"):
        self.checker = checker

    async def execute(self, artifact_path: str) -> Result[LoopProfile, AuditError]:
        """Discover and classify the artifact's loops.

        Args:
            artifact_path: Source file to profile

        Returns:
            Ok(LoopProfile) on success
            Err(DiscoveryError | CheckerUnavailableError) otherwise
        """
        artifact = Path(artifact_path)
        try:
            source_lines = artifact.read_text(errors="replace").splitlines()
            digest = digest_artifact(artifact)
        except OSError as e:
            logger.error(f"Cannot read artifact {artifact_path}: {e}")
            return Err(DiscoveryError(f"Cannot read artifact: {e}", artifact_path=artifact_path))

        try:
            discovered = await self.checker.show_loops(artifact_path)
        except (DiscoveryError, CheckerUnavailableError) as e:
            logger.error(f"Loop discovery failed for {artifact_path}: {e}")
            return Err(e)

        loops = tuple(self._classify(loop, artifact, source_lines) for loop in discovered)
        known = sum(1 for loop in loops if loop.bound_known)
        logger.info(
            f"Profiled {artifact_path}: {len(loops)} loops, {known} bound-known, "
            f"{len(loops) - known} bound-unknown"
        )
        return Ok(LoopProfile(artifact_path=artifact_path, artifact_digest=digest, loops=loops))

    def _classify(
        self, loop: DiscoveredLoop, artifact: Path, source_lines: list[str]
    ) -> LoopDescriptor:
        hint = loop.bound_hint
        if (
            hint is None
            and loop.line is not None
            and _same_file(loop.file, artifact)
            and loop.line <= len(source_lines)
        ):
            hint = infer_bound(source_lines[loop.line - 1])

        return LoopDescriptor(
            id=loop.id,
            bound_known=hint is not None,
            bound_hint=hint,
            file=loop.file,
            line=loop.line,
            function=loop.function,
        )
