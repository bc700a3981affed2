"""Parsers for the checker's free-form text output.

Every mapping from checker text to a domain value lives here: verdict
classification, counterexample traces, loop listings, solver listings and
front-end errors.
"""

import re

from bmc_audit.domain.models import (
    Counterexample,
    CounterexampleState,
    DiscoveredLoop,
    SolverChoice,
    Verdict,
    ViolatedProperty,
)

SUCCESS_MARKER = "VERIFICATION SUCCESSFUL"
FAILURE_MARKER = "VERIFICATION FAILED"
UNKNOWN_MARKER = "VERIFICATION UNKNOWN"

# Exit statuses the checker uses for a completed verification
RECOGNIZED_EXIT_CODES = frozenset({0, 1})

_TIMEOUT_RE = re.compile(r"^\s*(?:ERROR:\s*)?Timed out", re.MULTILINE | re.IGNORECASE)
_INCONCLUSIVE_RE = re.compile(r"Unable to prove or falsify", re.IGNORECASE)
_FRONTEND_ERROR_RE = re.compile(
    r"PARSING ERROR|CONVERSION ERROR|^\s*ERROR:|\berror:", re.MULTILINE
)

_LOCATION_RE = re.compile(
    r"file (?P<file>\S+) line (?P<line>\d+)(?: column \d+)?(?: function (?P<function>\S+))?"
)
_STATE_RE = re.compile(
    r"^State (?P<index>\d+)(?: (?P<location>file .*?))?(?: thread (?P<thread>\d+))?\s*$"
)
_LOOP_RE = re.compile(r"^\s*(?:goto-loop\s+)?Loop (?P<id>[\w.]+):\s*$")
_BOUND_RE = re.compile(r"\bbound[:=]?\s*(?P<bound>\d+)", re.IGNORECASE)

_SOLVER_NAMES = {s.value: s for s in SolverChoice if s is not SolverChoice.NONE}


def classify_verdict(returncode: int | None, output: str, timed_out: bool = False) -> Verdict:
    """Map one checker run onto exactly one verdict.

    Args:
        returncode: Process exit status (None if it never exited on its own)
        output: Combined stdout and stderr
        timed_out: Whether the runner killed the process at its deadline

    Returns:
        The verdict; anything unrecognized is PROCESS_ERROR
    """
    if timed_out or _TIMEOUT_RE.search(output):
        return Verdict.TIMED_OUT

    if returncode not in RECOGNIZED_EXIT_CODES:
        return Verdict.PROCESS_ERROR

    if FAILURE_MARKER in output:
        return Verdict.VIOLATION_FOUND
    if UNKNOWN_MARKER in output or _INCONCLUSIVE_RE.search(output):
        return Verdict.UNKNOWN
    if SUCCESS_MARKER in output:
        return Verdict.SUCCESSFUL

    return Verdict.PROCESS_ERROR


def _location(text: str) -> dict:
    m = _LOCATION_RE.search(text)
    if not m:
        return {"file": None, "line": None, "function": None}
    return {
        "file": m.group("file"),
        "line": int(m.group("line")),
        "function": m.group("function"),
    }


def parse_counterexample(output: str) -> Counterexample | None:
    """Best-effort parse of a counterexample trace.

    Understands the usual layout::

        State 1 file main.c line 5 column 3 function main thread 0
        ----------------------------------------------------
          x = 10 (00000000 00000000 00000000 00001010)

        Violated property:
          file main.c line 6 column 5 function main
          array bounds violated: array `a' upper bound
          i < 10

    Returns:
        Counterexample, or None if the output contains no trace
    """
    lines = output.splitlines()
    states: list[CounterexampleState] = []
    violated: ViolatedProperty | None = None

    i = 0
    while i < len(lines):
        stripped = lines[i].strip()

        state_match = _STATE_RE.match(stripped)
        if state_match:
            assignments: list[str] = []
            i += 1
            while i < len(lines):
                body = lines[i].strip()
                if _STATE_RE.match(body) or body.startswith(("Violated property", "VERIFICATION")):
                    break
                if body and not set(body) <= {"-"}:
                    assignments.append(body)
                i += 1

            location = _location(state_match.group("location") or "")
            thread = state_match.group("thread")
            states.append(
                CounterexampleState(
                    index=int(state_match.group("index")),
                    thread=int(thread) if thread is not None else None,
                    assignments=tuple(assignments),
                    **location,
                )
            )
            continue

        if stripped.startswith("Violated property"):
            i += 1
            prop_location = _location("")
            if i < len(lines) and _LOCATION_RE.search(lines[i]):
                prop_location = _location(lines[i])
                i += 1
            description: list[str] = []
            while i < len(lines):
                body = lines[i].strip()
                if not body or body.startswith("VERIFICATION"):
                    break
                description.append(body)
                i += 1
            violated = ViolatedProperty(
                description=" | ".join(description) or "unspecified property", **prop_location
            )
            continue

        i += 1

    if not states and violated is None:
        return None
    return Counterexample(states=tuple(states), violated_property=violated)


def parse_loops(output: str) -> list[DiscoveredLoop]:
    """Parse a loop listing.

    Each loop is a ``Loop <id>:`` header (optionally prefixed with
    ``goto-loop``) followed by its location line. A bound is taken from the
    location line when the checker prints one.
    """
    loops: list[DiscoveredLoop] = []
    lines = output.splitlines()

    for i, line in enumerate(lines):
        m = _LOOP_RE.match(line)
        if not m:
            continue

        detail = ""
        for follow in lines[i + 1 :]:
            if follow.strip():
                detail = follow if not _LOOP_RE.match(follow) else ""
                break

        bound = _BOUND_RE.search(detail)
        loops.append(
            DiscoveredLoop(
                id=m.group("id"),
                bound_hint=int(bound.group("bound")) if bound else None,
                **_location(detail),
            )
        )

    return loops


def parse_solvers(output: str) -> frozenset[SolverChoice]:
    """Recognize supported solver names in a solver listing."""
    tokens = re.findall(r"[a-z0-9_]+", output.lower())
    return frozenset(_SOLVER_NAMES[t] for t in tokens if t in _SOLVER_NAMES)


def detect_frontend_error(returncode: int | None, output: str) -> str | None:
    """Return the first front-end error line, or None if the artifact parsed.

    A non-zero exit without a recognizable message still counts as an error.
    """
    m = _FRONTEND_ERROR_RE.search(output)
    if m:
        line_start = output.rfind("\n", 0, m.start()) + 1
        line_end = output.find("\n", m.end())
        return output[line_start : line_end if line_end != -1 else None].strip()
    if returncode != 0:
        return f"checker exited with status {returncode}"
    return None
