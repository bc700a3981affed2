"""Domain models for the BMC audit pipeline.

All models use Pydantic for validation, serialization, and type safety.
Value objects are frozen: a plan or result is never mutated once built.
"""

import hashlib
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ============================================================================
# Solver Selection
# ============================================================================


class SolverChoice(str, Enum):
    """SMT back-ends the checker can be driven with, plus the terminal NONE."""

    BOOLECTOR = "boolector"
    BITWUZLA = "bitwuzla"
    Z3 = "z3"
    NONE = "none"

    @property
    def flag(self) -> str:
        """Command-line flag that selects this solver."""
        if self is SolverChoice.NONE:
            raise ValueError("SolverChoice.NONE has no command-line flag")
        return f"--{self.value}"


# Strict priority order used by the solver selector
SOLVER_PRIORITY: tuple[SolverChoice, ...] = (
    SolverChoice.BOOLECTOR,
    SolverChoice.BITWUZLA,
    SolverChoice.Z3,
)


# ============================================================================
# Loop Discovery
# ============================================================================


class DiscoveredLoop(BaseModel):
    """A loop as reported by the checker's loop discovery, before classification."""

    id: str = Field(description="Loop identifier usable in an unwind set")
    file: str | None = Field(default=None, description="Source file containing the loop")
    line: int | None = Field(default=None, ge=1, description="Line of the loop header")
    function: str | None = Field(default=None, description="Enclosing function")
    bound_hint: int | None = Field(
        default=None, ge=1, description="Bound printed by the checker, if any"
    )

    model_config = ConfigDict(frozen=True)


class LoopDescriptor(BaseModel):
    """A classified loop: either its unwind bound is known or it is not."""

    id: str = Field(description="Loop identifier usable in an unwind set")
    bound_known: bool = Field(description="Whether a sufficient unwind bound is known")
    bound_hint: int | None = Field(
        default=None,
        ge=1,
        description="Unwind bound that fully unrolls the loop (iterations + 1)",
    )
    file: str | None = Field(default=None, description="Source file containing the loop")
    line: int | None = Field(default=None, ge=1, description="Line of the loop header")
    function: str | None = Field(default=None, description="Enclosing function")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _bound_known_requires_hint(self) -> "LoopDescriptor":
        if self.bound_known and self.bound_hint is None:
            raise ValueError(f"loop {self.id}: bound_known requires a bound_hint")
        return self


def digest_artifact(path: str | Path) -> str:
    """SHA-256 of the artifact contents, used to detect stale loop profiles."""
    return hashlib.sha256(Path(path).read_bytes()).hexdigest()


class LoopProfile(BaseModel):
    """Result of loop discovery for one version of one artifact."""

    artifact_path: str = Field(description="Path of the profiled artifact")
    artifact_digest: str = Field(description="SHA-256 of the artifact when profiled")
    loops: tuple[LoopDescriptor, ...] = Field(
        default=(), description="Discovered loops in checker order"
    )

    model_config = ConfigDict(frozen=True)

    @property
    def is_empty(self) -> bool:
        return not self.loops

    @property
    def all_bounds_known(self) -> bool:
        return all(loop.bound_known for loop in self.loops)

    def is_stale(self, path: str | Path | None = None) -> bool:
        """Return True if the artifact changed (or vanished) since profiling."""
        target = Path(path or self.artifact_path)
        try:
            return digest_artifact(target) != self.artifact_digest
        except OSError:
            return True


# ============================================================================
# Unwind Strategies
# ============================================================================


class NoUnwind(BaseModel):
    """Loop-free artifact: no unwinding flags at all."""

    kind: Literal["no_unwind"] = "no_unwind"

    model_config = ConfigDict(frozen=True)


class UnwindSet(BaseModel):
    """Per-loop unwind bounds; only built when every loop bound is known."""

    kind: Literal["unwind_set"] = "unwind_set"
    bounds: dict[str, int] = Field(description="Loop id -> unwind bound")

    model_config = ConfigDict(frozen=True)


class Incremental(BaseModel):
    """Incremental BMC: unwind deeper until a verdict is reached."""

    kind: Literal["incremental"] = "incremental"

    model_config = ConfigDict(frozen=True)


class KInduction(BaseModel):
    """k-induction proof, optionally with the parallel base/step/forward cases."""

    kind: Literal["k_induction"] = "k_induction"
    parallel: bool = Field(default=False, description="Run k-induction steps in parallel")

    model_config = ConfigDict(frozen=True)


class EnforceContract(BaseModel):
    """Check the listed functions against their contracts."""

    kind: Literal["enforce_contract"] = "enforce_contract"
    functions: tuple[str, ...] = Field(min_length=1)

    model_config = ConfigDict(frozen=True)


class ReplaceCallWithContract(BaseModel):
    """Abstract calls to the listed functions by their contracts."""

    kind: Literal["replace_call_with_contract"] = "replace_call_with_contract"
    functions: tuple[str, ...] = Field(min_length=1)

    model_config = ConfigDict(frozen=True)


class LoopInvariant(BaseModel):
    """Use annotated loop invariants instead of unwinding."""

    kind: Literal["loop_invariant"] = "loop_invariant"

    model_config = ConfigDict(frozen=True)


UnwindStrategy = Annotated[
    Union[
        NoUnwind,
        UnwindSet,
        Incremental,
        KInduction,
        EnforceContract,
        ReplaceCallWithContract,
        LoopInvariant,
    ],
    Field(discriminator="kind"),
]


class VerificationIntent(str, Enum):
    """What the user wants out of the run."""

    BUG_HUNTING = "bug_hunting"
    PROVE_CORRECTNESS = "prove_correctness"


class StrategyPlan(BaseModel):
    """Primary strategy plus the optional fallback used after an inconclusive primary."""

    primary: UnwindStrategy
    fallback: UnwindStrategy | None = None

    model_config = ConfigDict(frozen=True)


# ============================================================================
# Checks and Passes
# ============================================================================


class CheckKind(str, Enum):
    """Check categories; each maps to one verification pass."""

    DEFAULT = "default"
    MEMORY = "memory"
    OVERFLOW = "overflow"
    CONCURRENCY = "concurrency"
    UB_SHIFT = "ub_shift"


class DefaultCheck(str, Enum):
    """Properties the checker verifies unless explicitly switched off."""

    BOUNDS = "bounds"
    POINTER = "pointer"
    DIV_BY_ZERO = "div_by_zero"
    ASSERTIONS = "assertions"


class CheckSet(BaseModel):
    """Requested checks; the default properties are always part of the set.

    Leaving DEFAULT out of ``requested`` does not remove it. The only way to
    turn a default property off is ``disabled_defaults``.
    """

    requested: frozenset[CheckKind] = Field(default_factory=frozenset)
    disabled_defaults: frozenset[DefaultCheck] = Field(default_factory=frozenset)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def of(
        cls, *kinds: CheckKind, disabled_defaults: frozenset[DefaultCheck] = frozenset()
    ) -> "CheckSet":
        return cls(requested=frozenset(kinds), disabled_defaults=disabled_defaults)

    @classmethod
    def all(cls) -> "CheckSet":
        return cls(requested=frozenset(CheckKind))

    @property
    def enabled(self) -> frozenset[CheckKind]:
        return self.requested | {CheckKind.DEFAULT}

    def __contains__(self, kind: object) -> bool:
        return kind in self.enabled


class PassSpec(BaseModel):
    """Self-contained description of one checker invocation."""

    id: str = Field(description="Unique pass identifier within an audit")
    category: CheckKind = Field(description="Check category this pass covers")
    solver: SolverChoice
    unwind: UnwindStrategy
    checks: CheckSet
    timeout_seconds: float = Field(gt=0.0, description="Per-pass time limit")
    extra_flags: tuple[str, ...] = Field(default=(), description="Check-specific flags")

    model_config = ConfigDict(frozen=True)

    def with_unwind(self, unwind: "UnwindStrategy", suffix: str = "fallback") -> "PassSpec":
        """Build a new spec for re-planning; the original is left untouched."""
        return self.model_copy(update={"id": f"{self.id}#{suffix}", "unwind": unwind})


class NotApplicablePass(BaseModel):
    """A requested pass that was skipped because it cannot apply to the artifact."""

    category: CheckKind
    reason: str

    model_config = ConfigDict(frozen=True)


class PassPlan(BaseModel):
    """PassBuilder output: specs to run and passes skipped as not applicable."""

    specs: tuple[PassSpec, ...]
    not_applicable: tuple[NotApplicablePass, ...] = ()

    model_config = ConfigDict(frozen=True)


class RunMode(str, Enum):
    """How a batch of passes is executed."""

    SEQUENTIAL = "sequential"
    CONCURRENT = "concurrent"


# ============================================================================
# Results
# ============================================================================


class Verdict(str, Enum):
    """Outcome of a single checker invocation."""

    SUCCESSFUL = "successful"
    VIOLATION_FOUND = "violation_found"
    UNKNOWN = "unknown"
    TIMED_OUT = "timed_out"
    PROCESS_ERROR = "process_error"

    @property
    def is_inconclusive(self) -> bool:
        return self in (Verdict.UNKNOWN, Verdict.TIMED_OUT, Verdict.PROCESS_ERROR)


class CounterexampleState(BaseModel):
    """One state of a counterexample trace."""

    index: int = Field(ge=0)
    file: str | None = None
    line: int | None = None
    function: str | None = None
    thread: int | None = None
    assignments: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)


class ViolatedProperty(BaseModel):
    """The property a counterexample falsifies."""

    description: str
    file: str | None = None
    line: int | None = None
    function: str | None = None

    model_config = ConfigDict(frozen=True)


class Counterexample(BaseModel):
    """Structured trace demonstrating a property violation."""

    states: tuple[CounterexampleState, ...] = ()
    violated_property: ViolatedProperty | None = None

    model_config = ConfigDict(frozen=True)

    def format_trace(self) -> str:
        lines: list[str] = [f"Counterexample trace ({len(self.states)} states):"]
        for state in self.states:
            location = f"{state.file}:{state.line}" if state.file else "<unknown>"
            lines.append(f"  State {state.index} at {location} in {state.function}")
            for assignment in state.assignments:
                lines.append(f"    {assignment}")
        if self.violated_property:
            prop = self.violated_property
            lines.append(f"Violated property at {prop.file}:{prop.line}: {prop.description}")
        return "\n".join(lines)


class CheckerRun(BaseModel):
    """Classified outcome of one checker process, as returned by the backend."""

    verdict: Verdict
    raw_output: str = Field(description="Combined stdout and stderr, verbatim")
    counterexample: Counterexample | None = None
    exit_code: int | None = None
    duration_ms: float = Field(ge=0.0)

    model_config = ConfigDict(frozen=True)


class PassResult(BaseModel):
    """Outcome of running one PassSpec."""

    pass_id: str
    category: CheckKind
    verdict: Verdict
    raw_output: str = ""
    counterexample: Counterexample | None = None
    duration_ms: float = Field(ge=0.0)
    exit_code: int | None = None
    strategy: str = Field(description="Unwind strategy kind the pass ran with")

    model_config = ConfigDict(frozen=True)


class Finding(BaseModel):
    """A deduplicated property violation, possibly reported by several passes."""

    category: CheckKind
    property: str
    file: str | None = None
    line: int | None = None
    function: str | None = None
    pass_ids: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)


class OverallStatus(str, Enum):
    """Aggregate status of an audit."""

    CLEAN = "clean"
    VIOLATIONS_PRESENT = "violations_present"
    INCONCLUSIVE = "inconclusive"


class Report(BaseModel):
    """Aggregate of all pass results for one artifact and one invocation."""

    artifact_path: str
    solver: SolverChoice
    strategy: UnwindStrategy
    fallback_used: bool = False
    status: OverallStatus
    results: tuple[PassResult, ...] = Field(description="Final result per pass, in plan order")
    superseded: tuple[PassResult, ...] = Field(
        default=(), description="Primary results replaced by a fallback run"
    )
    not_applicable: tuple[NotApplicablePass, ...] = ()
    evaluated_passes: int = Field(ge=0)
    applicable_concurrency_passes: int = Field(ge=0)
    violation_counts: dict[CheckKind, int] = Field(default_factory=dict)
    inconclusive_counts: dict[CheckKind, int] = Field(default_factory=dict)
    findings: tuple[Finding, ...] = ()
    cancelled: bool = False

    model_config = ConfigDict(frozen=True)


# ============================================================================
# Audit Request
# ============================================================================


class AuditRequest(BaseModel):
    """Everything one audit invocation needs."""

    artifact_path: str = Field(min_length=1, description="Source file to verify")
    checks: CheckSet = Field(default_factory=CheckSet)
    intent: VerificationIntent = VerificationIntent.BUG_HUNTING
    mode: RunMode = RunMode.CONCURRENT
    timeout_seconds: float | None = Field(
        default=None, gt=0.0, description="Per-pass timeout (defaults from settings)"
    )
    cpu_count: int | None = Field(
        default=None, ge=1, description="Available parallelism (defaults from settings)"
    )
    unwind_override: UnwindStrategy | None = Field(
        default=None, description="Skip planning and use this strategy (no fallback)"
    )

    model_config = ConfigDict(frozen=True)
