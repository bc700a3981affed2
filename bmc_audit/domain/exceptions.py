"""Domain-level exceptions for the audit pipeline.

These represent conditions that halt planning before any verification pass
runs. Per-pass failures (timeouts, crashes) are verdicts, not exceptions.
"""


class AuditError(Exception):
    """Base exception for all audit errors."""

    pass


class NoSolverAvailable(AuditError):
    """Raised when none of the supported SMT solvers is available."""

    def __init__(self, message: str, available: list[str] | None = None):
        super().__init__(message)
        self.available = available or []

    def __str__(self) -> str:
        return f"{super().__str__()} (reported solvers={self.available})"


class DiscoveryError(AuditError):
    """Raised when loop discovery cannot establish the artifact's loop structure."""

    def __init__(self, message: str, artifact_path: str, checker_output: str = ""):
        super().__init__(message)
        self.artifact_path = artifact_path
        self.checker_output = checker_output


class CheckerUnavailableError(AuditError):
    """Raised when the checker executable cannot be started."""

    def __init__(self, message: str, checker_path: str):
        super().__init__(message)
        self.checker_path = checker_path
