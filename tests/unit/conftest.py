"""Test configuration and fixtures.

Provides:
- Python path setup for imports
- Common fixtures for mocked dependencies
- Sample checker output and C sources
"""

import sys
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from bmc_audit.domain.models import (  # noqa: E402
    CheckerRun,
    CheckKind,
    CheckSet,
    Incremental,
    PassSpec,
    SolverChoice,
    UnwindStrategy,
    Verdict,
)
from bmc_audit.shared.config import Settings  # noqa: E402

# ============================================================================
# Mock Providers
# ============================================================================


@pytest.fixture
def mock_checker() -> AsyncMock:
    """Create mock checker backend.

    Defaults: z3 and boolector available, no loops, every pass successful.
    """
    mock = AsyncMock()
    mock.list_solvers = AsyncMock(return_value=frozenset({SolverChoice.Z3, SolverChoice.BOOLECTOR}))
    mock.show_loops = AsyncMock(return_value=[])
    mock.verify = AsyncMock(
        return_value=CheckerRun(
            verdict=Verdict.SUCCESSFUL,
            raw_output="VERIFICATION SUCCESSFUL",
            exit_code=0,
            duration_ms=12.0,
        )
    )
    return mock


@pytest.fixture
def settings() -> Settings:
    """Settings with deterministic parallelism and short timeouts."""
    return Settings(cpu_count=2, default_timeout_seconds=30.0, timeout_grace_seconds=1.0)


# ============================================================================
# Sample Data Generators
# ============================================================================


@pytest.fixture
def make_spec() -> Callable[..., PassSpec]:
    """Factory for pass specs with sensible defaults."""

    def _make(
        id: str = "default",
        category: CheckKind = CheckKind.DEFAULT,
        unwind: UnwindStrategy | None = None,
        timeout_seconds: float = 30.0,
        extra_flags: tuple[str, ...] = (),
    ) -> PassSpec:
        return PassSpec(
            id=id,
            category=category,
            solver=SolverChoice.BOOLECTOR,
            unwind=unwind or Incremental(),
            checks=CheckSet.of(category),
            timeout_seconds=timeout_seconds,
            extra_flags=extra_flags,
        )

    return _make


@pytest.fixture
def write_source(tmp_path: Path) -> Callable[[str, str], str]:
    """Factory that writes a C source file and returns its path."""

    def _write(text: str, name: str = "main.c") -> str:
        path = tmp_path / name
        path.write_text(text)
        return str(path)

    return _write


@pytest.fixture
def sample_loop_source() -> str:
    """C source with one counted loop (line 5) and one data-dependent loop (line 9)."""
    return """#include <stdlib.h>

int main(void) {
    int a[10];
    for (int i = 0; i < 10; i++)
        a[i] = i;

    int n = rand();
    while (n > 0)
        n--;
    return a[0];
}
"""


@pytest.fixture
def sample_threaded_source() -> str:
    """C source that creates a thread."""
    return """#include <pthread.h>

int shared;

void *worker(void *arg) {
    shared++;
    return 0;
}

int main(void) {
    pthread_t t;
    pthread_create(&t, 0, worker, 0);
    shared++;
    pthread_join(t, 0);
    return 0;
}
"""


@pytest.fixture
def sample_success_output() -> str:
    return """ESBMC version 7.6.1 64-bit x86_64 linux
Target: 64-bit little-endian x86_64-unknown-linux with esbmclibc
Parsing main.c
Converting
Generating GOTO Program
GOTO program creation time: 0.112s
Starting Bounded Model Checking
Symex completed in: 0.003s (12 assignments)
Solving with solver Boolector 3.2.2
Runtime decision procedure: 0.001s
BMC program time: 0.004s

VERIFICATION SUCCESSFUL
"""


@pytest.fixture
def sample_failure_output() -> str:
    return """ESBMC version 7.6.1 64-bit x86_64 linux
Parsing main.c
Converting
Generating GOTO Program
Starting Bounded Model Checking
Solving with solver Boolector 3.2.2
Building error trace

[Counterexample]


State 1 file main.c line 5 column 5 function main thread 0
----------------------------------------------------
  i = 10 (00000000 00000000 00000000 00001010)

State 2 file main.c line 6 column 9 function main thread 0
----------------------------------------------------
Violated property:
  file main.c line 6 column 9 function main
  array bounds violated: array `a' upper bound
  i < 10


VERIFICATION FAILED
"""


@pytest.fixture
def sample_loops_output() -> str:
    return """ESBMC version 7.6.1 64-bit x86_64 linux
Parsing main.c
Converting
Generating GOTO Program
goto-loop Loop 1:
  file main.c line 5 column 5 function main

goto-loop Loop 2:
  file main.c line 9 column 5 function main
"""
