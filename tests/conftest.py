"""Test configuration and fixtures.

Provides:
- Python path setup for imports
- A factory for stand-in checker executables (shell scripts)
"""

import stat
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


@pytest.fixture
def write_fake_checker(tmp_path: Path) -> Callable[[str], str]:
    """Return a factory that writes an executable /bin/sh checker stand-in.

    The script body receives the checker arguments as ``$@``.
    """

    def _write(body: str, name: str = "fake-esbmc") -> str:
        script = tmp_path / name
        script.write_text("#!/bin/sh\n" + body)
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return _write
