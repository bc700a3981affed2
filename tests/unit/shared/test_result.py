"""Unit tests for Result type."""

import pytest

from bmc_audit.domain.exceptions import DiscoveryError, NoSolverAvailable
from bmc_audit.domain.models import SolverChoice
from bmc_audit.shared.result import Err, Ok


class TestOk:
    """Tests for Ok result type."""

    def test_ok_is_ok(self) -> None:
        result = Ok(SolverChoice.Z3)
        assert result.is_ok() is True
        assert result.is_err() is False

    def test_ok_unwrap(self) -> None:
        assert Ok(42).unwrap() == 42

    def test_ok_unwrap_or_ignores_default(self) -> None:
        assert Ok(42).unwrap_or(100) == 42

    def test_ok_map(self) -> None:
        mapped = Ok(5).map(lambda x: x * 2)
        assert mapped.is_ok()
        assert mapped.unwrap() == 10

    def test_ok_repr(self) -> None:
        assert repr(Ok(42)) == "Ok(42)"

    def test_ok_frozen(self) -> None:
        result = Ok(42)
        with pytest.raises((AttributeError, TypeError)):  # FrozenInstanceError
            result.value = 100  # type: ignore


class TestErr:
    """Tests for Err result type."""

    def test_err_is_err(self) -> None:
        result = Err(NoSolverAvailable("none"))
        assert result.is_err() is True
        assert result.is_ok() is False

    def test_err_unwrap_raises_contained_error(self) -> None:
        result = Err(DiscoveryError("cannot parse", artifact_path="main.c"))
        with pytest.raises(DiscoveryError, match="cannot parse"):
            result.unwrap()

    def test_err_unwrap_or(self) -> None:
        assert Err(ValueError("test")).unwrap_or(42) == 42

    def test_err_carries_error(self) -> None:
        error = NoSolverAvailable("none", available=["cvc5"])
        assert Err(error).error is error

    def test_err_map_short_circuits(self) -> None:
        error = ValueError("stop")
        mapped = Err(error).map(lambda x: x * 2)  # type: ignore
        assert mapped.is_err()
        assert mapped.error is error

    def test_err_repr(self) -> None:
        text = repr(Err(ValueError("test")))
        assert "Err" in text
        assert "ValueError" in text

    def test_err_frozen(self) -> None:
        result = Err(ValueError("test"))
        with pytest.raises((AttributeError, TypeError)):  # FrozenInstanceError
            result.error = RuntimeError("new")  # type: ignore


class TestResultPatternMatching:
    """Tests for pattern matching with Result types."""

    def test_match_ok(self) -> None:
        match Ok(SolverChoice.BOOLECTOR):
            case Ok(solver):
                assert solver is SolverChoice.BOOLECTOR
            case Err():
                pytest.fail("expected Ok")

    def test_match_err(self) -> None:
        match Err(NoSolverAvailable("none")):
            case Ok():
                pytest.fail("expected Err")
            case Err(error):
                assert isinstance(error, NoSolverAvailable)
