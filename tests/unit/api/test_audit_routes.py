"""Unit tests for audit API routes.

Tests cover:
- Request validation (AuditRunRequest)
- Successful audit response
- Fatal audit errors (422)
- Missing artifact (404)
- Unexpected errors (500)
- Health endpoint
"""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from bmc_audit.api.models import AuditRunRequest
from bmc_audit.domain.exceptions import CheckerUnavailableError, NoSolverAvailable
from bmc_audit.domain.models import (
    CheckKind,
    Incremental,
    NotApplicablePass,
    PassResult,
    RunMode,
    SolverChoice,
    Verdict,
    VerificationIntent,
)
from bmc_audit.domain.verification.result_aggregator import aggregate
from bmc_audit.shared.result import Err, Ok


class TestAuditRoutes:
    """Tests for audit API routes."""

    @pytest.fixture
    def artifact(self, tmp_path: Path) -> str:
        path = tmp_path / "main.c"
        path.write_text("int main(void) { return 0; }\n")
        return str(path)

    @pytest.fixture
    def mock_audit_service(self, artifact: str):
        """Create mock AuditService returning a clean report."""
        service = AsyncMock()
        report = aggregate(
            [
                PassResult(
                    pass_id="default",
                    category=CheckKind.DEFAULT,
                    verdict=Verdict.SUCCESSFUL,
                    duration_ms=10.0,
                    strategy="incremental",
                )
            ],
            artifact_path=artifact,
            solver=SolverChoice.Z3,
            strategy=Incremental(),
            not_applicable=[
                NotApplicablePass(category=CheckKind.CONCURRENCY, reason="no threads")
            ],
        )
        service.audit.return_value = Ok(report)
        return service

    @pytest.fixture
    def client_with_mock_service(self, mock_audit_service):
        """Create TestClient with mocked audit service."""
        # Import after fixtures to avoid circular imports
        from bmc_audit.api.dependencies import get_audit_service
        from bmc_audit.main import app

        app.dependency_overrides[get_audit_service] = lambda: mock_audit_service

        client = TestClient(app)
        yield client, mock_audit_service

        app.dependency_overrides.clear()

    def test_successful_audit(self, client_with_mock_service, artifact: str) -> None:
        client, service = client_with_mock_service

        response = client.post(
            "/audit/run", json={"artifact_path": artifact, "checks": ["memory", "overflow"]}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["report"]["status"] == "clean"
        assert data["report"]["evaluated_passes"] == 1
        assert data["report"]["applicable_concurrency_passes"] == 0
        assert data["report"]["not_applicable"][0]["category"] == "concurrency"
        assert data["report"]["strategy"] == {"kind": "incremental"}
        assert "CLEAN" in data["summary"]

        domain_request = service.audit.await_args.args[0]
        assert domain_request.checks.requested == {CheckKind.MEMORY, CheckKind.OVERFLOW}
        assert "cancel_event" in service.audit.await_args.kwargs

    def test_missing_artifact_is_404(self, client_with_mock_service, tmp_path: Path) -> None:
        client, service = client_with_mock_service

        response = client.post("/audit/run", json={"artifact_path": str(tmp_path / "nope.c")})

        assert response.status_code == 404
        assert "not found" in response.json()["detail"].lower()
        service.audit.assert_not_awaited()

    def test_no_solver_is_422(self, client_with_mock_service, artifact: str) -> None:
        client, service = client_with_mock_service
        service.audit.return_value = Err(NoSolverAvailable("No supported SMT solver available"))

        response = client.post("/audit/run", json={"artifact_path": artifact})

        assert response.status_code == 422
        assert "No supported SMT solver" in response.json()["detail"]

    def test_checker_unavailable_is_422(self, client_with_mock_service, artifact: str) -> None:
        client, service = client_with_mock_service
        service.audit.return_value = Err(
            CheckerUnavailableError("Cannot start checker 'esbmc'", checker_path="esbmc")
        )

        response = client.post("/audit/run", json={"artifact_path": artifact})

        assert response.status_code == 422

    def test_unexpected_error_is_500(self, client_with_mock_service, artifact: str) -> None:
        client, service = client_with_mock_service
        service.audit.side_effect = RuntimeError("boom")

        response = client.post("/audit/run", json={"artifact_path": artifact})

        assert response.status_code == 500
        assert response.json()["detail"] == "Internal server error during audit"

    def test_invalid_check_rejected(self, client_with_mock_service, artifact: str) -> None:
        client, _ = client_with_mock_service

        response = client.post(
            "/audit/run", json={"artifact_path": artifact, "checks": ["spelling"]}
        )

        assert response.status_code == 422

    def test_empty_artifact_path_rejected(self, client_with_mock_service) -> None:
        client, _ = client_with_mock_service

        response = client.post("/audit/run", json={"artifact_path": ""})

        assert response.status_code == 422

    def test_health(self, client_with_mock_service) -> None:
        client, _ = client_with_mock_service

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] in ("healthy", "degraded")
        assert data["service"] == "BMC Audit Service"
        assert data["active_processes"] == 0

    def test_root_redirects_to_docs(self, client_with_mock_service) -> None:
        client, _ = client_with_mock_service

        response = client.get("/", follow_redirects=False)

        assert response.status_code in (302, 307)
        assert response.headers["location"] == "/docs"


class TestAuditRunRequest:
    """Conversion of API requests to domain requests."""

    def test_all_checks(self) -> None:
        request = AuditRunRequest(artifact_path="main.c", checks="all")

        domain = request.to_domain(RunMode.CONCURRENT)

        assert domain.checks.requested == frozenset(CheckKind)

    def test_defaults_from_server(self) -> None:
        domain = AuditRunRequest(artifact_path="main.c").to_domain(RunMode.SEQUENTIAL)

        assert domain.mode is RunMode.SEQUENTIAL
        assert domain.intent is VerificationIntent.BUG_HUNTING
        assert domain.checks.enabled == {CheckKind.DEFAULT}
        assert domain.unwind_override is None

    def test_explicit_mode_and_disabled_defaults(self) -> None:
        request = AuditRunRequest.model_validate(
            {
                "artifact_path": "main.c",
                "mode": "concurrent",
                "disabled_defaults": ["div_by_zero"],
                "intent": "prove_correctness",
                "unwind_override": {"kind": "k_induction", "parallel": True},
            }
        )

        domain = request.to_domain(RunMode.SEQUENTIAL)

        assert domain.mode is RunMode.CONCURRENT
        assert {d.value for d in domain.checks.disabled_defaults} == {"div_by_zero"}
        assert domain.unwind_override.kind == "k_induction"
