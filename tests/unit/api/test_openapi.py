"""Unit tests for the generated OpenAPI documentation."""

from bmc_audit.main import app


class TestOpenApiSchema:
    """The schema builds and documents every public endpoint."""

    def test_schema_generates(self) -> None:
        schema = app.openapi()

        assert schema["info"]["title"] == "BMC Audit Service"
        assert "/audit/run" in schema["paths"]
        assert "/health" in schema["paths"]

    def test_audit_endpoint_documents_error_responses(self) -> None:
        responses = app.openapi()["paths"]["/audit/run"]["post"]["responses"]

        assert {"200", "404", "422", "500"} <= set(responses)

    def test_request_fields_have_descriptions(self) -> None:
        schema = app.openapi()["components"]["schemas"]["AuditRunRequest"]

        for name, prop in schema["properties"].items():
            assert "description" in prop, name
