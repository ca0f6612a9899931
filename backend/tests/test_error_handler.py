"""Tests for error sanitization and domain error mapping."""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from onboarding_api.exceptions import (
    AccountPendingApprovalError,
    DirectoryBindError,
    GraphError,
    HireNotFoundError,
    IntegrationNotEnabledError,
    InvalidCredentialsError,
    OnboardingAPIError,
    SettingsVersionConflictError,
    ValidationError,
    WhatsAppGatewayError,
)
from onboarding_api.middleware.error_handler import (
    domain_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    sanitize_error_detail,
    sanitize_error_for_audit,
    status_for_domain_error,
)


class TestStatusMapping:
    """Domain exceptions to HTTP status codes."""

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (HireNotFoundError("x"), 404),
            (SettingsVersionConflictError("whatsapp", 1, 2), 409),
            (ValidationError("bad"), 400),
            (IntegrationNotEnabledError("off"), 400),
            (DirectoryBindError("invalid_credentials", "Invalid username or password"), 400),
            (InvalidCredentialsError(), 401),
            (AccountPendingApprovalError(), 403),
            (GraphError("Forbidden", 403), 400),
            (GraphError("Throttled", 429), 502),
            (WhatsAppGatewayError("gateway down"), 502),
            (OnboardingAPIError("boom"), 500),
        ],
    )
    def test_mapping(self, error: OnboardingAPIError, expected: int) -> None:
        assert status_for_domain_error(error) == expected


class TestSanitization:
    def test_allowed_message_passes(self) -> None:
        assert sanitize_error_detail("Hire not found", 404) == "Hire not found"

    def test_internal_message_replaced(self) -> None:
        detail = 'relation "hires" does not exist at /srv/app/db.py'
        assert sanitize_error_detail(detail, 500) == "Internal server error"

    def test_validation_list_summarized(self) -> None:
        errors = [
            {"loc": ["body", "email"], "msg": "value is not a valid email address"},
            {"loc": ["body", "_internal"], "msg": "hidden"},
        ]
        assert sanitize_error_detail(errors, 422) == "email: value is not a valid email address"

    def test_audit_fields(self) -> None:
        assert sanitize_error_for_audit(WhatsAppGatewayError("gateway down")) == {
            "error_type": "WhatsAppGatewayError",
            "error": "gateway down",
        }
        assert sanitize_error_for_audit(RuntimeError("secret path /etc/x")) == {
            "error_type": "RuntimeError",
            "error_code": "UNEXPECTED_ERROR",
        }


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    app.add_exception_handler(OnboardingAPIError, domain_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get("/conflict")
    async def conflict() -> None:
        raise SettingsVersionConflictError("whatsapp", 1, 4)

    @app.get("/bind")
    async def bind() -> None:
        raise DirectoryBindError("account_restricted", "Account is disabled")

    @app.get("/http")
    async def http() -> None:
        raise HTTPException(status_code=400, detail="psycopg: syntax error near 'x'")

    @app.get("/crash")
    async def crash() -> None:
        raise RuntimeError("database password is hunter2")

    return TestClient(app, raise_server_exceptions=False)


class TestHandlers:
    """Response bodies produced by the handlers."""

    def test_conflict_carries_current_version(self, client: TestClient) -> None:
        response = client.get("/conflict")

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["current_version"] == 4
        assert body["message"] == "Settings were modified by another request"

    def test_bind_error_kind(self, client: TestClient) -> None:
        response = client.get("/bind")

        assert response.status_code == 400
        assert response.json()["error_kind"] == "account_restricted"

    def test_http_detail_sanitized(self, client: TestClient) -> None:
        response = client.get("/http")

        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid request"}

    def test_unexpected_error_hidden(self, client: TestClient) -> None:
        response = client.get("/crash")

        assert response.status_code == 500
        assert "hunter2" not in response.text
