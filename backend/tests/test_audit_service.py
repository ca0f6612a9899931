"""Tests for the administrative audit trail service."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from onboarding_api.services.audit_service import (
    REDACTED,
    AuditAction,
    AuditService,
    ResourceType,
    redact,
    request_origin,
)


@pytest.fixture
def service() -> AuditService:
    svc = AuditService(AsyncMock())
    svc.audit_repo = MagicMock()
    svc.audit_repo.append = AsyncMock()
    svc.audit_repo.page = AsyncMock(return_value=([], 0))
    return svc


class TestRedact:
    def test_nested_secrets(self) -> None:
        details = {
            "graph": {"tenant_id": "t", "client_secret": "s3cr3t"},
            "Password": "hunter2",
            "users": [{"token": "abc", "name": "x"}],
        }

        assert redact(details) == {
            "graph": {"tenant_id": "t", "client_secret": REDACTED},
            "Password": REDACTED,
            "users": [{"token": REDACTED, "name": "x"}],
        }

    def test_none_and_scalars_pass_through(self) -> None:
        assert redact(None) is None
        assert redact("password") == "password"

    def test_does_not_mutate_input(self) -> None:
        details = {"secret": "x"}
        redact(details)
        assert details == {"secret": "x"}


class TestRequestOrigin:
    def test_no_request(self) -> None:
        assert request_origin(None) == (None, None)

    def test_uses_middleware_state(self) -> None:
        request = SimpleNamespace(
            state=SimpleNamespace(client_ip="10.1.2.3", user_agent="pytest"),
            headers={},
        )
        assert request_origin(request) == ("10.1.2.3", "pytest")


class TestLog:
    @pytest.mark.asyncio
    async def test_writes_redacted_entry(self, service: AuditService) -> None:
        user = SimpleNamespace(id=uuid4(), username="admin")
        hire_id = uuid4()

        await service.log(
            AuditAction.SETTING_UPDATE,
            ResourceType.SETTING,
            resource_id=hire_id,
            user=user,
            details={"client_secret": "value"},
        )

        service.audit_repo.append.assert_awaited_once_with(
            AuditAction.SETTING_UPDATE,
            ResourceType.SETTING,
            resource_id=str(hire_id),
            user_id=user.id,
            changes={"client_secret": REDACTED},
            ip_address=None,
            user_agent=None,
        )

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, service: AuditService) -> None:
        service.audit_repo.append.side_effect = RuntimeError("db down")

        await service.log(AuditAction.EXPORT, ResourceType.REPORT)

    @pytest.mark.asyncio
    async def test_failed_login(self, service: AuditService) -> None:
        request = SimpleNamespace(
            state=SimpleNamespace(client_ip="10.0.0.9", user_agent="ua"),
            headers={},
        )

        await service.log_login(False, request, "mallory", failure_reason="invalid_credentials")

        args, kwargs = service.audit_repo.append.await_args
        assert args == (AuditAction.LOGIN_FAILED, ResourceType.SESSION)
        assert kwargs["user_id"] is None
        assert kwargs["changes"] == {"username": "mallory", "reason": "invalid_credentials"}
        assert kwargs["ip_address"] == "10.0.0.9"


class TestListLogs:
    @pytest.mark.asyncio
    async def test_page_offset(self, service: AuditService) -> None:
        result = await service.list_logs(page=3, page_size=20, action="login")

        service.audit_repo.page.assert_awaited_once_with(
            offset=40, limit=20, action="login", resource_type=None, user_id=None
        )
        assert result.total == 0
        assert result.page == 3
        assert result.items == []
