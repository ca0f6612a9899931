"""Tests for hire validation and bulk operations."""

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from pydantic import ValidationError as PydanticValidationError

from onboarding_api.exceptions import InvalidLicenseTypeError, ValidationError
from onboarding_api.models.domain.hire import AuditStatus
from onboarding_api.models.dto.hire import BulkDeleteRequest, BulkHireUpdate, HireCreate, HireUpdate
from onboarding_api.services.hire_audit_service import HireAction, HireAuditService
from onboarding_api.services.hire_service import (
    ITEM_ERROR,
    ITEM_NOT_FOUND,
    ITEM_OK,
    HireService,
    bulk_response,
)
from onboarding_api.utils.bulk import ItemOutcome


@pytest.fixture
def audit_repo():
    repo = MagicMock()

    async def append(**fields):
        return SimpleNamespace(id=uuid4(), timestamp=datetime.now(timezone.utc), **fields)

    repo.append = AsyncMock(side_effect=append)
    with patch("onboarding_api.services.hire_audit_service.HireAuditRepository", return_value=repo):
        yield repo


@pytest.fixture
def service(audit_repo: MagicMock) -> HireService:
    @asynccontextmanager
    async def session_factory():
        yield AsyncMock()

    svc = HireService(AsyncMock(), session_factory=session_factory)
    svc.license_type_repo = MagicMock()
    svc.license_type_repo.get_names = AsyncMock(return_value={"E3", "E5"})
    svc.department_repo = MagicMock()
    svc.department_repo.get_by_name = AsyncMock(return_value=None)
    svc.settings_service = MagicMock()
    svc.settings_service.get_account_statuses = AsyncMock(return_value=["Pending", "Active"])
    svc.audit_service = MagicMock()
    svc.audit_service.log = AsyncMock()
    return svc


@pytest.fixture(autouse=True)
def no_cache():
    cache = MagicMock()
    cache.invalidate_hires = AsyncMock(return_value=0)
    with patch("onboarding_api.services.hire_service.get_cache_service", AsyncMock(return_value=cache)):
        yield cache


class TestFieldValidation:
    """License and status values are checked against the catalogs."""

    @pytest.mark.asyncio
    async def test_known_values_accepted(self, service: HireService) -> None:
        await service._validate_fields({"microsoft_365_license": "E3", "account_creation_status": "Active"})

    @pytest.mark.asyncio
    async def test_none_license_always_allowed(self, service: HireService) -> None:
        await service._validate_fields({"microsoft_365_license": "None"})
        service.license_type_repo.get_names.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_license_rejected(self, service: HireService) -> None:
        with pytest.raises(InvalidLicenseTypeError):
            await service._validate_fields({"microsoft_365_license": "E7"})

    @pytest.mark.asyncio
    async def test_unknown_status_rejected(self, service: HireService) -> None:
        with pytest.raises(ValidationError):
            await service._validate_fields({"account_creation_status": "Archived"})

    @pytest.mark.asyncio
    async def test_unknown_department_only_warns(self, service: HireService) -> None:
        await service._validate_fields({"department": "Skunkworks"})


class TestBulkResponse:
    def test_counts(self) -> None:
        ok_id, missing_id, error_id = uuid4(), uuid4(), uuid4()
        response = bulk_response(
            [
                ItemOutcome(item=ok_id, value=ITEM_OK),
                ItemOutcome(item=missing_id, value=ITEM_NOT_FOUND),
                ItemOutcome(item=error_id, error=RuntimeError("boom")),
            ]
        )

        assert (response.total, response.succeeded, response.failed) == (3, 1, 2)
        assert [r.status for r in response.results] == [ITEM_OK, ITEM_NOT_FOUND, ITEM_ERROR]
        assert response.results[1].message == "Hire not found"


class TestBulkUpdate:
    """Bulk updates run per item and report each outcome."""

    @pytest.mark.asyncio
    async def test_missing_ids_reported(self, service: HireService) -> None:
        found, missing = uuid4(), uuid4()
        repo = MagicMock()
        repo.update = AsyncMock(side_effect=lambda hire_id, **fields: object() if hire_id == found else None)
        audit = MagicMock()
        audit.record = AsyncMock()

        with (
            patch("onboarding_api.services.hire_service.HireRepository", return_value=repo),
            patch("onboarding_api.services.hire_service.HireAuditService", return_value=audit),
        ):
            response = await service.bulk_update(
                BulkHireUpdate(ids=[found, missing, found], fields=HireUpdate(laptop_ready="Ready"))
            )

        assert response.total == 2
        assert response.succeeded == 1
        assert {r.id: r.status for r in response.results} == {found: ITEM_OK, missing: ITEM_NOT_FOUND}
        assert audit.record.await_count == 1
        details = service.audit_service.log.await_args.kwargs["details"]
        assert details["fields"] == ["laptop_ready"]

    @pytest.mark.asyncio
    async def test_empty_fields_rejected(self, service: HireService) -> None:
        with pytest.raises(ValidationError):
            await service.bulk_update(BulkHireUpdate(ids=[uuid4()], fields=HireUpdate()))


class TestCredentialSuggestion:
    def test_suggestion(self, service: HireService) -> None:
        result = service.suggest_credentials("Jane Doe", "jane.doe@example.com")
        assert result.username == "jane.doe"
        assert result.password == "J4n3#Mb23"


def make_hire(**overrides):
    values = {
        "id": uuid4(),
        "name": "Jane Doe",
        "email": "jane.doe@example.com",
        "title": "Engineer",
        "department": "Finance",
        "on_site_date": date(2026, 1, 5),
        "phone_number": None,
        "direct_report": None,
        "username": "jane.doe",
        "password": None,
        "account_creation_status": "Pending",
        "laptop_ready": "Pending",
        "license_assigned": False,
        "status_srf": False,
        "microsoft_365_license": "E3",
        "mailing_list": [],
        "distribution_list_sync_status": None,
        "distribution_list_sync_date": None,
        "srf_document_name": None,
        "srf_document_path": None,
        "srf_document_uploaded_at": None,
        "ict_support_pic": None,
        "remarks": None,
        "note": None,
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestHireAuditRecord:
    @pytest.mark.asyncio
    async def test_secrets_in_details_masked(self, audit_repo: MagicMock) -> None:
        hire_id = uuid4()

        entry = await HireAuditService(AsyncMock()).record(
            hire_id=hire_id,
            action_type=HireAction.AD_ACCOUNT_CREATED,
            status=AuditStatus.SUCCESS,
            message="created",
            performed_by="admin",
            details={"username": "jane.doe", "password": "J4n3#Mb23"},
        )

        kwargs = audit_repo.append.await_args.kwargs
        assert kwargs["details"] == {"username": "jane.doe", "password": "[REDACTED]"}
        assert kwargs["status"] == "SUCCESS"
        assert entry.hire_id == hire_id
        assert entry.details["password"] == "[REDACTED]"


class TestHireUpdateDto:
    @pytest.mark.parametrize("field", ["name", "email", "on_site_date", "license_assigned", "mailing_list"])
    def test_null_for_required_column_rejected(self, field: str) -> None:
        with pytest.raises(PydanticValidationError):
            HireUpdate.model_validate({field: None})

    def test_whitespace_name_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            HireUpdate.model_validate({"title": "   "})

    def test_optional_columns_can_be_cleared(self) -> None:
        update = HireUpdate.model_validate({"name": "  Jane Doe ", "remarks": None, "phone_number": None})
        assert update.model_dump(exclude_unset=True) == {"name": "Jane Doe", "remarks": None, "phone_number": None}


class TestCreateUpdateDelete:
    @pytest.mark.asyncio
    async def test_create_derives_username(self, service: HireService, audit_repo: MagicMock) -> None:
        service.hire_repo = MagicMock()
        service.hire_repo.create = AsyncMock(side_effect=lambda **fields: make_hire(**fields))
        data = HireCreate(
            name="Jane Doe",
            email="jane.doe@example.com",
            title="Engineer",
            department="Finance",
            on_site_date=date(2026, 1, 5),
            microsoft_365_license="E3",
        )

        result = await service.create_hire(data, user=SimpleNamespace(username="admin"))

        fields = service.hire_repo.create.await_args.kwargs
        assert fields["username"] == "jane.doe"
        assert fields["email"] == "jane.doe@example.com"
        assert result.username == "jane.doe"
        assert audit_repo.append.await_args.kwargs["action_type"] == HireAction.HIRE_CREATED
        assert audit_repo.append.await_args.kwargs["performed_by"] == "admin"
        service.session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_applies_only_supplied_fields(
        self, service: HireService, audit_repo: MagicMock, no_cache: MagicMock
    ) -> None:
        hire = make_hire()

        async def update(hire_id, **fields):
            for key, value in fields.items():
                setattr(hire, key, value)
            return hire

        service.hire_repo = MagicMock()
        service.hire_repo.get_by_id = AsyncMock(return_value=hire)
        service.hire_repo.update = AsyncMock(side_effect=update)

        result = await service.update_hire(hire.id, HireUpdate(laptop_ready="Ready", license_assigned=True))

        service.hire_repo.update.assert_awaited_once_with(hire.id, laptop_ready="Ready", license_assigned=True)
        assert result.name == "Jane Doe"
        assert result.microsoft_365_license == "E3"
        assert result.laptop_ready == "Ready"
        assert result.progress_percentage == 33
        assert audit_repo.append.await_args.kwargs["details"] == {
            "changes": {"laptop_ready": "Ready", "license_assigned": True}
        }
        no_cache.invalidate_hires.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_update_is_noop(self, service: HireService, audit_repo: MagicMock) -> None:
        hire = make_hire()
        service.hire_repo = MagicMock()
        service.hire_repo.get_by_id = AsyncMock(return_value=hire)
        service.hire_repo.update = AsyncMock()

        await service.update_hire(hire.id, HireUpdate())

        service.hire_repo.update.assert_not_awaited()
        audit_repo.append.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_removes_document_after_commit(self, service: HireService, audit_repo: MagicMock) -> None:
        hire = make_hire(srf_document_path="srf/a.pdf")
        service.hire_repo = MagicMock()
        service.hire_repo.get_by_id = AsyncMock(return_value=hire)
        service.hire_repo.delete = AsyncMock(return_value=True)

        with patch("onboarding_api.services.hire_service.remove_stored_document") as remove:
            result = await service.delete_hire(hire.id)

        assert result.deleted == 1
        assert audit_repo.append.await_args.kwargs["action_type"] == HireAction.HIRE_DELETED
        remove.assert_called_once_with("srf/a.pdf")


class TestBulkDelete:
    """Each selected id is deleted in its own transaction."""

    @pytest.mark.asyncio
    async def test_exactly_selected_ids_removed(self, service: HireService) -> None:
        hires = {h.id: h for h in (make_hire(), make_hire(), make_hire(), make_hire())}
        selected = list(hires)[:3]
        already_deleted = uuid4()

        async def get_by_id(hire_id):
            return hires.get(hire_id)

        async def delete(hire_id):
            return hires.pop(hire_id, None) is not None

        repo = MagicMock()
        repo.get_by_id = AsyncMock(side_effect=get_by_id)
        repo.delete = AsyncMock(side_effect=delete)

        with patch("onboarding_api.services.hire_service.HireRepository", return_value=repo):
            response = await service.bulk_delete(BulkDeleteRequest(ids=[*selected, already_deleted]))

        assert len(hires) == 1
        assert not set(selected) & set(hires)
        assert (response.total, response.succeeded, response.failed) == (4, 3, 1)
        statuses = {r.id: r.status for r in response.results}
        assert statuses[already_deleted] == ITEM_NOT_FOUND
        assert service.audit_service.log.await_args.kwargs["details"]["ids"] == [str(i) for i in selected]

    @pytest.mark.asyncio
    async def test_document_kept_when_item_rolls_back(self, service: HireService) -> None:
        failing = make_hire(srf_document_path="srf/a.pdf")
        committed = make_hire(srf_document_path="srf/b.pdf")
        hires = {failing.id: failing, committed.id: committed}

        def make_repo(session):
            async def get_by_id(hire_id):
                if hire_id == failing.id:
                    session.commit.side_effect = RuntimeError("commit failed")
                return hires.get(hire_id)

            repo = MagicMock()
            repo.get_by_id = AsyncMock(side_effect=get_by_id)
            repo.delete = AsyncMock(return_value=True)
            return repo

        with (
            patch("onboarding_api.services.hire_service.HireRepository", side_effect=make_repo),
            patch("onboarding_api.services.hire_service.remove_stored_document") as remove,
        ):
            response = await service.bulk_delete(BulkDeleteRequest(ids=[failing.id, committed.id]))

        assert {r.id: r.status for r in response.results} == {failing.id: ITEM_ERROR, committed.id: ITEM_OK}
        remove.assert_called_once_with("srf/b.pdf")
