"""Tests for distribution-group sync."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from onboarding_api.exceptions import GraphError, IntegrationNotEnabledError, ValidationError
from onboarding_api.models.domain.hire import AuditStatus, SyncStatus
from onboarding_api.models.dto.settings import ExchangeOnlineSettings, MicrosoftGraphSettings
from onboarding_api.services.distribution_list_service import (
    DistributionListService,
    aggregate_sync_status,
)


class TestAggregateStatus:
    @pytest.mark.parametrize(
        ("succeeded", "failed", "expected"),
        [
            (3, 0, SyncStatus.SYNCED),
            (2, 1, SyncStatus.PARTIAL),
            (0, 2, SyncStatus.FAILED),
            (0, 0, SyncStatus.FAILED),
        ],
    )
    def test_status(self, succeeded: int, failed: int, expected: SyncStatus) -> None:
        assert aggregate_sync_status(succeeded, failed) == expected


@pytest.fixture
def graph() -> MagicMock:
    mock = MagicMock()
    mock.get_user_id = AsyncMock(return_value="user-1")
    mock.get_group_id = AsyncMock(side_effect=lambda email: f"id:{email}")
    mock.add_group_member = AsyncMock(return_value=False)
    mock.remove_group_member = AsyncMock()
    return mock


@pytest.fixture
def hire() -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), email="jane.doe@example.com", mailing_list=["all", "it"])


@pytest.fixture
def service(graph: MagicMock, hire: SimpleNamespace) -> DistributionListService:
    svc = DistributionListService(AsyncMock(), graph_factory=lambda settings: graph)
    svc.settings_service = MagicMock()
    svc.settings_service.get_exchange_online = AsyncMock(return_value=ExchangeOnlineSettings(enabled=True))
    svc.settings_service.get_microsoft_graph = AsyncMock(return_value=MicrosoftGraphSettings(enabled=True))
    svc.settings_service.resolve_mailing_lists = AsyncMock(
        return_value=["all@example.com", "it@example.com"]
    )
    svc.hire_repo = MagicMock()
    svc.hire_repo.get_by_id = AsyncMock(return_value=hire)
    svc.hire_repo.update = AsyncMock()
    svc.hire_audit = MagicMock()
    svc.hire_audit.record = AsyncMock()
    return svc


@pytest.fixture(autouse=True)
def no_cache():
    cache = MagicMock()
    cache.invalidate_hires = AsyncMock(return_value=0)
    with patch(
        "onboarding_api.services.distribution_list_service.get_cache_service",
        AsyncMock(return_value=cache),
    ):
        yield cache


class TestSyncUser:
    """Adding a hire to its groups."""

    @pytest.mark.asyncio
    async def test_all_groups_synced(self, service: DistributionListService, hire: SimpleNamespace) -> None:
        result = await service.sync_user(hire.id)

        assert result.sync_status == "Synced"
        assert result.message == "Sync completed. 2 successful, 0 failed."
        service.settings_service.resolve_mailing_lists.assert_awaited_once_with(["all", "it"])
        assert service.hire_repo.update.await_args.kwargs["distribution_list_sync_status"] == "Synced"
        assert service.hire_audit.record.await_count == 2

    @pytest.mark.asyncio
    async def test_one_group_fails(
        self, service: DistributionListService, graph: MagicMock, hire: SimpleNamespace
    ) -> None:
        async def add(group_id: str, user_id: str) -> bool:
            if group_id == "id:it@example.com":
                raise GraphError("Insufficient privileges", 403)
            return True

        graph.add_group_member = AsyncMock(side_effect=add)

        result = await service.sync_user(hire.id)

        assert result.sync_status == "Partial"
        assert [r.distribution_group for r in result.results] == ["all@example.com"]
        assert result.results[0].already_member
        assert result.errors[0].error == "Insufficient privileges"
        statuses = [call.kwargs["status"] for call in service.hire_audit.record.await_args_list]
        assert statuses == [AuditStatus.SUCCESS, AuditStatus.ERROR]

    @pytest.mark.asyncio
    async def test_unknown_mailbox_fails_every_group(
        self, service: DistributionListService, graph: MagicMock, hire: SimpleNamespace
    ) -> None:
        graph.get_user_id = AsyncMock(side_effect=GraphError("User not found", 404))

        result = await service.sync_user(hire.id)

        assert result.sync_status == "Failed"
        assert len(result.errors) == 2

    @pytest.mark.asyncio
    async def test_explicit_lists(self, service: DistributionListService, hire: SimpleNamespace) -> None:
        await service.sync_user(hire.id, mailing_lists=["ops"])
        service.settings_service.resolve_mailing_lists.assert_awaited_once_with(["ops"])

    @pytest.mark.asyncio
    async def test_nothing_to_sync(self, service: DistributionListService, hire: SimpleNamespace) -> None:
        service.settings_service.resolve_mailing_lists = AsyncMock(return_value=[])

        with pytest.raises(ValidationError):
            await service.sync_user(hire.id)

    @pytest.mark.asyncio
    async def test_exchange_disabled(self, service: DistributionListService) -> None:
        service.settings_service.get_exchange_online = AsyncMock(return_value=ExchangeOnlineSettings())

        with pytest.raises(IntegrationNotEnabledError):
            await service.sync_user(uuid4())


class TestRemoveUser:
    @pytest.mark.asyncio
    async def test_removed_without_status_change(
        self, service: DistributionListService, graph: MagicMock, hire: SimpleNamespace
    ) -> None:
        result = await service.remove_user(hire.id, ["all", "it"])

        assert result.message == "Removal completed. 2 successful, 0 failed."
        assert graph.remove_group_member.await_count == 2
        service.hire_repo.update.assert_not_awaited()
