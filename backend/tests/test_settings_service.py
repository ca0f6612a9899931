"""Tests for versioned settings storage."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from onboarding_api.exceptions import SettingsVersionConflictError
from onboarding_api.models.dto.settings import (
    MASKED_SECRET,
    ActiveDirectorySettings,
    ExchangeOnlineSettings,
    MicrosoftGraphSettings,
)
from onboarding_api.repositories.settings_repository import SettingsRepository
from onboarding_api.services.settings_service import SettingsKey, SettingsService


def result_returning(record) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = record
    return result


@pytest.fixture
def service() -> SettingsService:
    svc = SettingsService(AsyncMock())
    svc.audit_service = MagicMock()
    svc.audit_service.log = AsyncMock()
    return svc


class TestSecretStorage:
    """Secrets are encrypted at rest and masked on read."""

    def test_secret_encrypted(self, service: SettingsService) -> None:
        stored = service._to_storage(
            SettingsKey.ACTIVE_DIRECTORY, ActiveDirectorySettings(password="s3cret"), None
        )

        assert "password" not in stored
        assert stored["password_encrypted"]
        assert "s3cret" not in str(stored)

    def test_masked_on_read_and_revealed_for_services(self, service: SettingsService) -> None:
        stored = service._to_storage(
            SettingsKey.MICROSOFT_GRAPH, MicrosoftGraphSettings(client_secret="abc"), None
        )

        masked = service._from_storage(SettingsKey.MICROSOFT_GRAPH, stored, reveal=False)
        revealed = service._from_storage(SettingsKey.MICROSOFT_GRAPH, stored, reveal=True)

        assert masked.client_secret == MASKED_SECRET
        assert revealed.client_secret == "abc"

    @pytest.mark.parametrize("secret", [None, "", MASKED_SECRET])
    def test_masked_or_empty_secret_keeps_stored_value(self, service: SettingsService, secret) -> None:
        existing = service._to_storage(
            SettingsKey.ACTIVE_DIRECTORY, ActiveDirectorySettings(password="old"), None
        )

        stored = service._to_storage(
            SettingsKey.ACTIVE_DIRECTORY,
            ActiveDirectorySettings(server="dc01", password=secret),
            existing,
        )

        assert stored["password_encrypted"] == existing["password_encrypted"]
        assert stored["server"] == "dc01"

    def test_connection_stamp_survives_client_write(self, service: SettingsService) -> None:
        existing = {"enabled": True, "last_connection_test": "2026-01-01T00:00:00+00:00"}

        update = ExchangeOnlineSettings(enabled=False)

        stored = service._to_storage(SettingsKey.EXCHANGE_ONLINE, update, existing)

        assert stored["last_connection_test"] == "2026-01-01T00:00:00+00:00"
        assert stored["enabled"] is False

    def test_undecryptable_secret_reads_as_none(self, service: SettingsService) -> None:
        stored = {"password_encrypted": "00ff"}
        model = service._from_storage(SettingsKey.ACTIVE_DIRECTORY, stored, reveal=True)
        assert model.password is None


class TestOptimisticConcurrency:
    """Version checks on settings writes."""

    @pytest.mark.asyncio
    async def test_stale_version_rejected(self) -> None:
        session = AsyncMock()
        record = SimpleNamespace(key="whatsapp", value={}, version=3)
        session.execute = AsyncMock(return_value=result_returning(record))
        repo = SettingsRepository(session)

        with pytest.raises(SettingsVersionConflictError) as exc_info:
            await repo.set("whatsapp", {"api_url": "http://gw"}, expected_version=2)

        assert exc_info.value.current_version == 3
        assert record.value == {}
        session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unwritten_key_is_version_zero(self) -> None:
        session = AsyncMock()
        session.add = MagicMock()
        session.execute = AsyncMock(return_value=result_returning(None))
        repo = SettingsRepository(session)

        with pytest.raises(SettingsVersionConflictError) as exc_info:
            await repo.set("whatsapp", {}, expected_version=1)
        assert exc_info.value.current_version == 0

        await repo.set("whatsapp", {}, expected_version=0)
        session.add.assert_called_once()

    @pytest.mark.asyncio
    async def test_current_version_accepted(self) -> None:
        session = AsyncMock()
        record = SimpleNamespace(key="whatsapp", value={}, version=3)
        session.execute = AsyncMock(return_value=result_returning(record))
        repo = SettingsRepository(session)

        row = await repo.set("whatsapp", {"api_url": "http://gw"}, expected_version=3)

        assert row is record
        assert record.value == {"api_url": "http://gw"}
        session.flush.assert_awaited()


class TestMailingListResolution:
    @pytest.mark.asyncio
    async def test_ids_names_and_addresses(self, service: SettingsService) -> None:
        service.settings_repo = MagicMock()
        service.settings_repo.get = AsyncMock(
            return_value=[
                {"id": "all", "name": "All Staff", "email": "all@example.com"},
                {"id": "it", "name": "IT Team", "email": "it@example.com"},
            ]
        )

        emails = await service.resolve_mailing_lists(
            ["all", "IT TEAM", "ops@example.com", "unknown", "all@example.com"]
        )

        assert emails == ["all@example.com", "it@example.com", "ops@example.com"]
