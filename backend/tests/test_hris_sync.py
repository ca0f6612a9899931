"""Tests for HRIS to directory synchronisation."""

import sqlite3
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from ldap3.core.exceptions import LDAPInsufficientAccessRightsResult
from sqlalchemy import create_engine, event

from onboarding_api.exceptions import HrisError, IntegrationNotEnabledError
from onboarding_api.models.dto.hris import (
    DirectoryChange,
    DirectoryEmployee,
    HrisEmployee,
    HrisScheduleUpdate,
)
from onboarding_api.models.dto.settings import (
    ActiveDirectorySettings,
    HrisDatabaseSettings,
    HrisScheduleSettings,
)
from onboarding_api.providers.active_directory import ActiveDirectoryProvider
from onboarding_api.providers.hris_database import HrisDatabaseProvider
from onboarding_api.services.audit_service import AuditAction
from onboarding_api.services.hris_sync_service import HrisSyncService, plan_changes
from onboarding_api.services.settings_service import SettingsKey
from onboarding_api.tasks.scheduler import next_fire_time
from onboarding_api.utils.hris_matching import (
    compute_changes,
    fuzzy_match,
    is_valid_employee_id,
    is_valid_phone_number,
    manager_dn_for,
    standardize_phone_number,
)

AD_SETTINGS = ActiveDirectorySettings(
    enabled=True,
    server="dc01.corp.example.com",
    username="svc-onboard",
    password="bind-secret",
    domain="corp.example.com",
    base_dn="DC=corp,DC=example,DC=com",
)

HRIS_SETTINGS = HrisDatabaseSettings(
    enabled=True,
    server="hris-sql.corp.example.com",
    database="hris",
    username="svc-hris",
    password="hris-secret",
)

ROOT_OU = "OU=Merdeka Tsingshan Indonesia,DC=corp,DC=example,DC=com"
JANE_DN = f"CN=Jane Doe [MTI],OU=Finance,{ROOT_OU}"
BUDI_DN = f"CN=Budi Santoso [MTI],OU=Finance,{ROOT_OU}"
ARI_DN = f"CN=Ari Wibowo [MTI],OU=Finance,{ROOT_OU}"

USERS = [
    DirectoryEmployee(
        dn=JANE_DN,
        sam_account_name="jane.doe",
        display_name="Jane Doe [MTI]",
        name="Jane Doe [MTI]",
        employee_id="MTI000001",
        department="Finance",
        title="Accountant",
        mobile="6281234567890",
    ),
    DirectoryEmployee(
        dn=BUDI_DN,
        sam_account_name="budi.santoso",
        display_name="Budi Santoso [MTI]",
        name="Budi Santoso [MTI]",
        employee_id="MTI000009",
        department="Finance",
        title="Finance Manager",
    ),
    DirectoryEmployee(
        dn=ARI_DN,
        sam_account_name="ari.wibowo",
        display_name="Ari Wibowo [MTI]",
        name="Ari Wibowo [MTI]",
        department="Finance",
        title="Analyst",
    ),
]

EMPLOYEES = [
    HrisEmployee(
        employee_id="MTI000001",
        employee_name="Jane Doe",
        department="IT",
        position_title="Accountant",
        phone="0812-3456-7890",
        supervisor_id="MTI000009",
    ),
    HrisEmployee(
        employee_id="MTI000009",
        employee_name="Budi Santoso",
        department="Finance",
        position_title="Finance Manager",
    ),
    HrisEmployee(employee_id="MTI000050", employee_name="Ari Wibowo", department="Finance", position_title="Analyst"),
    HrisEmployee(employee_id="TEMP01", employee_name="Jane Doe", department="Logistics"),
    HrisEmployee(employee_id="MTI000077", employee_name="Nobody Known", department="IT"),
]


class TestMatchingRules:
    def test_employee_id(self) -> None:
        assert is_valid_employee_id("MTI000123")
        assert not is_valid_employee_id("MTI12")
        assert not is_valid_employee_id("mti000123")
        assert not is_valid_employee_id(None)

    @pytest.mark.parametrize(
        ("phone", "valid"),
        [
            ("0812-3456-7890", True),
            ("+62 812 3456 7890", True),
            ("12345", False),
            ("555123456789", False),
            (None, False),
        ],
    )
    def test_phone_number(self, phone, valid: bool) -> None:
        assert is_valid_phone_number(phone) is valid

    def test_phone_standardized_to_international(self) -> None:
        assert standardize_phone_number("0812-3456-7890") == "6281234567890"
        assert standardize_phone_number("+62 812 3456 7890") == "6281234567890"

    def test_fuzzy_match_ignores_org_suffix(self) -> None:
        assert fuzzy_match(USERS, "ari  wibowo").dn == ARI_DN
        assert fuzzy_match(USERS, "Ari Wijaya") is None
        assert fuzzy_match(USERS, "") is None

    def test_blank_values_never_clear(self) -> None:
        employee = HrisEmployee(employee_id="MTI000001", department=None, position_title="", phone="n/a")
        assert compute_changes(employee, USERS[0]) == {}

    def test_changes_listed(self) -> None:
        changes = compute_changes(EMPLOYEES[0], USERS[0], manager_dn=BUDI_DN)
        assert changes == {"department": "IT", "manager": BUDI_DN}

    def test_manager_needs_valid_known_supervisor(self) -> None:
        by_id = {user.employee_id: user for user in USERS if user.employee_id}
        assert manager_dn_for(EMPLOYEES[0], by_id) == BUDI_DN
        assert manager_dn_for(EMPLOYEES[1], by_id) is None
        unknown = EMPLOYEES[0].model_copy(update={"supervisor_id": "MTI999999"})
        assert manager_dn_for(unknown, by_id) is None


class TestPlanChanges:
    def test_only_differing_matched_rows(self) -> None:
        planned = plan_changes(EMPLOYEES, USERS, AD_SETTINGS)

        assert [result.employee_id for result, _ in planned] == ["MTI000001", "MTI000050"]
        jane, jane_change = planned[0]
        assert jane.action == "Test"
        assert jane.current.department == "Finance"
        assert jane_change.dn == JANE_DN
        assert jane_change.target_ou == f"OU=IT,{ROOT_OU}"

    def test_name_match_writes_employee_id(self) -> None:
        planned = dict((result.employee_id, change) for result, change in plan_changes(EMPLOYEES, USERS, AD_SETTINGS))

        ari = planned["MTI000050"]
        assert ari.attributes == {"employeeID": "MTI000050"}
        assert ari.target_ou is None

    def test_selection(self) -> None:
        planned = plan_changes(EMPLOYEES, USERS, AD_SETTINGS, {"MTI000050", "MTI000077"})
        assert [result.employee_id for result, _ in planned] == ["MTI000050"]


@pytest.fixture
def hris_provider() -> MagicMock:
    mock = MagicMock()
    mock.fetch_employees = AsyncMock(return_value=EMPLOYEES)
    mock.test_connection = AsyncMock(return_value="Connected successfully")
    return mock


@pytest.fixture
def directory() -> MagicMock:
    mock = MagicMock()
    mock.list_employees = AsyncMock(return_value=USERS)
    mock.apply_changes = AsyncMock(return_value={})
    return mock


@pytest.fixture
def service(hris_provider: MagicMock, directory: MagicMock) -> HrisSyncService:
    session = AsyncMock()
    svc = HrisSyncService(
        session,
        hris_factory=lambda settings: hris_provider,
        directory_factory=lambda settings: directory,
    )
    svc.settings_service = MagicMock()
    svc.settings_service.get_hris_database = AsyncMock(return_value=HRIS_SETTINGS)
    svc.settings_service.get_active_directory = AsyncMock(return_value=AD_SETTINGS)
    svc.settings_service.get_hris_schedule = AsyncMock(return_value=HrisScheduleSettings())
    svc.settings_service.save_hris_schedule = AsyncMock(side_effect=lambda schedule: schedule)
    svc.settings_service.record_connection_test = AsyncMock()
    svc.audit_service = MagicMock()
    svc.audit_service.log = AsyncMock()
    return svc


class TestSync:
    @pytest.mark.asyncio
    async def test_preview_writes_nothing(self, service: HrisSyncService, directory: MagicMock) -> None:
        response = await service.preview()

        assert response.test
        assert {result.action for result in response.results} == {"Test"}
        directory.apply_changes.assert_not_awaited()
        service.session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_entry_does_not_stop_others(self, service: HrisSyncService, directory: MagicMock) -> None:
        directory.apply_changes = AsyncMock(return_value={JANE_DN: "Failed to update department: insufficientAccessRights"})

        response = await service.run()

        actions = {result.employee_id: result for result in response.results}
        assert actions["MTI000001"].action == "Failed"
        assert actions["MTI000001"].error == "Failed to update department: insufficientAccessRights"
        assert actions["MTI000050"].action == "ID Reassigned"
        assert (response.applied, response.failed) == (1, 1)
        kwargs = service.audit_service.log.await_args.kwargs
        assert kwargs["action"] == AuditAction.HRIS_SYNC
        assert kwargs["details"]["scheduled"] is True
        service.session.commit.assert_awaited()

    @pytest.mark.asyncio
    async def test_manual_sync_only_selected(self, service: HrisSyncService, directory: MagicMock) -> None:
        response = await service.run(["MTI000050"], user=MagicMock(id="u1"))

        changes = directory.apply_changes.await_args.args[0]
        assert [change.dn for change in changes] == [ARI_DN]
        assert [result.action for result in response.results] == ["ID Reassigned"]
        assert service.audit_service.log.await_args.kwargs["details"]["selected"] == 1

    @pytest.mark.asyncio
    async def test_nothing_to_change(self, service: HrisSyncService, directory: MagicMock) -> None:
        response = await service.run(["MTI000009"])

        assert response.results == []
        directory.apply_changes.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_hris_disabled(self, service: HrisSyncService) -> None:
        service.settings_service.get_hris_database = AsyncMock(return_value=HrisDatabaseSettings())

        with pytest.raises(IntegrationNotEnabledError):
            await service.run()

    @pytest.mark.asyncio
    async def test_directory_disabled(self, service: HrisSyncService) -> None:
        service.settings_service.get_active_directory = AsyncMock(return_value=ActiveDirectorySettings())

        with pytest.raises(IntegrationNotEnabledError):
            await service.preview()

    @pytest.mark.asyncio
    async def test_scheduled_run_stamps_schedule(self, service: HrisSyncService) -> None:
        service.settings_service.get_hris_schedule = AsyncMock(
            return_value=HrisScheduleSettings(enabled=True, frequency="monthly")
        )

        await service.run_scheduled()

        saved = service.settings_service.save_hris_schedule.await_args.args[0]
        assert saved.last_run is not None
        assert saved.next_run.day == 1
        assert saved.next_run > saved.last_run

    @pytest.mark.asyncio
    async def test_query_directory(self, service: HrisSyncService) -> None:
        response = await service.query_directory()

        assert response.base_dn == "DC=corp,DC=example,DC=com"
        assert response.count == 3


class TestSchedule:
    NOW = datetime(2026, 10, 14, 15, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        ("frequency", "expected"),
        [
            ("daily", datetime(2026, 10, 15, tzinfo=timezone.utc)),
            ("weekly", datetime(2026, 10, 18, tzinfo=timezone.utc)),
            ("monthly", datetime(2026, 11, 1, tzinfo=timezone.utc)),
        ],
    )
    def test_next_fire_time(self, frequency: str, expected: datetime) -> None:
        assert next_fire_time(frequency, self.NOW) == expected

    def test_unknown_frequency(self) -> None:
        with pytest.raises(ValueError):
            next_fire_time("hourly", self.NOW)

    @pytest.mark.asyncio
    async def test_enable_reschedules_job(self, service: HrisSyncService) -> None:
        with patch(
            "onboarding_api.services.hris_sync_service.update_hris_schedule", new_callable=AsyncMock
        ) as update_job:
            saved = await service.update_schedule(HrisScheduleUpdate(enabled=True, frequency="weekly"))

        assert saved.enabled
        assert saved.frequency == "weekly"
        assert saved.next_run.weekday() == 6
        update_job.assert_awaited_once_with(True, "weekly")
        assert service.audit_service.log.await_args.kwargs["resource_id"] == SettingsKey.HRIS_SCHEDULE

    @pytest.mark.asyncio
    async def test_disable_keeps_frequency(self, service: HrisSyncService) -> None:
        service.settings_service.get_hris_schedule = AsyncMock(
            return_value=HrisScheduleSettings(enabled=True, frequency="monthly")
        )

        with patch(
            "onboarding_api.services.hris_sync_service.update_hris_schedule", new_callable=AsyncMock
        ) as update_job:
            saved = await service.update_schedule(HrisScheduleUpdate(enabled=False))

        assert saved.frequency == "monthly"
        assert saved.next_run is None
        update_job.assert_awaited_once_with(False, "monthly")


class TestConnectionTest:
    @pytest.mark.asyncio
    async def test_masked_password_uses_stored(self, service: HrisSyncService) -> None:
        seen = []

        def factory(settings: HrisDatabaseSettings):
            seen.append(settings)
            mock = MagicMock()
            mock.test_connection = AsyncMock(return_value="Connected successfully")
            return mock

        service.hris_factory = factory
        candidate = HRIS_SETTINGS.model_copy(update={"password": "••••••••", "server": "hris-sql-2"})

        result = await service.test_connection(candidate)

        assert result.success
        assert seen[0].password == "hris-secret"
        assert seen[0].server == "hris-sql-2"
        service.settings_service.record_connection_test.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stored_settings_stamped(self, service: HrisSyncService) -> None:
        result = await service.test_connection()

        assert result.success
        service.settings_service.record_connection_test.assert_awaited_once_with(SettingsKey.HRIS_DATABASE)

    @pytest.mark.asyncio
    async def test_failure_not_stamped(self, service: HrisSyncService, hris_provider: MagicMock) -> None:
        hris_provider.test_connection = AsyncMock(side_effect=HrisError("Unable to query the HRIS database"))

        result = await service.test_connection()

        assert not result.success
        assert result.message == "Unable to query the HRIS database"
        service.settings_service.record_connection_test.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_parameters_reported(self, service: HrisSyncService) -> None:
        service.hris_factory = HrisDatabaseProvider

        result = await service.test_connection(HrisDatabaseSettings(server="hris-sql"))

        assert not result.success
        assert result.message == "Missing required HRIS connection parameters"


def attached_sqlite(path):
    """Engine factory serving a SQLite file as the ``dbo`` schema."""

    def factory(url, **kwargs):
        engine = create_engine("sqlite://")

        @event.listens_for(engine, "connect")
        def attach(dbapi_connection, connection_record):
            dbapi_connection.execute(f"ATTACH DATABASE '{path}' AS dbo")

        return engine

    return factory


class TestHrisDatabaseProvider:
    @pytest.fixture
    def database(self, tmp_path):
        path = tmp_path / "hris.db"
        with sqlite3.connect(path) as conn:
            conn.execute(
                "CREATE TABLE it_mti_employee_database_tbl (employee_id TEXT, employee_name TEXT, gender TEXT, "
                "department TEXT, position_title TEXT, phone TEXT, supervisor_id TEXT, grade_interval TEXT)"
            )
            conn.executemany(
                "INSERT INTO it_mti_employee_database_tbl VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    ("MTI000001", " Jane Doe ", "F", "IT", "Engineer", "081234567890", "MTI000009", "Staff"),
                    ("MTI000002", "Temp Worker", "M", "IT", "Helper", None, None, "Non Staff"),
                    (None, "No Id", "M", "IT", "Engineer", None, None, "Staff"),
                    ("MTI000009", "Budi Santoso", "M", "Finance", "", None, None, "Manager"),
                ],
            )
        return path

    @pytest.mark.asyncio
    async def test_fetch_staff_rows(self, database) -> None:
        provider = HrisDatabaseProvider(HRIS_SETTINGS, engine_factory=attached_sqlite(database))

        employees = await provider.fetch_employees()

        assert [employee.employee_id for employee in employees] == ["MTI000001", "MTI000009"]
        assert employees[0].employee_name == "Jane Doe"
        assert employees[1].position_title is None

    @pytest.mark.asyncio
    async def test_query_failure_is_hris_error(self, tmp_path) -> None:
        provider = HrisDatabaseProvider(HRIS_SETTINGS, engine_factory=attached_sqlite(tmp_path / "empty.db"))

        with pytest.raises(HrisError):
            await provider.fetch_employees()

    @pytest.mark.asyncio
    async def test_connection(self, database) -> None:
        provider = HrisDatabaseProvider(HRIS_SETTINGS, engine_factory=attached_sqlite(database))
        assert await provider.test_connection() == "Connected successfully"

    def test_missing_parameters(self) -> None:
        with pytest.raises(HrisError):
            HrisDatabaseProvider(HrisDatabaseSettings(server="hris-sql"))


class TestDirectoryApply:
    @pytest.mark.asyncio
    async def test_per_entry_errors(self) -> None:
        provider = ActiveDirectoryProvider(AD_SETTINGS)
        client = MagicMock()
        client.__enter__.return_value = client
        client.__exit__.return_value = False
        client.replace_attributes.side_effect = [LDAPInsufficientAccessRightsResult("denied"), None]
        changes = [
            DirectoryChange(dn=JANE_DN, attributes={"department": "IT"}, target_ou=f"OU=IT,{ROOT_OU}"),
            DirectoryChange(dn=ARI_DN, attributes={"employeeID": "MTI000050"}),
        ]

        with patch.object(provider, "_client", return_value=client):
            errors = await provider.apply_changes(changes)

        assert errors == {JANE_DN: "Directory update failed: LDAPInsufficientAccessRightsResult"}
        client.move_to_ou.assert_not_called()
        client.replace_attributes.assert_called_with(ARI_DN, {"employeeID": "MTI000050"})
