"""HRIS to Active Directory synchronisation.

HRIS is the source of truth for department, title, mobile number and
manager. Directory users are matched by employeeID; a user found by name
alone gets the HRIS employee id written back ("ID Reassigned").
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.config import get_settings
from onboarding_api.exceptions import HrisError, IntegrationNotEnabledError
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.dto.directory import ConnectionTestResponse
from onboarding_api.models.dto.hris import (
    CurrentAttributes,
    DirectoryChange,
    DirectoryEmployee,
    DirectoryQueryResponse,
    HrisEmployee,
    HrisScheduleUpdate,
    HrisSyncResponse,
    HrisSyncResult,
)
from onboarding_api.models.dto.settings import (
    MASKED_SECRET,
    ActiveDirectorySettings,
    HrisDatabaseSettings,
    HrisScheduleSettings,
)
from onboarding_api.providers.active_directory import ActiveDirectoryProvider
from onboarding_api.providers.hris_database import HrisDatabaseProvider
from onboarding_api.services.audit_service import AuditAction, AuditService, ResourceType
from onboarding_api.services.directory_service import NOT_ENABLED_MESSAGE, default_provider
from onboarding_api.services.settings_service import SettingsKey, SettingsService
from onboarding_api.tasks.scheduler import next_fire_time, update_hris_schedule
from onboarding_api.utils.directory_naming import ou_path
from onboarding_api.utils.hris_matching import (
    compute_changes,
    is_valid_employee_id,
    manager_dn_for,
    match_directory_user,
)
from onboarding_api.utils.secure_logging import log_warning

logger = logging.getLogger(__name__)

HrisFactory = Callable[[HrisDatabaseSettings], HrisDatabaseProvider]
DirectoryFactory = Callable[[ActiveDirectorySettings], ActiveDirectoryProvider]

HRIS_NOT_ENABLED_MESSAGE = "HRIS database integration is not enabled"

PlannedChange = tuple[HrisSyncResult, DirectoryChange]


def default_hris_provider(settings: HrisDatabaseSettings) -> HrisDatabaseProvider:
    """Provider with the configured SQL Server timeouts."""
    app_settings = get_settings()
    return HrisDatabaseProvider(
        settings,
        login_timeout=app_settings.hris_login_timeout,
        query_timeout=app_settings.hris_query_timeout,
    )


def plan_changes(
    employees: list[HrisEmployee],
    users: list[DirectoryEmployee],
    directory: ActiveDirectorySettings,
    employee_ids: set[str] | None = None,
) -> list[PlannedChange]:
    """Directory changes that bring matched users in line with HRIS.

    Rows with an invalid employee id, rows without a directory user and
    users already up to date produce nothing. A department change also
    moves the entry into that department's OU.
    """
    by_employee_id = {user.employee_id: user for user in users if user.employee_id}
    org_name = directory.organization.org_name

    planned: list[PlannedChange] = []
    for employee in employees:
        if employee_ids is not None and employee.employee_id not in employee_ids:
            continue
        if not is_valid_employee_id(employee.employee_id):
            continue

        user, by_name = match_directory_user(employee, users, by_employee_id)
        if user is None:
            continue

        changes = compute_changes(employee, user, manager_dn_for(employee, by_employee_id))
        if by_name and user.employee_id != employee.employee_id:
            changes["employeeID"] = employee.employee_id
        if not changes:
            continue

        target_ou = None
        if "department" in changes:
            target_ou = ou_path(changes["department"], org_name, directory.base_dn)

        result = HrisSyncResult(
            employee_id=employee.employee_id,
            display_name=user.display_name or user.name or employee.employee_name or user.sam_account_name,
            current=CurrentAttributes(
                department=user.department,
                title=user.title,
                manager=user.manager,
                mobile=user.mobile,
            ),
            changes=changes,
            action="Test",
        )
        planned.append((result, DirectoryChange(dn=user.dn, attributes=changes, target_ou=target_ou)))
    return planned


class HrisSyncService:
    """Dry runs, full and selective syncs, the schedule and connection tests."""

    def __init__(
        self,
        session: AsyncSession,
        hris_factory: HrisFactory | None = None,
        directory_factory: DirectoryFactory | None = None,
    ) -> None:
        self.session = session
        self.hris_factory = hris_factory or default_hris_provider
        self.directory_factory = directory_factory or default_provider
        self.settings_service = SettingsService(session)
        self.audit_service = AuditService(session)

    async def _directory_settings(self) -> ActiveDirectorySettings:
        settings = await self.settings_service.get_active_directory()
        if not settings.enabled:
            raise IntegrationNotEnabledError(NOT_ENABLED_MESSAGE)
        return settings

    async def _plan(self, employee_ids: set[str] | None = None) -> tuple[list[PlannedChange], ActiveDirectoryProvider]:
        hris_settings = await self.settings_service.get_hris_database()
        if not hris_settings.enabled:
            raise IntegrationNotEnabledError(HRIS_NOT_ENABLED_MESSAGE)
        directory_settings = await self._directory_settings()

        directory = self.directory_factory(directory_settings)
        employees = await self.hris_factory(hris_settings).fetch_employees()
        users = await directory.list_employees()
        return plan_changes(employees, users, directory_settings, employee_ids), directory

    async def preview(self) -> HrisSyncResponse:
        """Changes a full sync would make, without writing anything.

        Raises:
            IntegrationNotEnabledError: If HRIS or Active Directory is disabled
        """
        planned, _ = await self._plan()
        return HrisSyncResponse(test=True, results=[result for result, _ in planned])

    async def run(
        self,
        employee_ids: list[str] | None = None,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> HrisSyncResponse:
        """Apply HRIS values to the directory.

        Args:
            employee_ids: Only these employees; None syncs everyone
            user: Acting admin, None for the scheduled run
            request: Source of audit context

        A failed entry is reported as "Failed" and does not stop the others.
        """
        selected = set(employee_ids) if employee_ids is not None else None
        planned, directory = await self._plan(selected)

        errors: dict[str, str] = {}
        if planned:
            errors = await directory.apply_changes([change for _, change in planned])

        results: list[HrisSyncResult] = []
        for result, change in planned:
            if change.dn in errors:
                results.append(result.model_copy(update={"action": "Failed", "error": errors[change.dn]}))
            elif "employeeID" in result.changes:
                results.append(result.model_copy(update={"action": "ID Reassigned"}))
            else:
                results.append(result.model_copy(update={"action": "Updated"}))

        failed = sum(1 for result in results if result.action == "Failed")
        applied = len(results) - failed

        await self.audit_service.log(
            action=AuditAction.HRIS_SYNC,
            resource_type=ResourceType.HRIS,
            user=user,
            request=request,
            details={
                "selected": len(selected) if selected is not None else None,
                "scheduled": user is None,
                "applied": applied,
                "failed": failed,
            },
        )
        await self.session.commit()

        logger.info(f"HRIS sync finished: {applied} updated, {failed} failed")
        return HrisSyncResponse(test=False, results=results, applied=applied, failed=failed)

    async def run_scheduled(self) -> HrisSyncResponse:
        """Full sync from the scheduler; stamps last and next run."""
        result = await self.run()

        schedule = await self.settings_service.get_hris_schedule()
        now = datetime.now(timezone.utc)
        await self.settings_service.save_hris_schedule(
            schedule.model_copy(update={"last_run": now, "next_run": next_fire_time(schedule.frequency, now)})
        )
        await self.session.commit()
        return result

    async def query_directory(self) -> DirectoryQueryResponse:
        """Directory users with the attributes the sync compares."""
        settings = await self._directory_settings()
        users = await self.directory_factory(settings).list_employees()
        return DirectoryQueryResponse(base_dn=settings.base_dn, count=len(users), users=users)

    async def get_schedule(self) -> HrisScheduleSettings:
        return await self.settings_service.get_hris_schedule()

    async def update_schedule(
        self,
        update: HrisScheduleUpdate,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> HrisScheduleSettings:
        """Store the schedule and replace the scheduler job."""
        current = await self.settings_service.get_hris_schedule()
        frequency = update.frequency or current.frequency
        next_run = next_fire_time(frequency, datetime.now(timezone.utc)) if update.enabled else None

        saved = await self.settings_service.save_hris_schedule(
            current.model_copy(update={"enabled": update.enabled, "frequency": frequency, "next_run": next_run})
        )
        await self.audit_service.log(
            action=AuditAction.HRIS_SCHEDULE_UPDATE,
            resource_type=ResourceType.SETTING,
            resource_id=SettingsKey.HRIS_SCHEDULE,
            user=user,
            request=request,
            details={"enabled": saved.enabled, "frequency": saved.frequency},
        )
        await self.session.commit()

        await update_hris_schedule(saved.enabled, saved.frequency)
        return saved

    async def test_connection(
        self,
        candidate: HrisDatabaseSettings | None = None,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> ConnectionTestResponse:
        """Log in to the HRIS database with unsaved or stored settings.

        A masked or empty password in ``candidate`` falls back to the stored one.
        """
        stored = await self.settings_service.get_hris_database()
        settings = stored
        if candidate is not None:
            password = candidate.password
            if not password or password == MASKED_SECRET:
                password = stored.password
            settings = candidate.model_copy(update={"password": password})

        try:
            message = await self.hris_factory(settings).test_connection()
            result = ConnectionTestResponse(success=True, message=message)
        except HrisError as e:
            log_warning(logger, "HRIS connection test failed", e)
            result = ConnectionTestResponse(success=False, message=e.message)

        await self.audit_service.log(
            action=AuditAction.CONNECTION_TEST,
            resource_type=ResourceType.SETTING,
            resource_id=SettingsKey.HRIS_DATABASE,
            user=user,
            request=request,
            details={"success": result.success},
        )
        await self.session.commit()

        if result.success and candidate is None:
            await self.settings_service.record_connection_test(SettingsKey.HRIS_DATABASE)
        return result
