"""Distribution-group membership sync for hires (Exchange Online via Microsoft Graph)."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.config import get_settings
from onboarding_api.exceptions import (
    GraphError,
    HireNotFoundError,
    IntegrationError,
    IntegrationNotEnabledError,
    ValidationError,
)
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.domain.hire import AuditStatus, SyncStatus
from onboarding_api.models.dto.directory import ConnectionTestResponse
from onboarding_api.models.dto.messaging import (
    DistributionGroup,
    DistributionSyncResponse,
    GroupListResponse,
    GroupResult,
    UserGroupsResponse,
)
from onboarding_api.models.orm.hire import HireORM
from onboarding_api.providers.microsoft_graph import MicrosoftGraphProvider
from onboarding_api.repositories.hire_repository import HireRepository
from onboarding_api.services.audit_service import AuditAction, AuditService, ResourceType
from onboarding_api.services.cache_service import get_cache_service
from onboarding_api.services.hire_audit_service import HireAction, HireAuditService
from onboarding_api.services.mail_service import GraphFactory, default_graph
from onboarding_api.services.settings_service import SettingsKey, SettingsService
from onboarding_api.utils.bulk import ItemOutcome, run_bounded
from onboarding_api.utils.secure_logging import log_warning, sanitize_exception_message

logger = logging.getLogger(__name__)

NOT_ENABLED_MESSAGE = "Exchange Online integration is not enabled"


def aggregate_sync_status(succeeded: int, failed: int) -> SyncStatus:
    """Overall status of a sync from per-group counts."""
    if succeeded == 0:
        return SyncStatus.FAILED
    if failed == 0:
        return SyncStatus.SYNCED
    return SyncStatus.PARTIAL


def _to_group(raw: dict) -> DistributionGroup:
    return DistributionGroup(id=raw.get("id", ""), display_name=raw.get("displayName", ""), mail=raw.get("mail"))


class DistributionListService:
    """Adds and removes hires in distribution groups, one audit row per group."""

    def __init__(self, session: AsyncSession, graph_factory: GraphFactory | None = None) -> None:
        self.session = session
        self.graph_factory = graph_factory or default_graph
        self.hire_repo = HireRepository(session)
        self.settings_service = SettingsService(session)
        self.hire_audit = HireAuditService(session)
        self.audit_service = AuditService(session)

    async def _graph(self) -> MicrosoftGraphProvider:
        exchange = await self.settings_service.get_exchange_online()
        if not exchange.enabled:
            raise IntegrationNotEnabledError(NOT_ENABLED_MESSAGE)
        return self.graph_factory(await self.settings_service.get_microsoft_graph())

    async def _get_hire(self, hire_id: UUID) -> HireORM:
        hire = await self.hire_repo.get_by_id(hire_id)
        if hire is None:
            raise HireNotFoundError(str(hire_id))
        if not hire.email:
            raise ValidationError("Hire does not have an email address")
        return hire

    async def _apply(
        self,
        graph: MicrosoftGraphProvider,
        hire: HireORM,
        group_emails: list[str],
        operation: Callable[[str, str], Awaitable[bool]],
    ) -> list[GroupResult]:
        """Run ``operation(group_id, user_id)`` for every group with bounded concurrency."""
        try:
            user_id = await graph.get_user_id(hire.email)
        except IntegrationError as e:
            return [GroupResult(distribution_group=g, success=False, error=e.message) for g in group_emails]

        async def run_one(group_email: str) -> GroupResult:
            group_id = await graph.get_group_id(group_email)
            already = await operation(group_id, user_id)
            return GroupResult(distribution_group=group_email, success=True, already_member=already)

        outcomes: list[ItemOutcome[str, GroupResult]] = await run_bounded(
            group_emails, run_one, get_settings().bulk_concurrency
        )
        results = []
        for outcome in outcomes:
            if outcome.ok:
                results.append(outcome.value)
                continue
            error = outcome.error
            message = error.message if isinstance(error, IntegrationError) else sanitize_exception_message(error)
            results.append(GroupResult(distribution_group=outcome.item, success=False, error=message))
        return results

    async def _audit_groups(
        self,
        hire_id: UUID,
        action_type: str,
        verb: str,
        results: list[GroupResult],
        performed_by: str,
    ) -> None:
        for result in results:
            if result.success:
                await self.hire_audit.record(
                    hire_id=hire_id,
                    action_type=action_type,
                    status=AuditStatus.SUCCESS,
                    message=f"{verb} distribution group: {result.distribution_group}",
                    performed_by=performed_by,
                    details={"distribution_group": result.distribution_group, "already_member": result.already_member},
                )
            else:
                await self.hire_audit.record(
                    hire_id=hire_id,
                    action_type=action_type,
                    status=AuditStatus.ERROR,
                    message=f"Failed for distribution group {result.distribution_group}: {result.error}",
                    performed_by=performed_by,
                    details={"distribution_group": result.distribution_group},
                )

    async def sync_user(
        self,
        hire_id: UUID,
        mailing_lists: list[str] | None = None,
        user: AppUser | None = None,
    ) -> DistributionSyncResponse:
        """Add the hire to its distribution groups.

        When ``mailing_lists`` is omitted the hire's own mailing lists are
        resolved through the catalog.
        """
        graph = await self._graph()
        hire = await self._get_hire(hire_id)

        identifiers = mailing_lists if mailing_lists is not None else list(hire.mailing_list or [])
        group_emails = await self.settings_service.resolve_mailing_lists(identifiers)
        if not group_emails:
            raise ValidationError("No mailing lists to sync")

        results = await self._apply(graph, hire, group_emails, graph.add_group_member)
        succeeded = [r for r in results if r.success]
        failed = [r for r in results if not r.success]
        status = aggregate_sync_status(len(succeeded), len(failed))

        await self._audit_groups(
            hire_id, HireAction.SYNC_DISTRIBUTION_GROUP, "Added to", results, user.username if user else "System"
        )
        await self.hire_repo.update(
            hire_id,
            distribution_list_sync_status=status.value,
            distribution_list_sync_date=datetime.now(timezone.utc),
        )
        await self.session.commit()
        await (await get_cache_service()).invalidate_hires()

        logger.info("Distribution sync for hire %s: %s", hire_id, status.value)
        return DistributionSyncResponse(
            success=True,
            message=f"Sync completed. {len(succeeded)} successful, {len(failed)} failed.",
            results=succeeded,
            errors=failed,
            sync_status=status.value,
        )

    async def remove_user(
        self,
        hire_id: UUID,
        mailing_lists: list[str],
        user: AppUser | None = None,
    ) -> DistributionSyncResponse:
        """Remove the hire from the given distribution groups."""
        graph = await self._graph()
        hire = await self._get_hire(hire_id)

        group_emails = await self.settings_service.resolve_mailing_lists(mailing_lists)
        if not group_emails:
            raise ValidationError("No mailing lists to remove")

        async def remove(group_id: str, user_id: str) -> bool:
            await graph.remove_group_member(group_id, user_id)
            return False

        results = await self._apply(graph, hire, group_emails, remove)
        succeeded = [r for r in results if r.success]
        failed = [r for r in results if not r.success]

        await self._audit_groups(
            hire_id, HireAction.REMOVE_DISTRIBUTION_GROUP, "Removed from", results, user.username if user else "System"
        )
        await self.session.commit()

        return DistributionSyncResponse(
            success=True,
            message=f"Removal completed. {len(succeeded)} successful, {len(failed)} failed.",
            results=succeeded,
            errors=failed,
        )

    async def user_groups(self, email: str) -> UserGroupsResponse:
        """Distribution groups a mailbox belongs to."""
        graph = await self._graph()
        groups = await graph.member_of(email)
        return UserGroupsResponse(success=True, email=email, distribution_groups=[_to_group(g) for g in groups])

    async def list_groups(self) -> GroupListResponse:
        """Every mail-enabled group."""
        graph = await self._graph()
        groups = await graph.list_groups()
        return GroupListResponse(success=True, distribution_groups=[_to_group(g) for g in groups])

    async def test_connection(self, user: AppUser | None = None, request: Request | None = None) -> ConnectionTestResponse:
        """Request a token and read the group list."""
        try:
            graph = await self._graph()
            groups = await graph.list_groups()
            result = ConnectionTestResponse(
                success=True, message=f"Connected to Exchange Online. {len(groups)} distribution groups found."
            )
            await self.settings_service.record_connection_test(SettingsKey.EXCHANGE_ONLINE)
        except IntegrationNotEnabledError:
            raise
        except GraphError as e:
            log_warning(logger, "Exchange Online connection test failed", e)
            result = ConnectionTestResponse(success=False, message=e.message)

        await self.audit_service.log(
            action=AuditAction.CONNECTION_TEST,
            resource_type=ResourceType.SETTING,
            resource_id=SettingsKey.EXCHANGE_ONLINE,
            user=user,
            request=request,
            details={"success": result.success},
        )
        await self.session.commit()
        return result
