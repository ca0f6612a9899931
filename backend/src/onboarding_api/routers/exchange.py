"""Exchange Online router: distribution-group membership of hires."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Request

from onboarding_api.dependencies import get_distribution_list_service
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.dto.directory import ConnectionTestResponse
from onboarding_api.models.dto.messaging import (
    DistributionRemoveRequest,
    DistributionSyncRequest,
    DistributionSyncResponse,
    GroupListResponse,
    UserGroupsResponse,
)
from onboarding_api.security.auth import get_current_user, require_admin
from onboarding_api.security.rate_limit import INTEGRATION_TEST_LIMIT, SENSITIVE_OPERATION_LIMIT, limiter
from onboarding_api.services.distribution_list_service import DistributionListService

router = APIRouter()


@router.post("/sync-user", response_model=DistributionSyncResponse)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def sync_user(
    request: Request,
    body: DistributionSyncRequest,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    service: Annotated[DistributionListService, Depends(get_distribution_list_service)],
) -> DistributionSyncResponse:
    """Add a hire to its distribution groups. Per-group failures do not fail the call."""
    return await service.sync_user(body.hire_id, body.mailing_lists, current_user)


@router.post("/remove-user", response_model=DistributionSyncResponse)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def remove_user(
    request: Request,
    body: DistributionRemoveRequest,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    service: Annotated[DistributionListService, Depends(get_distribution_list_service)],
) -> DistributionSyncResponse:
    """Remove a hire from the given distribution groups."""
    return await service.remove_user(body.hire_id, body.mailing_lists, current_user)


@router.get("/user/{email}", response_model=UserGroupsResponse)
async def user_groups(
    current_user: Annotated[AppUser, Depends(get_current_user)],
    service: Annotated[DistributionListService, Depends(get_distribution_list_service)],
    email: str = Path(min_length=3, max_length=255),
) -> UserGroupsResponse:
    """Distribution groups a mailbox belongs to."""
    return await service.user_groups(email)


@router.get("/distribution-groups", response_model=GroupListResponse)
async def list_groups(
    current_user: Annotated[AppUser, Depends(get_current_user)],
    service: Annotated[DistributionListService, Depends(get_distribution_list_service)],
) -> GroupListResponse:
    """All mail-enabled groups."""
    return await service.list_groups()


@router.post("/test-connection", response_model=ConnectionTestResponse)
@limiter.limit(INTEGRATION_TEST_LIMIT)
async def test_connection(
    request: Request,
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[DistributionListService, Depends(get_distribution_list_service)],
) -> ConnectionTestResponse:
    """Request a Graph token and read the group list."""
    return await service.test_connection(current_user, request)
