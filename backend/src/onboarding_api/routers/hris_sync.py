"""HRIS sync router: dry run, full and selective sync, schedule and directory query."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from onboarding_api.dependencies import get_hris_sync_service
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.dto.directory import ConnectionTestResponse
from onboarding_api.models.dto.hris import (
    DirectoryQueryResponse,
    HrisManualSyncRequest,
    HrisScheduleUpdate,
    HrisSyncResponse,
    HrisTestRequest,
)
from onboarding_api.models.dto.settings import HrisScheduleSettings
from onboarding_api.security.auth import require_admin
from onboarding_api.security.rate_limit import INTEGRATION_TEST_LIMIT, SENSITIVE_OPERATION_LIMIT, limiter
from onboarding_api.services.hris_sync_service import HrisSyncService

router = APIRouter()


@router.get("/test", response_model=HrisSyncResponse)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def preview_sync(
    request: Request,
    current_user: Annotated[AppUser, Depends(require_admin)],
    sync_service: Annotated[HrisSyncService, Depends(get_hris_sync_service)],
) -> HrisSyncResponse:
    """Changes a full sync would make. Nothing is written."""
    return await sync_service.preview()


@router.post("", response_model=HrisSyncResponse)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def run_sync(
    request: Request,
    current_user: Annotated[AppUser, Depends(require_admin)],
    sync_service: Annotated[HrisSyncService, Depends(get_hris_sync_service)],
) -> HrisSyncResponse:
    """Sync every matched employee."""
    return await sync_service.run(user=current_user, request=request)


@router.post("/manual", response_model=HrisSyncResponse)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def run_manual_sync(
    request: Request,
    body: HrisManualSyncRequest,
    current_user: Annotated[AppUser, Depends(require_admin)],
    sync_service: Annotated[HrisSyncService, Depends(get_hris_sync_service)],
) -> HrisSyncResponse:
    """Sync only the selected employee ids."""
    return await sync_service.run(body.employee_ids, user=current_user, request=request)


@router.get("/schedule", response_model=HrisScheduleSettings)
async def get_schedule(
    current_user: Annotated[AppUser, Depends(require_admin)],
    sync_service: Annotated[HrisSyncService, Depends(get_hris_sync_service)],
) -> HrisScheduleSettings:
    return await sync_service.get_schedule()


@router.post("/schedule", response_model=HrisScheduleSettings)
async def update_schedule(
    request: Request,
    body: HrisScheduleUpdate,
    current_user: Annotated[AppUser, Depends(require_admin)],
    sync_service: Annotated[HrisSyncService, Depends(get_hris_sync_service)],
) -> HrisScheduleSettings:
    """Enable, disable or reschedule the automatic sync."""
    return await sync_service.update_schedule(body, current_user, request)


@router.get("/query", response_model=DirectoryQueryResponse)
async def query_directory(
    current_user: Annotated[AppUser, Depends(require_admin)],
    sync_service: Annotated[HrisSyncService, Depends(get_hris_sync_service)],
) -> DirectoryQueryResponse:
    """Directory users as the sync sees them."""
    return await sync_service.query_directory()


@router.post("/test-connection", response_model=ConnectionTestResponse)
@limiter.limit(INTEGRATION_TEST_LIMIT)
async def test_connection(
    request: Request,
    current_user: Annotated[AppUser, Depends(require_admin)],
    sync_service: Annotated[HrisSyncService, Depends(get_hris_sync_service)],
    body: HrisTestRequest | None = None,
) -> ConnectionTestResponse:
    """Log in to the HRIS database with the submitted or stored settings."""
    return await sync_service.test_connection(body.settings if body else None, current_user, request)
