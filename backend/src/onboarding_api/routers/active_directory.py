"""Active Directory router: account creation, preview and user search."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from onboarding_api.dependencies import get_directory_service
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.dto.directory import (
    AccountSpec,
    BulkCreateAccountsRequest,
    ConnectionTestResponse,
    CreateAccountRequest,
    CreateAccountResponse,
    DirectorySearchResponse,
    DirectoryTestRequest,
)
from onboarding_api.models.dto.hire import BulkOperationResponse
from onboarding_api.security.auth import get_current_user, require_admin
from onboarding_api.security.rate_limit import INTEGRATION_TEST_LIMIT, SENSITIVE_OPERATION_LIMIT, limiter
from onboarding_api.services.directory_service import DirectoryService

router = APIRouter()

# Bind and naming problems are the caller's to fix; anything else is upstream
CLIENT_ERROR_KINDS = {"invalid_credentials", "account_restricted", "invalid_username"}


def create_account_status(result: CreateAccountResponse) -> int:
    """HTTP status for an account creation result."""
    if result.success:
        return status.HTTP_200_OK
    if result.error_kind in CLIENT_ERROR_KINDS:
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_502_BAD_GATEWAY


@router.post("/create-account/{hire_id}", response_model=CreateAccountResponse)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def create_account(
    request: Request,
    hire_id: UUID,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    directory_service: Annotated[DirectoryService, Depends(get_directory_service)],
    body: CreateAccountRequest | None = None,
) -> JSONResponse:
    """Create the hire's directory account and add it to its groups."""
    result = await directory_service.create_account(
        hire_id,
        password_override=body.password if body else None,
        user=current_user,
        request=request,
    )
    return JSONResponse(status_code=create_account_status(result), content=result.model_dump(mode="json"))


@router.post("/bulk-create", response_model=BulkOperationResponse)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def bulk_create_accounts(
    request: Request,
    body: BulkCreateAccountsRequest,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    directory_service: Annotated[DirectoryService, Depends(get_directory_service)],
) -> BulkOperationResponse:
    """Create accounts for several hires. Results are reported per hire."""
    return await directory_service.bulk_create_accounts(body.ids, current_user, request)


@router.get("/search", response_model=DirectorySearchResponse)
async def search_users(
    current_user: Annotated[AppUser, Depends(get_current_user)],
    directory_service: Annotated[DirectoryService, Depends(get_directory_service)],
    q: str = Query(default="", max_length=100),
) -> DirectorySearchResponse:
    """Directory users matching a name, username or e-mail fragment."""
    return await directory_service.search_users(q)


@router.get("/preview/{hire_id}", response_model=AccountSpec)
async def preview_account(
    hire_id: UUID,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    directory_service: Annotated[DirectoryService, Depends(get_directory_service)],
) -> AccountSpec:
    """The account that would be created for a hire."""
    return await directory_service.preview_account(hire_id)


@router.post("/test-connection", response_model=ConnectionTestResponse)
@limiter.limit(INTEGRATION_TEST_LIMIT)
async def test_connection(
    request: Request,
    current_user: Annotated[AppUser, Depends(require_admin)],
    directory_service: Annotated[DirectoryService, Depends(get_directory_service)],
    body: DirectoryTestRequest | None = None,
) -> ConnectionTestResponse:
    """Bind with the submitted or stored settings."""
    return await directory_service.test_connection(body.settings if body else None, current_user, request)
