"""Hires router: hire records, bulk operations, SRF documents and hire audit logs."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from fastapi.responses import FileResponse

from onboarding_api.dependencies import (
    get_hire_audit_service,
    get_hire_service,
    get_srf_document_service,
)
from onboarding_api.exceptions import ValidationError
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.dto.audit import HireAuditLogCreate, HireAuditLogResponse
from onboarding_api.models.dto.hire import (
    BulkDeleteRequest,
    BulkHireUpdate,
    BulkOperationResponse,
    CredentialSuggestionRequest,
    CredentialSuggestionResponse,
    DeleteResponse,
    HireCreate,
    HireListResponse,
    HireResponse,
    HireUpdate,
)
from onboarding_api.security.auth import get_current_user, require_admin
from onboarding_api.security.rate_limit import SENSITIVE_OPERATION_LIMIT, limiter
from onboarding_api.services.hire_audit_service import HireAuditService
from onboarding_api.services.hire_service import HireService
from onboarding_api.services.srf_document_service import PDF_MIME_TYPE, SrfDocumentService
from onboarding_api.utils.validation import sanitize_department, sanitize_search, sanitize_status

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=HireListResponse)
async def list_hires(
    current_user: Annotated[AppUser, Depends(get_current_user)],
    hire_service: Annotated[HireService, Depends(get_hire_service)],
    search: str | None = Query(default=None, max_length=200),
    department: str | None = Query(default=None, max_length=255),
    account_status: str | None = Query(default=None, alias="status", max_length=50),
) -> HireListResponse:
    """List hires, newest first."""
    return await hire_service.list_hires(
        search=sanitize_search(search),
        department=sanitize_department(department),
        status=sanitize_status(account_status),
    )


@router.post("", response_model=HireResponse, status_code=status.HTTP_201_CREATED)
async def create_hire(
    request: Request,
    body: HireCreate,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    hire_service: Annotated[HireService, Depends(get_hire_service)],
) -> HireResponse:
    """Create a hire record."""
    return await hire_service.create_hire(body, current_user, request)


@router.post("/bulk-update", response_model=BulkOperationResponse)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def bulk_update_hires(
    request: Request,
    body: BulkHireUpdate,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    hire_service: Annotated[HireService, Depends(get_hire_service)],
) -> BulkOperationResponse:
    """Apply the same field values to every selected hire."""
    return await hire_service.bulk_update(body, current_user, request)


@router.post("/bulk-delete", response_model=BulkOperationResponse)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def bulk_delete_hires(
    request: Request,
    body: BulkDeleteRequest,
    current_user: Annotated[AppUser, Depends(require_admin)],
    hire_service: Annotated[HireService, Depends(get_hire_service)],
) -> BulkOperationResponse:
    """Delete every selected hire. Admin only."""
    return await hire_service.bulk_delete(body, current_user, request)


@router.post("/suggest-credentials", response_model=CredentialSuggestionResponse)
async def suggest_credentials(
    body: CredentialSuggestionRequest,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    hire_service: Annotated[HireService, Depends(get_hire_service)],
) -> CredentialSuggestionResponse:
    """Suggested username and initial password for a new hire."""
    return hire_service.suggest_credentials(body.name, body.email)


@router.get("/{hire_id}", response_model=HireResponse)
async def get_hire(
    hire_id: UUID,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    hire_service: Annotated[HireService, Depends(get_hire_service)],
) -> HireResponse:
    """Get a hire record."""
    return await hire_service.get_hire(hire_id)


@router.put("/{hire_id}", response_model=HireResponse)
async def update_hire(
    request: Request,
    hire_id: UUID,
    body: HireUpdate,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    hire_service: Annotated[HireService, Depends(get_hire_service)],
) -> HireResponse:
    """Update the supplied fields of a hire record."""
    return await hire_service.update_hire(hire_id, body, current_user, request)


@router.delete("/{hire_id}", response_model=DeleteResponse)
async def delete_hire(
    request: Request,
    hire_id: UUID,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    hire_service: Annotated[HireService, Depends(get_hire_service)],
) -> DeleteResponse:
    """Delete a hire record."""
    return await hire_service.delete_hire(hire_id, current_user, request)


# =============================================================================
# Hire audit log
# =============================================================================


@router.get("/{hire_id}/audit-logs", response_model=list[HireAuditLogResponse])
async def list_hire_audit_logs(
    hire_id: UUID,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    hire_audit_service: Annotated[HireAuditService, Depends(get_hire_audit_service)],
) -> list[HireAuditLogResponse]:
    """Audit entries for a hire, newest first."""
    return await hire_audit_service.list_for_hire(hire_id)


@router.post(
    "/{hire_id}/audit-logs",
    response_model=HireAuditLogResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_hire_audit_log(
    hire_id: UUID,
    body: HireAuditLogCreate,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    hire_service: Annotated[HireService, Depends(get_hire_service)],
    hire_audit_service: Annotated[HireAuditService, Depends(get_hire_audit_service)],
) -> HireAuditLogResponse:
    """Append an entry reported by a client flow."""
    await hire_service.get_hire(hire_id)
    try:
        return await hire_audit_service.record_client_entry(hire_id, body, current_user.username)
    except ValueError as e:
        raise ValidationError(str(e)) from e


# =============================================================================
# SRF documents
# =============================================================================


@router.post("/{hire_id}/srf", response_model=HireResponse)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def upload_srf(
    request: Request,
    hire_id: UUID,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    srf_service: Annotated[SrfDocumentService, Depends(get_srf_document_service)],
    hire_service: Annotated[HireService, Depends(get_hire_service)],
    file: UploadFile = File(...),
) -> HireResponse:
    """Upload the hire's signed SRF (PDF only)."""
    if file.filename is None:
        raise ValidationError("No filename provided")

    content = await file.read()
    await srf_service.upload(hire_id, file.filename, content, current_user, request)
    return await hire_service.get_hire(hire_id)


@router.get("/{hire_id}/srf")
async def download_srf(
    hire_id: UUID,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    srf_service: Annotated[SrfDocumentService, Depends(get_srf_document_service)],
) -> FileResponse:
    """Download the hire's SRF document."""
    path, name = await srf_service.get_document(hire_id)
    return FileResponse(
        path=path,
        filename=name,
        media_type=PDF_MIME_TYPE,
        headers={"Cache-Control": "private, no-cache"},
    )


@router.delete("/{hire_id}/srf", status_code=status.HTTP_204_NO_CONTENT)
async def delete_srf(
    request: Request,
    hire_id: UUID,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    srf_service: Annotated[SrfDocumentService, Depends(get_srf_document_service)],
) -> None:
    """Remove the hire's SRF document."""
    await srf_service.delete(hire_id, current_user, request)
