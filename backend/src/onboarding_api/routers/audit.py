"""Administrative audit log router."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from onboarding_api.dependencies import get_audit_service
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.dto.audit import AuditLogListResponse
from onboarding_api.security.auth import require_admin
from onboarding_api.services.audit_service import AuditAction, AuditService, ResourceType
from onboarding_api.utils.validation import validate_against_whitelist

router = APIRouter()

# Whitelists for audit filter validation
ALLOWED_ACTIONS = {
    value for name, value in vars(AuditAction).items() if not name.startswith("_") and isinstance(value, str)
}
ALLOWED_RESOURCE_TYPES = {
    value for name, value in vars(ResourceType).items() if not name.startswith("_") and isinstance(value, str)
}


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    current_user: Annotated[AppUser, Depends(require_admin)],
    audit_service: Annotated[AuditService, Depends(get_audit_service)],
    page: int = Query(default=1, ge=1, le=10000),
    page_size: int = Query(default=50, ge=1, le=200),
    action: str | None = Query(default=None, max_length=50),
    resource_type: str | None = Query(default=None, max_length=50),
    user_id: UUID | None = None,
) -> AuditLogListResponse:
    """Audit trail, newest first. Unknown filter values are ignored."""
    return await audit_service.list_logs(
        page=page,
        page_size=page_size,
        action=validate_against_whitelist(action, ALLOWED_ACTIONS),
        resource_type=validate_against_whitelist(resource_type, ALLOWED_RESOURCE_TYPES),
        user_id=user_id,
    )
