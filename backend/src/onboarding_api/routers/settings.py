"""Settings router: versioned integration settings, departments and license types."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from onboarding_api.dependencies import get_directory_service, get_settings_service
from onboarding_api.exceptions import NotFoundError
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.dto.directory import ConnectionTestResponse, DirectoryTestRequest
from onboarding_api.models.dto.settings import (
    AccountStatusSettings,
    ActiveDirectorySettings,
    AllSettingsResponse,
    DepartmentCreate,
    DepartmentResponse,
    DepartmentsReplace,
    DepartmentUpdate,
    ExchangeOnlineSettings,
    HrisDatabaseSettings,
    LicenseTypeCreate,
    LicenseTypeResponse,
    LicenseTypeUpdate,
    MailingListsUpdate,
    MicrosoftGraphSettings,
    VersionedSetting,
    VersionedUpdate,
    WhatsAppSettings,
)
from onboarding_api.security.auth import get_current_user, require_admin
from onboarding_api.security.rate_limit import INTEGRATION_TEST_LIMIT, SENSITIVE_OPERATION_LIMIT, limiter
from onboarding_api.services.directory_service import DirectoryService
from onboarding_api.services.settings_service import SettingsKey, SettingsService

router = APIRouter()

# URL slug -> settings document key
CONCERN_SLUGS = {
    "account-statuses": SettingsKey.ACCOUNT_STATUSES,
    "mailing-lists": SettingsKey.MAILING_LISTS,
    "active-directory": SettingsKey.ACTIVE_DIRECTORY,
    "exchange-online": SettingsKey.EXCHANGE_ONLINE,
    "microsoft-graph": SettingsKey.MICROSOFT_GRAPH,
    "whatsapp": SettingsKey.WHATSAPP,
    "hris-database": SettingsKey.HRIS_DATABASE,
    "hris-schedule": SettingsKey.HRIS_SCHEDULE,
}


@router.get("", response_model=AllSettingsResponse)
async def get_all_settings(
    current_user: Annotated[AppUser, Depends(get_current_user)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> AllSettingsResponse:
    """Every settings document with its version. Secrets are masked."""
    return await service.get_all()


# =============================================================================
# Departments
# =============================================================================


@router.get("/departments", response_model=list[DepartmentResponse])
async def list_departments(
    current_user: Annotated[AppUser, Depends(get_current_user)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> list[DepartmentResponse]:
    """List departments."""
    return await service.list_departments()


@router.put("/departments", response_model=list[DepartmentResponse])
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def replace_departments(
    request: Request,
    body: DepartmentsReplace,
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> list[DepartmentResponse]:
    """Replace the department list. Refused when a removed department is in use."""
    return await service.replace_departments(body, current_user, request)


@router.post("/departments", response_model=DepartmentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def create_department(
    request: Request,
    body: DepartmentCreate,
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> DepartmentResponse:
    """Create a department."""
    return await service.create_department(body, current_user, request)


@router.put("/departments/{department_id}", response_model=DepartmentResponse)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def update_department(
    request: Request,
    department_id: UUID,
    body: DepartmentUpdate,
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> DepartmentResponse:
    """Rename or recode a department. Hires follow a rename."""
    return await service.update_department(department_id, body, current_user, request)


@router.delete("/departments/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def delete_department(
    request: Request,
    department_id: UUID,
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> None:
    """Delete a department that no hire uses."""
    await service.delete_department(department_id, current_user, request)


# =============================================================================
# License types
# =============================================================================


@router.get("/license-types", response_model=list[LicenseTypeResponse])
async def list_license_types(
    current_user: Annotated[AppUser, Depends(get_current_user)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> list[LicenseTypeResponse]:
    """List license types."""
    return await service.list_license_types()


@router.post("/license-types", response_model=LicenseTypeResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def create_license_type(
    request: Request,
    body: LicenseTypeCreate,
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> LicenseTypeResponse:
    """Create a license type."""
    return await service.create_license_type(body, current_user, request)


@router.put("/license-types/{license_type_id}", response_model=LicenseTypeResponse)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def update_license_type(
    request: Request,
    license_type_id: UUID,
    body: LicenseTypeUpdate,
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> LicenseTypeResponse:
    """Update a license type. Hires follow a rename."""
    return await service.update_license_type(license_type_id, body, current_user, request)


@router.delete("/license-types/{license_type_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def delete_license_type(
    request: Request,
    license_type_id: UUID,
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> None:
    """Delete a license type that no hire uses."""
    await service.delete_license_type(license_type_id, current_user, request)


# =============================================================================
# Active Directory connection test
# =============================================================================


@router.post("/active-directory/test-connection", response_model=ConnectionTestResponse)
@limiter.limit(INTEGRATION_TEST_LIMIT)
async def test_active_directory_connection(
    request: Request,
    current_user: Annotated[AppUser, Depends(require_admin)],
    directory_service: Annotated[DirectoryService, Depends(get_directory_service)],
    body: DirectoryTestRequest | None = None,
) -> ConnectionTestResponse:
    """Bind with the submitted settings, or the stored ones when none are sent."""
    candidate = body.settings if body else None
    return await directory_service.test_connection(candidate, current_user, request)


# =============================================================================
# Versioned settings documents
# =============================================================================


@router.get("/{concern}", response_model=VersionedSetting[Any])
async def get_concern(
    concern: str,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> VersionedSetting[Any]:
    """One settings document with its version."""
    key = CONCERN_SLUGS.get(concern)
    if key is None:
        raise NotFoundError("Setting not found", {"concern": concern})
    return await service.get_concern(key)


@router.put("/account-statuses", response_model=VersionedSetting[Any])
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def update_account_statuses(
    request: Request,
    body: VersionedUpdate[AccountStatusSettings],
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> VersionedSetting[Any]:
    """Replace the allowed account creation statuses."""
    return await service.update_concern(SettingsKey.ACCOUNT_STATUSES, body.value, body.version, current_user, request)


@router.put("/mailing-lists", response_model=VersionedSetting[Any])
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def update_mailing_lists(
    request: Request,
    body: MailingListsUpdate,
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> VersionedSetting[Any]:
    """Replace the mailing-list catalog."""
    return await service.update_mailing_lists(body, current_user, request)


@router.put("/active-directory", response_model=VersionedSetting[Any])
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def update_active_directory(
    request: Request,
    body: VersionedUpdate[ActiveDirectorySettings],
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> VersionedSetting[Any]:
    """Replace the Active Directory block. A masked password keeps the stored one."""
    return await service.update_concern(SettingsKey.ACTIVE_DIRECTORY, body.value, body.version, current_user, request)


@router.put("/exchange-online", response_model=VersionedSetting[Any])
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def update_exchange_online(
    request: Request,
    body: VersionedUpdate[ExchangeOnlineSettings],
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> VersionedSetting[Any]:
    """Replace the Exchange Online block."""
    return await service.update_concern(SettingsKey.EXCHANGE_ONLINE, body.value, body.version, current_user, request)


@router.put("/microsoft-graph", response_model=VersionedSetting[Any])
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def update_microsoft_graph(
    request: Request,
    body: VersionedUpdate[MicrosoftGraphSettings],
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> VersionedSetting[Any]:
    """Replace the Microsoft Graph block. A masked client secret keeps the stored one."""
    return await service.update_concern(SettingsKey.MICROSOFT_GRAPH, body.value, body.version, current_user, request)


@router.put("/whatsapp", response_model=VersionedSetting[Any])
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def update_whatsapp(
    request: Request,
    body: VersionedUpdate[WhatsAppSettings],
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> VersionedSetting[Any]:
    """Replace the WhatsApp gateway block."""
    return await service.update_concern(SettingsKey.WHATSAPP, body.value, body.version, current_user, request)


@router.put("/hris-database", response_model=VersionedSetting[Any])
@limiter.limit(SENSITIVE_OPERATION_LIMIT)
async def update_hris_database(
    request: Request,
    body: VersionedUpdate[HrisDatabaseSettings],
    current_user: Annotated[AppUser, Depends(require_admin)],
    service: Annotated[SettingsService, Depends(get_settings_service)],
) -> VersionedSetting[Any]:
    """Replace the HRIS database block. A masked password keeps the stored one."""
    return await service.update_concern(SettingsKey.HRIS_DATABASE, body.value, body.version, current_user, request)
