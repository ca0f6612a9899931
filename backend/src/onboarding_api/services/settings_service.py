"""Settings service for versioned integration settings, departments and license types."""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from fastapi import Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.exceptions import (
    ConflictError,
    DepartmentInUseError,
    DepartmentNotFoundError,
    LicenseTypeAlreadyExistsError,
    LicenseTypeInUseError,
    LicenseTypeNotFoundError,
)
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.dto.settings import (
    MASKED_SECRET,
    AccountStatusSettings,
    ActiveDirectorySettings,
    AllSettingsResponse,
    DepartmentCreate,
    DepartmentResponse,
    DepartmentsReplace,
    DepartmentUpdate,
    ExchangeOnlineSettings,
    HrisDatabaseSettings,
    HrisScheduleSettings,
    LicenseTypeCreate,
    LicenseTypeResponse,
    LicenseTypeUpdate,
    MailingListCatalog,
    MailingListEntry,
    MailingListsUpdate,
    MicrosoftGraphSettings,
    VersionedSetting,
    WhatsAppSettings,
    default_mailing_lists,
)
from onboarding_api.models.orm.settings import SettingsORM
from onboarding_api.repositories.department_repository import DepartmentRepository
from onboarding_api.repositories.hire_repository import HireRepository
from onboarding_api.repositories.license_type_repository import LicenseTypeRepository
from onboarding_api.repositories.settings_repository import SettingsRepository
from onboarding_api.security.encryption import get_encryption_service
from onboarding_api.services.audit_service import AuditAction, AuditService, ResourceType
from onboarding_api.utils.secure_logging import log_error

logger = logging.getLogger(__name__)


class SettingsKey:
    """Keys of the independently versioned settings documents."""

    ACCOUNT_STATUSES = "account_statuses"
    MAILING_LISTS = "mailing_lists"
    ACTIVE_DIRECTORY = "active_directory"
    EXCHANGE_ONLINE = "exchange_online"
    MICROSOFT_GRAPH = "microsoft_graph"
    WHATSAPP = "whatsapp"
    HRIS_DATABASE = "hris_database"
    HRIS_SCHEDULE = "hris_schedule"


SETTINGS_MODELS: dict[str, type[BaseModel]] = {
    SettingsKey.ACCOUNT_STATUSES: AccountStatusSettings,
    SettingsKey.ACTIVE_DIRECTORY: ActiveDirectorySettings,
    SettingsKey.EXCHANGE_ONLINE: ExchangeOnlineSettings,
    SettingsKey.MICROSOFT_GRAPH: MicrosoftGraphSettings,
    SettingsKey.WHATSAPP: WhatsAppSettings,
    SettingsKey.HRIS_DATABASE: HrisDatabaseSettings,
    SettingsKey.HRIS_SCHEDULE: HrisScheduleSettings,
}
ALL_KEYS = [SettingsKey.MAILING_LISTS, *SETTINGS_MODELS]

# Secret field per document; stored as "<field>_encrypted" (hex AES-GCM)
SECRET_FIELDS = {
    SettingsKey.ACTIVE_DIRECTORY: "password",
    SettingsKey.MICROSOFT_GRAPH: "client_secret",
    SettingsKey.HRIS_DATABASE: "password",
}
# Server-maintained fields a client write never clears
SERVER_FIELDS = ("last_connection_test",)


class SettingsService:
    """Single accessor for every settings document.

    Writes carry the version the client read; a stale version raises
    ``SettingsVersionConflictError`` and leaves the stored document unchanged.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session."""
        self.session = session
        self.settings_repo = SettingsRepository(session)
        self.department_repo = DepartmentRepository(session)
        self.license_type_repo = LicenseTypeRepository(session)
        self.hire_repo = HireRepository(session)
        self.audit_service = AuditService(session)
        self.encryption = get_encryption_service()

    # Storage <-> model conversion

    def _to_storage(self, key: str, model: BaseModel, existing: dict[str, Any] | None) -> dict[str, Any]:
        """Serialize a settings model, encrypting its secret.

        A masked, empty or missing secret keeps the stored ciphertext.
        """
        data = model.model_dump(mode="json")
        existing = existing or {}

        field = SECRET_FIELDS.get(key)
        if field:
            secret = data.pop(field, None)
            encrypted_field = f"{field}_encrypted"
            if secret and secret != MASKED_SECRET:
                data[encrypted_field] = self.encryption.encrypt_string(secret).hex()
            elif existing.get(encrypted_field):
                data[encrypted_field] = existing[encrypted_field]

        for server_field in SERVER_FIELDS:
            if server_field in data and data[server_field] is None and existing.get(server_field):
                data[server_field] = existing[server_field]
        return data

    def _from_storage(self, key: str, stored: dict[str, Any] | None, reveal: bool) -> BaseModel:
        """Build the settings model, with the secret decrypted or masked."""
        data = dict(stored or {})
        field = SECRET_FIELDS.get(key)
        if field:
            encrypted = data.pop(f"{field}_encrypted", None)
            data[field] = None
            if encrypted:
                data[field] = self._decrypt(key, encrypted) if reveal else MASKED_SECRET
        return SETTINGS_MODELS[key].model_validate(data)

    def _decrypt(self, key: str, encrypted_hex: str) -> str | None:
        try:
            return self.encryption.decrypt_string(bytes.fromhex(encrypted_hex))
        except ValueError as e:
            log_error(logger, f"Failed to decrypt stored secret for {key}", e)
            return None

    def _versioned(self, key: str, value: Any, record: SettingsORM | None) -> VersionedSetting[Any]:
        return VersionedSetting[Any](
            key=key,
            value=value,
            version=record.version if record else 0,
            updated_at=record.updated_at if record else None,
        )

    # Versioned documents

    async def get_concern(self, key: str) -> VersionedSetting[Any]:
        """One settings document with its version. Secrets are masked.

        Raises:
            KeyError: If ``key`` is not a known settings document
        """
        if key not in ALL_KEYS:
            raise KeyError(key)

        record = await self.settings_repo.get_record(key)
        if key == SettingsKey.MAILING_LISTS:
            value = record.value if record else default_mailing_lists().model_dump(mode="json")
        else:
            value = self._from_storage(key, record.value if record else None, reveal=False).model_dump(mode="json")
        return self._versioned(key, value, record)

    async def get_all(self) -> AllSettingsResponse:
        """Every settings document with its version."""
        return AllSettingsResponse(settings={key: await self.get_concern(key) for key in ALL_KEYS})

    async def update_concern(
        self,
        key: str,
        value: BaseModel,
        version: int,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> VersionedSetting[Any]:
        """Replace a settings document if ``version`` is still current.

        Returns:
            The stored document (secrets masked) with its new version
        """
        record = await self.settings_repo.get_record(key)
        data = self._to_storage(key, value, record.value if record else None)
        row = await self.settings_repo.set(key, data, expected_version=version)

        await self.audit_service.log(
            action=AuditAction.SETTING_UPDATE,
            resource_type=ResourceType.SETTING,
            resource_id=key,
            user=user,
            request=request,
            details={"key": key, "version": row.version, "fields": sorted(value.model_fields_set)},
        )
        await self.session.commit()
        logger.info("Settings %s updated to version %s", key, row.version)

        masked = self._from_storage(key, row.value, reveal=False).model_dump(mode="json")
        return self._versioned(key, masked, row)

    async def update_mailing_lists(
        self,
        update: MailingListsUpdate,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> VersionedSetting[Any]:
        """Store the mailing lists in the shape the client sent (flat list or catalog)."""
        if isinstance(update.value, list):
            value: Any = [entry.model_dump(mode="json") for entry in update.value]
        else:
            value = update.value.model_dump(mode="json")

        row = await self.settings_repo.set(SettingsKey.MAILING_LISTS, value, expected_version=update.version)
        await self.audit_service.log(
            action=AuditAction.SETTING_UPDATE,
            resource_type=ResourceType.SETTING,
            resource_id=SettingsKey.MAILING_LISTS,
            user=user,
            request=request,
            details={"key": SettingsKey.MAILING_LISTS, "version": row.version},
        )
        await self.session.commit()
        return self._versioned(SettingsKey.MAILING_LISTS, row.value, row)

    async def record_connection_test(self, key: str) -> None:
        """Stamp ``last_connection_test`` after a successful test."""
        record = await self.settings_repo.get_record(key)
        data = dict(record.value) if record else {}
        data["last_connection_test"] = datetime.now(timezone.utc).isoformat()
        await self.settings_repo.set(key, data)
        await self.session.commit()

    # Typed accessors for services (secrets decrypted)

    async def _load(self, key: str, reveal: bool = True) -> Any:
        return self._from_storage(key, await self.settings_repo.get(key), reveal=reveal)

    async def get_account_statuses(self) -> list[str]:
        """Allowed account creation statuses."""
        return (await self._load(SettingsKey.ACCOUNT_STATUSES)).statuses

    async def get_active_directory(self) -> ActiveDirectorySettings:
        """Active Directory settings with the bind password decrypted."""
        return await self._load(SettingsKey.ACTIVE_DIRECTORY)

    async def get_exchange_online(self) -> ExchangeOnlineSettings:
        """Exchange Online settings."""
        return await self._load(SettingsKey.EXCHANGE_ONLINE)

    async def get_microsoft_graph(self) -> MicrosoftGraphSettings:
        """Graph settings with the client secret decrypted."""
        return await self._load(SettingsKey.MICROSOFT_GRAPH)

    async def get_whatsapp(self) -> WhatsAppSettings:
        """WhatsApp gateway settings."""
        return await self._load(SettingsKey.WHATSAPP)

    async def get_hris_database(self) -> HrisDatabaseSettings:
        """HRIS database settings with the password decrypted."""
        return await self._load(SettingsKey.HRIS_DATABASE)

    async def get_hris_schedule(self) -> HrisScheduleSettings:
        """HRIS sync schedule."""
        return await self._load(SettingsKey.HRIS_SCHEDULE)

    async def save_hris_schedule(self, schedule: HrisScheduleSettings) -> HrisScheduleSettings:
        """Store the schedule in the current transaction. Server-maintained, so unversioned."""
        row = await self.settings_repo.set(SettingsKey.HRIS_SCHEDULE, schedule.model_dump(mode="json"))
        return HrisScheduleSettings.model_validate(row.value)

    async def get_mailing_list_entries(self) -> list[MailingListEntry]:
        """Every configured mailing list, flattened across catalog sections."""
        stored = await self.settings_repo.get(SettingsKey.MAILING_LISTS)
        if stored is None:
            catalog = default_mailing_lists()
        elif isinstance(stored, list):
            return [MailingListEntry.model_validate(item) for item in stored]
        else:
            catalog = MailingListCatalog.model_validate(stored)
        return [*catalog.mandatory, *catalog.optional, *catalog.role_based]

    async def resolve_mailing_lists(self, identifiers: list[str]) -> list[str]:
        """Map list ids or names to group e-mail addresses.

        Identifiers that already look like e-mail addresses pass through.
        Unknown identifiers are dropped with a warning. Order is kept and
        duplicates removed.
        """
        entries = await self.get_mailing_list_entries()
        lookup: dict[str, str] = {}
        for entry in entries:
            lookup[entry.id.lower()] = entry.email
            lookup[entry.name.lower()] = entry.email

        emails: list[str] = []
        for identifier in identifiers:
            ident = identifier.strip()
            email = ident if "@" in ident else lookup.get(ident.lower())
            if email is None:
                logger.warning("Unknown mailing list identifier: %s", ident)
                continue
            if email not in emails:
                emails.append(email)
        return emails

    # Departments

    async def list_departments(self) -> list[DepartmentResponse]:
        """All departments ordered by name."""
        return [DepartmentResponse.model_validate(d) for d in await self.department_repo.list_ordered()]

    async def create_department(
        self, data: DepartmentCreate, user: AppUser | None = None, request: Request | None = None
    ) -> DepartmentResponse:
        """Create a department.

        Raises:
            ConflictError: If the name is taken
        """
        if await self.department_repo.get_by_name(data.name):
            raise ConflictError("Department already exists", {"name": data.name})

        department = await self.department_repo.create(name=data.name.strip(), code=data.code.strip())
        await self.audit_service.log(
            action=AuditAction.DEPARTMENT_CREATE,
            resource_type=ResourceType.DEPARTMENT,
            resource_id=department.id,
            user=user,
            request=request,
            details={"name": department.name, "code": department.code},
        )
        await self.session.commit()
        return DepartmentResponse.model_validate(department)

    async def update_department(
        self,
        department_id: UUID,
        data: DepartmentUpdate,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> DepartmentResponse:
        """Update a department. A rename is applied to existing hires too."""
        department = await self.department_repo.get_by_id(department_id)
        if department is None:
            raise DepartmentNotFoundError(str(department_id))

        old_name = department.name
        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in updates and updates["name"].lower() != old_name.lower():
            if await self.department_repo.get_by_name(updates["name"]):
                raise ConflictError("Department already exists", {"name": updates["name"]})

        department = await self.department_repo.update(department_id, **updates)
        if department.name != old_name:
            await self.hire_repo.rename_department(old_name, department.name)

        await self.audit_service.log(
            action=AuditAction.DEPARTMENT_UPDATE,
            resource_type=ResourceType.DEPARTMENT,
            resource_id=department_id,
            user=user,
            request=request,
            details={"old_name": old_name, **updates},
        )
        await self.session.commit()
        return DepartmentResponse.model_validate(department)

    async def delete_department(
        self, department_id: UUID, user: AppUser | None = None, request: Request | None = None
    ) -> None:
        """Delete a department that no hire references."""
        department = await self.department_repo.get_by_id(department_id)
        if department is None:
            raise DepartmentNotFoundError(str(department_id))

        in_use = await self.hire_repo.departments_in_use([department.name])
        if in_use:
            raise DepartmentInUseError(in_use)

        await self.department_repo.delete(department_id)
        await self.audit_service.log(
            action=AuditAction.DEPARTMENT_DELETE,
            resource_type=ResourceType.DEPARTMENT,
            resource_id=department_id,
            user=user,
            request=request,
            details={"name": department.name},
        )
        await self.session.commit()

    async def replace_departments(
        self, data: DepartmentsReplace, user: AppUser | None = None, request: Request | None = None
    ) -> list[DepartmentResponse]:
        """Make the department table match the submitted list.

        Entries with an id update that row, entries without one are created,
        and rows missing from the list are deleted. Nothing is written when a
        department to delete is still used by a hire.
        """
        existing = {d.id: d for d in await self.department_repo.list_ordered()}
        keep_ids = {item.id for item in data.departments if item.id is not None}
        to_delete = [d for d_id, d in existing.items() if d_id not in keep_ids]

        in_use = await self.hire_repo.departments_in_use([d.name for d in to_delete])
        if in_use:
            raise DepartmentInUseError(in_use)

        names = [item.name.strip().lower() for item in data.departments]
        if len(names) != len(set(names)):
            raise ConflictError("Department names must be unique")

        for department in to_delete:
            await self.department_repo.delete(department.id)

        for item in data.departments:
            current = existing.get(item.id) if item.id is not None else None
            if current is None:
                await self.department_repo.create(name=item.name.strip(), code=item.code.strip())
                continue
            if current.name != item.name.strip():
                await self.hire_repo.rename_department(current.name, item.name.strip())
            await self.department_repo.update(current.id, name=item.name.strip(), code=item.code.strip())

        await self.audit_service.log(
            action=AuditAction.SETTING_UPDATE,
            resource_type=ResourceType.DEPARTMENT,
            user=user,
            request=request,
            details={"count": len(data.departments), "deleted": [d.name for d in to_delete]},
        )
        await self.session.commit()
        return await self.list_departments()

    # License types

    async def list_license_types(self) -> list[LicenseTypeResponse]:
        """All license types ordered by name."""
        return [LicenseTypeResponse.model_validate(t) for t in await self.license_type_repo.list_ordered()]

    async def create_license_type(
        self, data: LicenseTypeCreate, user: AppUser | None = None, request: Request | None = None
    ) -> LicenseTypeResponse:
        """Create a license type.

        Raises:
            LicenseTypeAlreadyExistsError: If the name is taken
        """
        name = data.name.strip()
        if await self.license_type_repo.get_by_name(name):
            raise LicenseTypeAlreadyExistsError(name)

        license_type = await self.license_type_repo.create(name=name, description=data.description)
        await self.audit_service.log(
            action=AuditAction.LICENSE_TYPE_CREATE,
            resource_type=ResourceType.LICENSE_TYPE,
            resource_id=license_type.id,
            user=user,
            request=request,
            details={"name": name},
        )
        await self.session.commit()
        return LicenseTypeResponse.model_validate(license_type)

    async def update_license_type(
        self,
        license_type_id: UUID,
        data: LicenseTypeUpdate,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> LicenseTypeResponse:
        """Update a license type. A rename is applied to existing hires too."""
        license_type = await self.license_type_repo.get_by_id(license_type_id)
        if license_type is None:
            raise LicenseTypeNotFoundError(str(license_type_id))

        old_name = license_type.name
        updates = data.model_dump(exclude_unset=True)
        if updates.get("name"):
            updates["name"] = updates["name"].strip()
            if updates["name"].lower() != old_name.lower() and await self.license_type_repo.get_by_name(updates["name"]):
                raise LicenseTypeAlreadyExistsError(updates["name"])
        else:
            updates.pop("name", None)

        license_type = await self.license_type_repo.update(license_type_id, **updates)
        if license_type.name != old_name:
            await self.hire_repo.rename_license(old_name, license_type.name)

        await self.audit_service.log(
            action=AuditAction.LICENSE_TYPE_UPDATE,
            resource_type=ResourceType.LICENSE_TYPE,
            resource_id=license_type_id,
            user=user,
            request=request,
            details={"old_name": old_name, **updates},
        )
        await self.session.commit()
        return LicenseTypeResponse.model_validate(license_type)

    async def delete_license_type(
        self, license_type_id: UUID, user: AppUser | None = None, request: Request | None = None
    ) -> None:
        """Delete a license type no hire is assigned."""
        license_type = await self.license_type_repo.get_by_id(license_type_id)
        if license_type is None:
            raise LicenseTypeNotFoundError(str(license_type_id))

        if await self.hire_repo.count_by_license(license_type.name) > 0:
            raise LicenseTypeInUseError(license_type.name)

        await self.license_type_repo.delete(license_type_id)
        await self.audit_service.log(
            action=AuditAction.LICENSE_TYPE_DELETE,
            resource_type=ResourceType.LICENSE_TYPE,
            resource_id=license_type_id,
            user=user,
            request=request,
            details={"name": license_type.name},
        )
        await self.session.commit()
