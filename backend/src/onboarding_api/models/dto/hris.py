"""HRIS synchronisation DTOs."""

from typing import Literal

from pydantic import BaseModel, Field

from onboarding_api.models.dto.settings import HrisDatabaseSettings


class HrisEmployee(BaseModel):
    """One staff row of the HRIS employee table."""

    employee_id: str
    employee_name: str | None = None
    gender: str | None = None
    department: str | None = None
    position_title: str | None = None
    phone: str | None = None
    supervisor_id: str | None = None


class DirectoryEmployee(BaseModel):
    """Directory user with the attributes the HRIS sync compares."""

    dn: str
    sam_account_name: str = ""
    display_name: str = ""
    name: str = ""
    employee_id: str = ""
    department: str = ""
    title: str = ""
    manager: str = ""
    mobile: str = ""


class DirectoryChange(BaseModel):
    """Attribute replacements for one directory entry, plus an optional move."""

    dn: str
    attributes: dict[str, str]
    target_ou: str | None = None


class CurrentAttributes(BaseModel):
    """Directory values before the sync."""

    department: str = ""
    title: str = ""
    manager: str = ""
    mobile: str = ""


class HrisSyncResult(BaseModel):
    """Planned or applied changes for one employee."""

    employee_id: str
    display_name: str
    current: CurrentAttributes
    changes: dict[str, str]
    action: Literal["Test", "Updated", "ID Reassigned", "Failed"]
    error: str | None = None


class HrisSyncResponse(BaseModel):
    """Outcome of a dry run or a real sync."""

    success: bool = True
    test: bool
    results: list[HrisSyncResult]
    applied: int = 0
    failed: int = 0


class HrisManualSyncRequest(BaseModel):
    """Sync only the listed employees."""

    employee_ids: list[str] = Field(min_length=1, max_length=500)


class HrisScheduleUpdate(BaseModel):
    """Enable or disable the scheduled sync. A missing frequency keeps the current one."""

    enabled: bool
    frequency: Literal["daily", "weekly", "monthly"] | None = None


class HrisTestRequest(BaseModel):
    """Unsaved HRIS settings to try. A masked password uses the stored one."""

    settings: HrisDatabaseSettings


class DirectoryQueryResponse(BaseModel):
    """Directory users under the configured base DN."""

    success: bool = True
    base_dn: str
    count: int
    users: list[DirectoryEmployee]
