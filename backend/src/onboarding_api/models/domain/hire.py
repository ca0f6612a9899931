"""Hire domain enums."""

from enum import StrEnum


class LaptopStatus(StrEnum):
    """Laptop preparation stages."""

    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    READY = "Ready"
    DONE = "Done"


class SyncStatus(StrEnum):
    """Aggregate distribution-list sync outcome."""

    SYNCED = "Synced"
    PARTIAL = "Partial"
    FAILED = "Failed"


class AuditStatus(StrEnum):
    """Outcome recorded on a hire audit entry."""

    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


DEFAULT_ACCOUNT_STATUSES = ["Pending", "Active", "Inactive", "Suspended"]
ACTIVE_ACCOUNT_STATUS = "Active"
NO_LICENSE = "None"
