"""Domain-specific exceptions for the onboarding API.

These exceptions provide a clean separation between service-layer errors
and HTTP responses, avoiding string matching in routers.
"""

from typing import Any


class OnboardingAPIError(Exception):
    """Base exception for all onboarding API errors."""

    def __init__(self, message: str = "An error occurred", details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# =============================================================================
# Resource Not Found Errors (404)
# =============================================================================


class NotFoundError(OnboardingAPIError):
    """Base class for resource not found errors."""

    pass


class HireNotFoundError(NotFoundError):
    """Raised when a hire record cannot be found."""

    def __init__(self, hire_id: str | None = None) -> None:
        details = {"hire_id": str(hire_id)} if hire_id else {}
        super().__init__("Hire not found", details)


class UserNotFoundError(NotFoundError):
    """Raised when an application user cannot be found."""

    def __init__(self, user_id: str | None = None) -> None:
        details = {"user_id": str(user_id)} if user_id else {}
        super().__init__("User not found", details)


class DepartmentNotFoundError(NotFoundError):
    """Raised when a department cannot be found."""

    def __init__(self, department_id: str | None = None) -> None:
        details = {"department_id": str(department_id)} if department_id else {}
        super().__init__("Department not found", details)


class LicenseTypeNotFoundError(NotFoundError):
    """Raised when a license type cannot be found."""

    def __init__(self, license_type_id: str | None = None) -> None:
        details = {"license_type_id": str(license_type_id)} if license_type_id else {}
        super().__init__("License type not found", details)


class DocumentNotFoundError(NotFoundError):
    """Raised when a hire has no stored SRF document."""

    def __init__(self) -> None:
        super().__init__("SRF document not found")


# =============================================================================
# Conflict Errors (409)
# =============================================================================


class ConflictError(OnboardingAPIError):
    """Base class for resource conflict errors."""

    pass


class UserAlreadyExistsError(ConflictError):
    """Raised when registering a username that is taken."""

    def __init__(self, username: str | None = None) -> None:
        details = {"username": username} if username else {}
        super().__init__("Username already exists", details)


class SettingsVersionConflictError(ConflictError):
    """Raised when a settings write carries a stale version."""

    def __init__(self, key: str, expected: int, current: int) -> None:
        super().__init__(
            "Settings were modified by another request",
            {"key": key, "expected_version": expected, "current_version": current},
        )
        self.key = key
        self.current_version = current


class DepartmentInUseError(ConflictError):
    """Raised when deleting departments that hires still reference."""

    def __init__(self, names: list[str]) -> None:
        super().__init__(
            "Cannot delete departments that are in use",
            {"departments": names},
        )


class LicenseTypeInUseError(ConflictError):
    """Raised when deleting a license type that hires still reference."""

    def __init__(self, name: str) -> None:
        super().__init__("Cannot delete license type that is in use", {"name": name})


class LicenseTypeAlreadyExistsError(ConflictError):
    """Raised when creating a duplicate license type."""

    def __init__(self, name: str) -> None:
        super().__init__("License type already exists", {"name": name})


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(OnboardingAPIError):
    """Base class for validation errors."""

    pass


class InvalidLicenseTypeError(ValidationError):
    """Raised when a hire references an unknown license type."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown license type: {name}", {"microsoft_365_license": name})


class InvalidDocumentError(ValidationError):
    """Raised when an uploaded document fails validation."""

    pass


# =============================================================================
# Permission Errors (403)
# =============================================================================


class CannotDeleteSelfError(OnboardingAPIError):
    """Raised when a user tries to delete themselves."""

    def __init__(self) -> None:
        super().__init__("Cannot delete your own account")


class AccountPendingApprovalError(OnboardingAPIError):
    """Raised when an unapproved support user logs in."""

    def __init__(self) -> None:
        super().__init__("Your account is pending approval by an admin")


class InvalidCredentialsError(OnboardingAPIError):
    """Raised on a failed login."""

    def __init__(self) -> None:
        super().__init__("Invalid credentials")


# =============================================================================
# Integration Errors (external systems)
# =============================================================================


class IntegrationError(OnboardingAPIError):
    """Base class for failures talking to an external system."""

    pass


class IntegrationNotEnabledError(IntegrationError):
    """Raised when an integration is used while disabled or unconfigured."""

    pass


class DirectoryError(IntegrationError):
    """Raised when a directory (LDAP) operation fails."""

    pass


class DirectoryBindError(DirectoryError):
    """Raised when binding to the directory fails.

    ``kind`` is one of ``invalid_credentials``, ``account_restricted``,
    ``server_unreachable``, ``invalid_username`` or ``unknown``.
    """

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message, {"error_kind": kind})
        self.kind = kind


class GraphError(IntegrationError):
    """Raised when a Microsoft Graph call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        details = {"status_code": status_code} if status_code else {}
        super().__init__(message, details)
        self.status_code = status_code


class WhatsAppGatewayError(IntegrationError):
    """Raised when the WhatsApp gateway rejects or fails a send."""

    pass


class HrisError(IntegrationError):
    """Raised when the HRIS employee database cannot be read."""

    pass
