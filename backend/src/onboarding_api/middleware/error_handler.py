"""Exception handlers mapping domain errors to responses without leaking internals."""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from onboarding_api.config import get_settings
from onboarding_api.exceptions import (
    AccountPendingApprovalError,
    CannotDeleteSelfError,
    ConflictError,
    DirectoryBindError,
    GraphError,
    IntegrationError,
    IntegrationNotEnabledError,
    InvalidCredentialsError,
    NotFoundError,
    OnboardingAPIError,
    SettingsVersionConflictError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Generic text per status, used whenever a detail is not known to be safe
SAFE_ERROR_MESSAGES = {
    400: "Invalid request",
    401: "Authentication required",
    403: "Access denied",
    404: "Resource not found",
    405: "Method not allowed",
    409: "Conflict with existing resource",
    413: "File too large",
    422: "Invalid input data",
    429: "Too many requests",
    500: "Internal server error",
    502: "Upstream service error",
    503: "Service temporarily unavailable",
}

# Case-insensitive fragments of details that may be returned verbatim
ALLOWED_ERROR_PATTERNS = (
    "invalid credentials",
    "authentication required",
    "access denied",
    "admin access required",
    "invalid or expired token",
    "pending approval by an admin",
    "username and password are required",
    "username already exists",
    "not found",
)

MAX_VALIDATION_MESSAGES = 3


def _cors_headers(request: Request) -> dict[str, str]:
    """Echo an allowed Origin; error responses bypass the CORS middleware."""
    origin = request.headers.get("origin")
    if not origin or origin not in get_settings().cors_origins_list:
        return {}
    return {"Access-Control-Allow-Origin": origin, "Access-Control-Allow-Credentials": "true"}


def is_safe_error_message(message: str) -> bool:
    lowered = message.lower()
    return any(pattern in lowered for pattern in ALLOWED_ERROR_PATTERNS)


def summarize_validation_errors(errors: list[Any]) -> str | None:
    """``field: message`` for the first few errors, skipping private fields."""
    summaries = []
    for error in errors:
        if not isinstance(error, dict):
            continue
        field = (error.get("loc") or ["field"])[-1]
        if isinstance(field, str) and not field.startswith("_"):
            summaries.append(f"{field}: {error.get('msg', 'Invalid value')}")
    return "; ".join(summaries[:MAX_VALIDATION_MESSAGES]) or None


def sanitize_error_detail(detail: Any, status_code: int) -> str:
    """``detail`` if it is safe to show, otherwise the generic text for ``status_code``."""
    if isinstance(detail, str) and is_safe_error_message(detail):
        return detail
    if isinstance(detail, list):
        summary = summarize_validation_errors(detail)
        if summary:
            return summary
    return SAFE_ERROR_MESSAGES.get(status_code, "Request failed")


def sanitize_error_for_audit(exc: Exception) -> dict[str, str]:
    """Error fields safe to store in the audit trail.

    Domain errors keep their message; anything else is reduced to its type.
    """
    if isinstance(exc, OnboardingAPIError):
        return {"error_type": type(exc).__name__, "error": exc.message}
    return {"error_type": type(exc).__name__, "error_code": "UNEXPECTED_ERROR"}


# First match wins
DOMAIN_STATUS_RULES: tuple[tuple[tuple[type[OnboardingAPIError], ...], int], ...] = (
    ((NotFoundError,), status.HTTP_404_NOT_FOUND),
    ((ConflictError,), status.HTTP_409_CONFLICT),
    (
        (ValidationError, IntegrationNotEnabledError, DirectoryBindError, CannotDeleteSelfError),
        status.HTTP_400_BAD_REQUEST,
    ),
    ((InvalidCredentialsError,), status.HTTP_401_UNAUTHORIZED),
    ((AccountPendingApprovalError,), status.HTTP_403_FORBIDDEN),
)

# Graph rejecting our credentials or permissions is a configuration problem
GRAPH_CLIENT_ERRORS = frozenset({400, 401, 403})


def status_for_domain_error(exc: OnboardingAPIError) -> int:
    """HTTP status for a domain exception."""
    for error_types, status_code in DOMAIN_STATUS_RULES:
        if isinstance(exc, error_types):
            return status_code
    if isinstance(exc, GraphError) and exc.status_code in GRAPH_CLIENT_ERRORS:
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, IntegrationError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _respond(request: Request, status_code: int, content: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=_cors_headers(request))


async def domain_exception_handler(request: Request, exc: OnboardingAPIError) -> JSONResponse:
    """``{success: false, message}`` plus the fields a client needs to recover."""
    status_code = status_for_domain_error(exc)
    content: dict[str, Any] = {"success": False, "message": exc.message, "detail": exc.message}

    if isinstance(exc, SettingsVersionConflictError):
        content["current_version"] = exc.current_version
    elif isinstance(exc, DirectoryBindError):
        content["error_kind"] = exc.kind
    elif isinstance(exc, ConflictError) and exc.details:
        content.update(exc.details)

    if status_code >= 500:
        logger.warning("Integration error for %s: %s", request.url.path, exc.message)
    return _respond(request, status_code, content)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail if get_settings().debug else sanitize_error_detail(exc.detail, exc.status_code)
    return _respond(request, exc.status_code, {"detail": detail})


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    logger.warning("Validation error for %s: %s", request.url.path, errors)
    code = status.HTTP_422_UNPROCESSABLE_ENTITY
    detail = errors if get_settings().debug else sanitize_error_detail(errors, code)
    return _respond(request, code, {"detail": detail})


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500 without the exception text, except in debug mode."""
    logger.error("Unhandled exception for %s: %s", request.url.path, exc, exc_info=True)
    content: dict[str, Any] = {"detail": SAFE_ERROR_MESSAGES[500]}
    if get_settings().debug:
        content = {"detail": str(exc), "type": type(exc).__name__}
    return _respond(request, status.HTTP_500_INTERNAL_SERVER_ERROR, content)


def _integrity_response(exc: IntegrityError) -> tuple[int, str] | None:
    text = str(exc.orig if exc.orig is not None else exc).lower()
    if "unique" in text or "duplicate" in text:
        return status.HTTP_409_CONFLICT, "Resource already exists"
    if "foreign key" in text:
        return status.HTTP_400_BAD_REQUEST, "Referenced resource not found"
    return None


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Database errors without statement text or connection details."""
    logger.error("Database error for %s: %s", request.url.path, exc, exc_info=True)

    if isinstance(exc, IntegrityError):
        mapped = _integrity_response(exc)
        if mapped is not None:
            return _respond(request, mapped[0], {"detail": mapped[1]})

    content: dict[str, Any] = {"detail": "Database error occurred"}
    if get_settings().debug:
        content["type"] = type(exc).__name__
    return _respond(request, status.HTTP_500_INTERNAL_SERVER_ERROR, content)
