"""Middleware package."""

from onboarding_api.middleware.audit_middleware import AuditMiddleware
from onboarding_api.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "AuditMiddleware",
    "SecurityHeadersMiddleware",
]
