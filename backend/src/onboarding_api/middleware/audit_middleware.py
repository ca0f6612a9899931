"""Request audit logging middleware."""

import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from onboarding_api.security.rate_limit import get_real_client_ip

logger = logging.getLogger(__name__)


class AuditMiddleware(BaseHTTPMiddleware):
    """Logs every mutating request with its status and client IP.

    The persistent audit trail is written by the services; this only
    feeds the application log.
    """

    # Methods that modify data
    AUDIT_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

    # Paths to exclude from audit logging
    EXCLUDED_PATHS = {
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json",
        "/api/v1/auth/verify-token",
    }

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        if request.method not in self.AUDIT_METHODS or request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = get_real_client_ip(request)

        # Services read these when writing audit rows
        request.state.client_ip = client_ip
        request.state.user_agent = request.headers.get("user-agent", "")

        response = await call_next(request)

        level = logging.INFO if response.status_code < 400 else logging.WARNING
        logger.log(
            level,
            "Audit: %s %s status=%s ip=%s",
            request.method,
            request.url.path,
            response.status_code,
            client_ip,
        )
        return response
