"""Bearer token issuing and the authentication dependencies."""

from datetime import datetime, timedelta, timezone
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.config import get_settings
from onboarding_api.database import get_db
from onboarding_api.models.domain.app_user import AppUser, UserRole
from onboarding_api.repositories.user_repository import UserRepository

bearer_scheme = HTTPBearer(auto_error=False)

INVALID_TOKEN = "Invalid or expired token"


def _unauthorized(detail: str = INVALID_TOKEN) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def token_lifetime_seconds() -> int:
    """Lifetime of newly issued tokens in seconds."""
    return get_settings().jwt_expiration_hours * 3600


def create_access_token(user_id: UUID, username: str, role: UserRole, approved: bool = True) -> str:
    """Issue a signed token carrying the caller's identity, role and approval.

    Args:
        user_id: User UUID
        username: Username
        role: User role
        approved: Whether an admin approved the account

    Returns:
        Encoded JWT
    """
    settings = get_settings()
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "username": username,
        "role": role.value,
        "approved": approved,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=token_lifetime_seconds()),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """Verified claims of ``token``.

    Signature, expiry, issuer and audience are all checked.

    Raises:
        HTTPException: 401 if any check fails
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as e:
        raise _unauthorized() from e


def user_from_payload(payload: dict[str, Any]) -> AppUser:
    """Build the caller from verified claims.

    Raises:
        HTTPException: 401 if a required claim is missing or malformed
    """
    try:
        return AppUser(
            id=UUID(payload["sub"]),
            username=payload["username"],
            role=UserRole(payload["role"]),
            approved=bool(payload.get("approved", False)),
        )
    except (KeyError, ValueError) as e:
        raise _unauthorized() from e


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
) -> AppUser:
    """Authenticated caller, reloaded from the stored account.

    Role and approval are read from the database rather than the token
    claims. A deleted account gets 401, an unapproved non-admin 403.
    """
    if credentials is None:
        raise _unauthorized("Authentication required")

    claims = user_from_payload(decode_token(credentials.credentials))
    stored = await UserRepository(db).get_by_id(claims.id)
    if stored is None:
        raise _unauthorized()

    user = AppUser.model_validate(stored)
    if not user.approved and not user.is_admin():
        raise _forbidden("Your account is pending approval by an admin")
    return user


async def require_admin(current_user: Annotated[AppUser, Depends(get_current_user)]) -> AppUser:
    if not current_user.is_admin():
        raise _forbidden("Admin access required")
    return current_user
