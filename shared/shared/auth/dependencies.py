"""
Bearer-token authentication for service routes.

Access tokens are issued by the external auth provider (HS256, shared
secret); services only verify them and turn the claims into a CurrentUser.
A token that fails verification is treated as absent, so optional routes
degrade to anonymous and required routes answer 401.
"""
from collections.abc import Callable
from functools import lru_cache
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from shared.auth.config import AuthSettings
from shared.constants import Role
from shared.models.user import CurrentUser

http_bearer = HTTPBearer(auto_error=False)


@lru_cache
def get_auth_settings() -> AuthSettings:
    return AuthSettings()


def _decode_token(token: str, settings: AuthSettings) -> dict:
    return jwt.decode(
        token,
        settings.secret,
        algorithms=[settings.algorithm],
        issuer=settings.issuer,
        audience=settings.audience,
    )


def _payload_to_user(payload: dict) -> CurrentUser:
    user_id = payload.get("sub")
    if not user_id:
        raise ValueError("Missing sub in token")
    # Unknown role names are dropped rather than rejecting the whole token.
    roles = [Role(r) for r in payload.get("roles") or [] if r in Role._value2member_map_]
    return CurrentUser(id=UUID(user_id), email=payload.get("email") or "", roles=roles)


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    settings: AuthSettings = Depends(get_auth_settings),
) -> CurrentUser | None:
    if not credentials or not credentials.credentials:
        return None
    try:
        return _payload_to_user(_decode_token(credentials.credentials, settings))
    except (JWTError, ValueError):
        return None


async def get_current_user_required(
    user: CurrentUser | None = Depends(get_current_user_optional),
) -> CurrentUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_roles(*roles: Role, detail: str = "Insufficient permissions.") -> Callable:
    """Dependency factory: 403 unless the caller holds at least one of ``roles``."""

    async def _check(user: CurrentUser = Depends(get_current_user_required)) -> CurrentUser:
        if not user.has_any_role(*roles):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return user

    return _check
