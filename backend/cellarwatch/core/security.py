from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import hmac

import jwt
from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from cellarwatch.core.config import settings
from cellarwatch.models.enums import UserRole

bearer_scheme = HTTPBearer(auto_error=False)

WRITE_ROLES = (UserRole.admin, UserRole.winemaker)


@dataclass(frozen=True)
class Principal:
    """Identity asserted by a token from the auth service."""

    subject: str
    role: UserRole
    email: str | None = None


def create_access_token(subject: str, role: UserRole, email: str | None = None) -> str:
    now = datetime.now(tz=timezone.utc)
    expires = now + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {"sub": subject, "role": role.value, "email": email, "iat": now, "exp": expires}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Principal:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except InvalidTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    try:
        role = UserRole(payload.get("role"))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token role") from exc

    return Principal(subject=subject, role=role, email=payload.get("email"))


def get_current_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    principal = decode_access_token(credentials.credentials)
    request.state.principal = principal
    return principal


def require_roles(*roles: UserRole) -> Callable[..., Principal]:
    allowed = frozenset(roles)

    def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{principal.role.value}' may not perform this action",
            )
        return principal

    return dependency


def require_iot_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    if settings.iot_api_key is None:
        return
    if x_api_key is None or not hmac.compare_digest(x_api_key, settings.iot_api_key):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid sensor API key")


def ensure_batch_owner(principal: Principal, created_by: str) -> None:
    """Non-admins may only manage batches they created."""
    if principal.role == UserRole.admin or principal.subject == created_by:
        return
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
