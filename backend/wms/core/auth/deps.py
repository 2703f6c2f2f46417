"""Authentication dependencies"""
from dataclasses import dataclass
from typing import Callable, FrozenSet, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from wms.core.auth.security import decode_access_token
from wms.core.config import settings
from wms.core.exceptions import ForbiddenError, UnauthorizedError
from wms.core.permissions import has_permission, permissions_for

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login",
    auto_error=False,
)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller as carried by the token"""
    user_id: int
    role: str
    username: Optional[str] = None

    @property
    def permissions(self) -> FrozenSet[str]:
        return permissions_for(self.role)

    def can(self, permission: str) -> bool:
        return has_permission(self.role, permission)


async def get_current_principal(token: Optional[str] = Depends(oauth2_scheme)) -> Principal:
    """Resolve the bearer token into a Principal without touching the database"""
    if not token:
        raise UnauthorizedError("Not authenticated")
    payload = decode_access_token(token)
    try:
        user_id = int(payload["sub"])
        role = payload["role"]
    except (KeyError, TypeError, ValueError) as exc:
        raise UnauthorizedError("Invalid token claims") from exc
    return Principal(user_id=user_id, role=role, username=payload.get("username"))


def require_permission(permission: str) -> Callable:
    """Dependency factory gating an endpoint on one permission"""

    async def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.can(permission):
            raise ForbiddenError(f"Permission '{permission}' required")
        return principal

    return dependency
