"""Authentication API"""

from typing import Any, List
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wms.core.auth.deps import Principal, get_current_principal
from wms.core.auth.security import create_access_token, verify_password
from wms.core.deps import get_db
from wms.core.exceptions import ForbiddenError, NotFoundError, UnauthorizedError
from wms.core.permissions import PERMISSION_LABELS
from wms.models.user import User
from wms.schemas.user import LoginRequest, PermissionInfo, Token, UserResponse

from .users import build_user_response

router = APIRouter()


@router.post("/login", response_model=Token)
async def login(
    *,
    db: AsyncSession = Depends(get_db),
    credentials: LoginRequest) -> Any:
    """Exchange username and password for a bearer token"""
    result = await db.execute(select(User).where(User.username == credentials.username))
    user = result.scalar_one_or_none()
    if not user or not verify_password(credentials.password, user.password):
        raise UnauthorizedError("Incorrect username or password")
    if not user.is_active:
        raise ForbiddenError("Account is disabled")

    token = create_access_token({
        "sub": str(user.id),
        "role": user.user_type,
        "username": user.username,
    })
    return Token(access_token=token, user=build_user_response(user))


@router.get("/me", response_model=UserResponse)
async def read_me(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)) -> Any:
    """Current user"""
    user = await db.get(User, principal.user_id)
    if not user:
        raise NotFoundError("User", principal.user_id)
    return build_user_response(user)


@router.get("/permissions", response_model=List[PermissionInfo])
async def read_my_permissions(
    principal: Principal = Depends(get_current_principal)) -> Any:
    """Permissions granted to the current role"""
    return [
        PermissionInfo(name=name, label=PERMISSION_LABELS.get(name, name))
        for name in sorted(principal.permissions)
    ]
