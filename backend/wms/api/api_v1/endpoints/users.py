"""User management API"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from wms.core.auth.deps import Principal, get_current_principal, require_permission
from wms.core.auth.security import get_password_hash, verify_password
from wms.core.deps import get_db
from wms.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from wms.core.permissions import MANAGE_USERS
from wms.models.user import User
from wms.schemas.common import Message
from wms.schemas.user import (
    PasswordChange, UserCreate, UserListResponse, UserResponse, UserUpdate,
)

router = APIRouter()


def build_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        name=user.name,
        email=user.email,
        phone=user.phone,
        user_type=user.user_type,
        is_active=user.is_active,
        permissions=sorted(user.permissions),
        created_at=user.created_at)


async def get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return user


@router.get("/", response_model=UserListResponse)
async def list_users(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_USERS)),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_type: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="Username or name")) -> Any:
    """List users"""
    conditions = []
    if user_type:
        conditions.append(User.user_type == user_type)
    if is_active is not None:
        conditions.append(User.is_active.is_(is_active))
    if search:
        conditions.append(or_(User.username.ilike(f"%{search}%"), User.name.ilike(f"%{search}%")))

    query = select(User)
    if conditions:
        query = query.where(and_(*conditions))

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    result = await db.execute(query.order_by(User.id).offset((page - 1) * limit).limit(limit))
    return UserListResponse(
        data=[build_user_response(u) for u in result.scalars().all()],
        total=total,
        page=page,
        limit=limit
    )


@router.post("/", response_model=UserResponse, status_code=201)
async def create_user(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_USERS)),
    user_in: UserCreate) -> Any:
    """Register a user"""
    existing = await db.execute(select(User.id).where(User.username == user_in.username))
    if existing.first():
        raise ConflictError(f"Username '{user_in.username}' is already taken")

    user = User(
        username=user_in.username,
        password=get_password_hash(user_in.password),
        name=user_in.name,
        email=user_in.email,
        phone=user_in.phone,
        user_type=user_in.user_type,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return build_user_response(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    user_id: int) -> Any:
    """User detail; yourself or with manage_users"""
    if user_id != principal.user_id and not principal.can(MANAGE_USERS):
        raise ForbiddenError(f"Permission '{MANAGE_USERS}' required")
    return build_user_response(await get_user_or_404(db, user_id))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_USERS)),
    user_id: int,
    user_in: UserUpdate) -> Any:
    """Update a user"""
    user = await get_user_or_404(db, user_id)
    update_data = user_in.model_dump(exclude_unset=True)
    if user_id == principal.user_id and update_data.get("is_active") is False:
        raise ValidationError("You cannot deactivate your own account")
    for field, value in update_data.items():
        setattr(user, field, value)
    await db.commit()
    await db.refresh(user)
    return build_user_response(user)


@router.put("/{user_id}/password", response_model=Message)
async def change_password(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    user_id: int,
    password_in: PasswordChange) -> Any:
    """Change a password; your own needs the current one"""
    if user_id != principal.user_id and not principal.can(MANAGE_USERS):
        raise ForbiddenError(f"Permission '{MANAGE_USERS}' required")
    user = await get_user_or_404(db, user_id)
    if user_id == principal.user_id:
        if not password_in.current_password or not verify_password(password_in.current_password, user.password):
            raise ValidationError("Current password is incorrect")
    user.password = get_password_hash(password_in.new_password)
    await db.commit()
    return Message(message="Password updated", id=user.id)


@router.delete("/{user_id}", response_model=Message)
async def deactivate_user(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_permission(MANAGE_USERS)),
    user_id: int) -> Any:
    """Deactivate a user; rows are kept for audit references"""
    if user_id == principal.user_id:
        raise ValidationError("You cannot deactivate your own account")
    user = await get_user_or_404(db, user_id)
    user.is_active = False
    await db.commit()
    return Message(message="User deactivated", id=user.id)
