"""Notification API - every user sees only their own"""

from typing import Any
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_, update
from sqlalchemy.ext.asyncio import AsyncSession

from wms.core.auth.deps import Principal, get_current_principal
from wms.core.deps import get_db
from wms.core.exceptions import NotFoundError
from wms.models.notification import Notification
from wms.schemas.common import Message
from wms.schemas.notification import NotificationListResponse, NotificationResponse, UnreadCount

router = APIRouter()


def build_notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse.model_validate(notification)


async def get_own_notification(db: AsyncSession, notification_id: int, user_id: int) -> Notification:
    result = await db.execute(
        select(Notification).where(and_(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        ))
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise NotFoundError("Notification", notification_id)
    return notification


async def count_unread(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(and_(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        ))
    )
    return result.scalar() or 0


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    unread_only: bool = Query(False)) -> Any:
    """My notifications, newest first"""
    conditions = [Notification.user_id == principal.user_id]
    if unread_only:
        conditions.append(Notification.is_read.is_(False))

    total_result = await db.execute(select(func.count(Notification.id)).where(and_(*conditions)))
    result = await db.execute(
        select(Notification)
        .where(and_(*conditions))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return NotificationListResponse(
        data=[build_notification_response(n) for n in result.scalars().all()],
        total=total_result.scalar() or 0,
        unread=await count_unread(db, principal.user_id)
    )


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)) -> Any:
    """Number of unread notifications"""
    return UnreadCount(count=await count_unread(db, principal.user_id))


@router.put("/mark-all-read", response_model=Message)
async def mark_all_read(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)) -> Any:
    """Mark every notification read"""
    await db.execute(
        update(Notification)
        .where(and_(Notification.user_id == principal.user_id, Notification.is_read.is_(False)))
        .values(is_read=True, read_at=datetime.utcnow())
    )
    await db.commit()
    return Message(message="All notifications marked as read")


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    notification_id: int) -> Any:
    """Mark one notification read"""
    notification = await get_own_notification(db, notification_id, principal.user_id)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.utcnow()
        await db.commit()
    return build_notification_response(notification)


@router.delete("/{notification_id}", response_model=Message)
async def delete_notification(
    *,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    notification_id: int) -> Any:
    """Delete one notification"""
    notification = await get_own_notification(db, notification_id, principal.user_id)
    await db.delete(notification)
    await db.commit()
    return Message(message="Notification deleted", id=notification_id)
