"""
services/notification/router.py
In-app notification inbox. Rows are written by the notification task;
these endpoints only read, mark read and clear.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from core import notifications
from core.identity import Actor
from shared.middleware.auth import get_actor
from shared.schemas.schemas import (
    MessageResponse,
    NotificationResponse,
    PaginatedResponse,
    UnreadCountResponse,
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=PaginatedResponse)
async def get_my_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Get the caller's notifications, newest first."""
    result = await notifications.list_notifications(db, actor, unread_only, page, page_size)
    result["items"] = [NotificationResponse.model_validate(n) for n in result["items"]]
    return result


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCountResponse(unread_count=await notifications.unread_count(db, actor))


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    notification = await notifications.mark_read(db, actor, notification_id)
    return NotificationResponse.model_validate(notification)


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_read(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    count = await notifications.mark_all_read(db, actor)
    return MessageResponse(message=f"{count} notifications marked as read")


@router.delete("/clear-read", response_model=MessageResponse)
async def clear_read(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    count = await notifications.clear_read(db, actor)
    return MessageResponse(message=f"{count} read notifications cleared")
