"""
core/notifications.py
Notification fan-out and read-state operations.

notify() hands the write to a Celery task; the publish itself runs off the
event loop. It is only called after the triggering mutation has committed;
publication failures are logged and dropped (at-most-once, no ordering guarantee).
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from pybreaker import CircuitBreaker, CircuitBreakerError
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from core.errors import ForbiddenError, NotFoundError
from core.identity import Actor
from shared.models.models import Notification, NotificationType
from shared.utils.pagination import paginate
from tasks.notification_tasks import create_notification

logger = logging.getLogger(__name__)

dispatch_breaker = CircuitBreaker(
    fail_max=settings.NOTIFICATION_BREAKER_FAIL_MAX,
    reset_timeout=settings.NOTIFICATION_BREAKER_RESET_SECONDS,
    name="notification-dispatch",
)


# ── Dispatch ──────────────────────────────────────────────────

async def notify(
    target_user_id: uuid.UUID,
    message: str,
    type: NotificationType,
    related_entity_id: Optional[uuid.UUID] = None,
) -> bool:
    """
    Enqueue one notification for target_user_id.
    The broker publish runs in a worker thread so a slow broker never stalls
    the event loop. Returns False when the task could not be published; never raises.
    """
    try:
        await asyncio.to_thread(
            dispatch_breaker.call,
            create_notification.delay,
            str(target_user_id),
            message,
            NotificationType(type).value,
            str(related_entity_id) if related_entity_id else None,
        )
    except CircuitBreakerError:
        logger.warning("Notification dropped for user %s: dispatch breaker open", target_user_id)
        return False
    except Exception as e:
        logger.warning("Notification dropped for user %s: %s", target_user_id, e)
        return False
    return True


# ── Read state ────────────────────────────────────────────────

async def list_notifications(
    db: AsyncSession,
    actor: Actor,
    unread_only: bool = False,
    page: int = 1,
    page_size: Optional[int] = None,
) -> dict:
    query = (
        select(Notification)
        .where(Notification.user_id == actor.user_id)
        .order_by(Notification.created_at.desc())
    )
    if unread_only:
        query = query.where(Notification.is_read.is_(False))
    return await paginate(db, query, page, page_size)


async def mark_read(db: AsyncSession, actor: Actor, notification_id: uuid.UUID) -> Notification:
    notification = await db.get(Notification, notification_id)
    if notification is None:
        raise NotFoundError("Notification", notification_id)
    if not actor.owns(notification.user_id):
        raise ForbiddenError("You can only mark your own notifications as read")

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now(timezone.utc)
        await db.commit()
    return notification


async def mark_all_read(db: AsyncSession, actor: Actor) -> int:
    """Flip the unread rows that exist now. Rows inserted concurrently stay unread."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == actor.user_id, Notification.is_read.is_(False))
        .values(is_read=True, read_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount or 0


async def clear_read(db: AsyncSession, actor: Actor) -> int:
    result = await db.execute(
        delete(Notification)
        .where(Notification.user_id == actor.user_id, Notification.is_read.is_(True))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    logger.info("Cleared %s read notifications for %s", result.rowcount, actor.user_id)
    return result.rowcount or 0


async def unread_count(db: AsyncSession, actor: Actor) -> int:
    count = await db.scalar(
        select(func.count(Notification.id)).where(
            Notification.user_id == actor.user_id,
            Notification.is_read.is_(False),
        )
    )
    return count or 0
