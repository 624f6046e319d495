"""
tasks/notification_tasks.py
Celery task that writes in-app notifications.

Published by core.notifications.notify() after the triggering mutation has
committed. Each notification is attempted once; failures are logged, never
retried, and never reach the request that caused them.
"""

import logging
import uuid
from typing import Optional

from celery import Task

from tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


# ── Base Task with DB session ──────────────────────────────────────────────────

class DatabaseTask(Task):
    """Base class that provides a synchronous DB session for tasks."""
    abstract = True

    def get_session(self):
        from config.database import get_sync_session

        return get_sync_session()


# ── Tasks ─────────────────────────────────────────────────────────────────────

@celery_app.task(bind=True, base=DatabaseTask, max_retries=0)
def create_notification(
    self,
    user_id: str,
    message: str,
    type: str,
    related_entity_id: Optional[str] = None,
) -> Optional[str]:
    """
    Persist one notification for user_id.
    Returns the new notification id, or None when the user no longer exists.
    """
    from shared.models.models import Notification, NotificationType, User

    db = self.get_session()
    try:
        user = db.get(User, uuid.UUID(user_id))
        if user is None:
            logger.warning("create_notification: user %s not found, dropping", user_id)
            return None

        notification = Notification(
            user_id=user.id,
            message=message,
            type=NotificationType(type),
            related_entity_id=uuid.UUID(related_entity_id) if related_entity_id else None,
        )
        db.add(notification)
        db.commit()
        logger.info("Notification %s (%s) created for %s", notification.id, type, user_id)
        return str(notification.id)

    except Exception:
        db.rollback()
        logger.exception("create_notification failed for user %s", user_id)
        raise
    finally:
        db.close()
