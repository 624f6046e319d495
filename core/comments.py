"""
core/comments.py
Comments on prayer requests. Update and delete belong to the comment's
author (or an admin), not to the request's author.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ForbiddenError, NotFoundError
from core.identity import Actor
from core.notifications import notify
from core.prayer_requests import can_actor_view
from shared.models.models import Comment, NotificationType, PrayerRequest, User
from shared.utils.pagination import paginate

logger = logging.getLogger(__name__)


async def _load(db: AsyncSession, comment_id: uuid.UUID) -> Comment:
    comment = await db.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment", comment_id)
    return comment


def _authorize(actor: Actor, comment: Comment) -> None:
    if not actor.can_manage(comment.author_id):
        raise ForbiddenError("Only the comment author or an admin can modify this comment")


async def list_comments(
    db: AsyncSession,
    actor: Actor,
    request_id: uuid.UUID,
    page: int = 1,
    page_size: Optional[int] = None,
) -> dict:
    """Oldest first. Only readable by someone who can view the request."""
    request = await db.get(PrayerRequest, request_id)
    if request is None:
        raise NotFoundError("Prayer request", request_id)
    if not await can_actor_view(db, actor, request):
        raise ForbiddenError("You do not have permission to view this prayer request")

    query = (
        select(Comment)
        .where(Comment.prayer_request_id == request_id)
        .order_by(Comment.created_at.asc(), Comment.id)
    )
    return await paginate(db, query, page, page_size)


async def create_comment(
    db: AsyncSession, actor: Actor, request_id: uuid.UUID, content: str
) -> Comment:
    request = await db.get(PrayerRequest, request_id)
    if request is None:
        raise NotFoundError("Prayer request", request_id)
    author = await db.get(User, actor.user_id)
    if author is None:
        raise NotFoundError("User", actor.user_id)

    comment = Comment(content=content, author_id=author.id, prayer_request_id=request.id)
    comment.author = author
    db.add(comment)
    await db.commit()

    if request.author_id != author.id:
        await notify(
            request.author_id,
            f"{author.full_name} commented on your prayer request: {request.title}",
            NotificationType.COMMENT_RECEIVED,
            request.id,
        )
    return comment


async def update_comment(
    db: AsyncSession, actor: Actor, comment_id: uuid.UUID, content: str
) -> Comment:
    comment = await _load(db, comment_id)
    _authorize(actor, comment)

    comment.content = content
    await db.commit()
    return comment


async def delete_comment(db: AsyncSession, actor: Actor, comment_id: uuid.UUID) -> None:
    comment = await _load(db, comment_id)
    _authorize(actor, comment)

    await db.delete(comment)
    await db.commit()
    logger.info("Comment %s deleted by %s", comment_id, actor.user_id)
