"""
core/prayer_requests.py
Prayer request operations.

Every mutation follows the same order: look up, authorize, mutate, commit,
then emit notifications. Notifications never run before the commit.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Select, exists, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core import membership
from core.errors import AlreadyPrayedError, ForbiddenError, NotFoundError, ValidationError
from core.identity import Actor
from core.notifications import notify
from core.visibility import can_view, visible_to
from shared.models.models import (
    Group,
    NotificationType,
    Prayer,
    PrayerRequest,
    User,
    Visibility,
)
from shared.utils.pagination import paginate

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    "created_at": PrayerRequest.created_at,
    "updated_at": PrayerRequest.updated_at,
    "answered_at": PrayerRequest.answered_at,
    "prayed_for_count": PrayerRequest.prayed_for_count,
    "title": PrayerRequest.title,
}


def apply_sort(query: Select, sort_by: str = "created_at", sort_dir: str = "desc") -> Select:
    column = SORTABLE_COLUMNS.get(sort_by)
    if column is None:
        raise ValidationError(f"Cannot sort by '{sort_by}'")
    direction = (sort_dir or "").lower()
    if direction not in ("asc", "desc"):
        raise ValidationError("sort_dir must be 'asc' or 'desc'")
    ordered = column.asc() if direction == "asc" else column.desc()
    return query.order_by(ordered, PrayerRequest.id)


async def _load(db: AsyncSession, request_id: uuid.UUID) -> PrayerRequest:
    request = await db.get(PrayerRequest, request_id)
    if request is None:
        raise NotFoundError("Prayer request", request_id)
    return request


async def _load_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def _authorize_owner(actor: Actor, request: PrayerRequest) -> None:
    if not actor.can_manage(request.author_id):
        raise ForbiddenError("Only the author or an admin can modify this prayer request")


# ── Queries ───────────────────────────────────────────────────

async def can_actor_view(db: AsyncSession, actor: Actor, request: PrayerRequest) -> bool:
    group_ids = await membership.group_ids_for(db, actor.user_id)
    return can_view(request, actor.user_id, actor.is_admin, group_ids)


async def get_prayer_request(
    db: AsyncSession, actor: Actor, request_id: uuid.UUID
) -> PrayerRequest:
    request = await _load(db, request_id)
    if not await can_actor_view(db, actor, request):
        raise ForbiddenError("You do not have permission to view this prayer request")
    return request


async def list_visible(
    db: AsyncSession,
    actor: Actor,
    page: int = 1,
    page_size: Optional[int] = None,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
    search: Optional[str] = None,
    answered: Optional[bool] = None,
) -> dict:
    """Exactly the requests can_view() allows for this actor."""
    group_ids = await membership.group_ids_for(db, actor.user_id)
    query = select(PrayerRequest).where(visible_to(actor.user_id, group_ids))

    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(PrayerRequest.title.ilike(pattern), PrayerRequest.description.ilike(pattern))
        )
    if answered is not None:
        query = query.where(PrayerRequest.is_answered.is_(answered))

    return await paginate(db, apply_sort(query, sort_by, sort_dir), page, page_size)


async def list_by_author(
    db: AsyncSession,
    actor: Actor,
    page: int = 1,
    page_size: Optional[int] = None,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
) -> dict:
    query = select(PrayerRequest).where(PrayerRequest.author_id == actor.user_id)
    return await paginate(db, apply_sort(query, sort_by, sort_dir), page, page_size)


async def list_for_group(
    db: AsyncSession,
    actor: Actor,
    group_id: uuid.UUID,
    page: int = 1,
    page_size: Optional[int] = None,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
) -> dict:
    """Group-scoped requests; members only."""
    if await db.get(Group, group_id) is None:
        raise NotFoundError("Group", group_id)

    group_ids = await membership.group_ids_for(db, actor.user_id)
    if group_id not in group_ids:
        raise ForbiddenError("Only group members can view group prayer requests")

    query = select(PrayerRequest).where(
        PrayerRequest.group_id == group_id,
        visible_to(actor.user_id, group_ids),
    )
    return await paginate(db, apply_sort(query, sort_by, sort_dir), page, page_size)


async def list_by_visibility(
    db: AsyncSession,
    visibility: Optional[Visibility],
    page: int = 1,
    page_size: Optional[int] = None,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
) -> dict:
    """Moderation listing for the admin console. Not a view path."""
    query = select(PrayerRequest)
    if visibility is not None:
        query = query.where(PrayerRequest.visibility == visibility)
    return await paginate(db, apply_sort(query, sort_by, sort_dir), page, page_size)


# ── Mutations ─────────────────────────────────────────────────

async def create_prayer_request(
    db: AsyncSession,
    actor: Actor,
    title: str,
    description: str,
    visibility: Optional[Visibility] = None,
    is_anonymous: bool = False,
    group_id: Optional[uuid.UUID] = None,
) -> PrayerRequest:
    """
    A group_id the actor is a member of pins the request to that group as
    GROUP_ONLY. A group_id the actor is not a member of (or an unknown one)
    is dropped and the requested visibility stands.
    """
    author = await _load_user(db, actor.user_id)
    resolved_visibility = visibility or Visibility.PUBLIC
    resolved_group_id = None

    if group_id is not None and await membership.is_member(db, group_id, actor.user_id):
        resolved_group_id = group_id
        resolved_visibility = Visibility.GROUP_ONLY

    request = PrayerRequest(
        title=title,
        description=description,
        visibility=resolved_visibility,
        is_anonymous=is_anonymous,
        author_id=author.id,
        group_id=resolved_group_id,
    )
    request.author = author
    db.add(request)
    await db.commit()

    logger.info(
        "Prayer request %s created by %s (%s)", request.id, actor.user_id, resolved_visibility.value
    )
    return request


async def update_prayer_request(
    db: AsyncSession,
    actor: Actor,
    request_id: uuid.UUID,
    title: Optional[str] = None,
    description: Optional[str] = None,
    visibility: Optional[Visibility] = None,
    is_anonymous: Optional[bool] = None,
) -> PrayerRequest:
    request = await _load(db, request_id)
    _authorize_owner(actor, request)

    if title is not None:
        request.title = title
    if description is not None:
        request.description = description
    if visibility is not None:
        request.visibility = visibility
    if is_anonymous is not None:
        request.is_anonymous = is_anonymous
    request.updated_at = datetime.now(timezone.utc)

    await db.commit()
    return request


async def delete_prayer_request(db: AsyncSession, actor: Actor, request_id: uuid.UUID) -> None:
    request = await _load(db, request_id)
    _authorize_owner(actor, request)

    await db.delete(request)
    await db.commit()
    logger.info("Prayer request %s deleted by %s", request_id, actor.user_id)


async def pray_for_request(db: AsyncSession, actor: Actor, request_id: uuid.UUID) -> int:
    """
    Record one prayer by the actor and bump the counter. Returns the new count.

    Check, insert and increment share one transaction. The unique constraint
    on (user_id, prayer_request_id) decides any race the check misses.
    """
    request = await _load(db, request_id)
    user = await _load_user(db, actor.user_id)

    already = await db.scalar(
        select(
            exists().where(
                Prayer.user_id == actor.user_id,
                Prayer.prayer_request_id == request.id,
            )
        )
    )
    if already:
        raise AlreadyPrayedError()

    db.add(Prayer(user_id=actor.user_id, prayer_request_id=request.id))
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise AlreadyPrayedError()

    await db.execute(
        update(PrayerRequest)
        .where(PrayerRequest.id == request.id)
        .values(prayed_for_count=PrayerRequest.prayed_for_count + 1)
        .execution_options(synchronize_session=False)
    )
    new_count = await db.scalar(
        select(PrayerRequest.prayed_for_count).where(PrayerRequest.id == request.id)
    )
    author_id, title = request.author_id, request.title
    await db.commit()

    if not actor.owns(author_id):
        await notify(
            author_id,
            f"{user.full_name} prayed for your request: {title}",
            NotificationType.PRAYER_RECEIVED,
            request_id,
        )
    return new_count


async def mark_answered(
    db: AsyncSession,
    actor: Actor,
    request_id: uuid.UUID,
    answered_description: Optional[str] = None,
) -> PrayerRequest:
    """Repeat calls overwrite the description and timestamp."""
    request = await _load(db, request_id)
    _authorize_owner(actor, request)

    request.is_answered = True
    request.answered_description = answered_description
    request.answered_at = datetime.now(timezone.utc)

    await db.commit()
    logger.info("Prayer request %s marked answered by %s", request_id, actor.user_id)
    return request
