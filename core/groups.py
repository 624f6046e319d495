"""
core/groups.py
Group lifecycle and membership changes.

Membership rows live in group_members and are written only from here.
Join, leave, update and delete take a row lock on the group first
(SELECT ... FOR UPDATE on PostgreSQL) so the leader reference can never
dangle.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import delete, exists, insert, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core import membership
from core.errors import (
    AlreadyMemberError,
    DuplicateGroupNameError,
    ForbiddenError,
    LeaderCannotLeaveError,
    NotFoundError,
    NotMemberError,
)
from core.identity import Actor
from shared.models.models import Group, User, group_members
from shared.utils.pagination import paginate

logger = logging.getLogger(__name__)


async def _lock(db: AsyncSession, group_id: uuid.UUID) -> Group:
    result = await db.execute(
        select(Group).where(Group.id == group_id).with_for_update(of=Group)
    )
    group = result.scalar_one_or_none()
    if group is None:
        raise NotFoundError("Group", group_id)
    return group


async def _name_taken(db: AsyncSession, name: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
    condition = [Group.name == name]
    if exclude_id is not None:
        condition.append(Group.id != exclude_id)
    return bool(await db.scalar(select(exists().where(*condition))))


# ── Queries ───────────────────────────────────────────────────

async def get_group(db: AsyncSession, group_id: uuid.UUID) -> Group:
    group = await db.get(Group, group_id)
    if group is None:
        raise NotFoundError("Group", group_id)
    return group


async def list_groups(
    db: AsyncSession,
    search: Optional[str] = None,
    page: int = 1,
    page_size: Optional[int] = None,
) -> dict:
    query = select(Group)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(Group.name.ilike(pattern), Group.description.ilike(pattern)))
    return await paginate(
        db, query.order_by(Group.created_at.desc(), Group.id), page, page_size
    )


# ── Mutations ─────────────────────────────────────────────────

async def create_group(
    db: AsyncSession, actor: Actor, name: str, description: Optional[str] = None
) -> Group:
    """The creator becomes leader and first member in the same transaction."""
    leader = await db.get(User, actor.user_id)
    if leader is None:
        raise NotFoundError("User", actor.user_id)
    if await _name_taken(db, name):
        raise DuplicateGroupNameError(name)

    group = Group(name=name, description=description, leader_id=leader.id)
    group.leader = leader
    db.add(group)
    try:
        await db.flush()
        await db.execute(insert(group_members).values(group_id=group.id, user_id=leader.id))
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateGroupNameError(name)

    logger.info("Group %s created by %s", group.id, actor.user_id)
    return group


async def update_group(
    db: AsyncSession,
    actor: Actor,
    group_id: uuid.UUID,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Group:
    group = await _lock(db, group_id)
    if not actor.can_manage(group.leader_id):
        raise ForbiddenError("Only the group leader or an admin can update this group")

    if name is not None and name != group.name:
        if await _name_taken(db, name, exclude_id=group.id):
            raise DuplicateGroupNameError(name)
        group.name = name
    if description is not None:
        group.description = description

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateGroupNameError(name)
    return group


async def join_group(db: AsyncSession, actor: Actor, group_id: uuid.UUID) -> Group:
    group = await _lock(db, group_id)
    if await membership.is_member(db, group.id, actor.user_id):
        raise AlreadyMemberError()

    try:
        await db.execute(insert(group_members).values(group_id=group.id, user_id=actor.user_id))
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise AlreadyMemberError()

    logger.info("User %s joined group %s", actor.user_id, group_id)
    return group


async def leave_group(db: AsyncSession, actor: Actor, group_id: uuid.UUID) -> None:
    """Both rejections are decided before any membership row is touched."""
    group = await _lock(db, group_id)
    if not await membership.is_member(db, group.id, actor.user_id):
        raise NotMemberError()
    if group.leader_id == actor.user_id:
        raise LeaderCannotLeaveError()

    await db.execute(
        delete(group_members).where(
            group_members.c.group_id == group.id,
            group_members.c.user_id == actor.user_id,
        )
    )
    await db.commit()
    logger.info("User %s left group %s", actor.user_id, group_id)


async def delete_group(db: AsyncSession, actor: Actor, group_id: uuid.UUID) -> None:
    """Removes memberships and group-scoped prayer requests; accounts stay."""
    group = await _lock(db, group_id)
    if not actor.can_manage(group.leader_id):
        raise ForbiddenError("Only the group leader or an admin can delete this group")

    await db.delete(group)
    await db.commit()
    logger.info("Group %s deleted by %s", group_id, actor.user_id)
