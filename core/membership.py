"""
core/membership.py
Group membership lookups. Always a live query in the caller's session.
"""

import uuid
from typing import List, Set

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import Group, User, group_members


async def is_member(db: AsyncSession, group_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    stmt = select(
        exists().where(
            group_members.c.group_id == group_id,
            group_members.c.user_id == user_id,
        )
    )
    return bool(await db.scalar(stmt))


async def group_ids_for(db: AsyncSession, user_id: uuid.UUID) -> Set[uuid.UUID]:
    result = await db.execute(
        select(group_members.c.group_id).where(group_members.c.user_id == user_id)
    )
    return set(result.scalars().all())


async def groups_for(db: AsyncSession, user_id: uuid.UUID) -> List[Group]:
    """Groups the user belongs to, newest first."""
    result = await db.execute(
        select(Group)
        .join(group_members, group_members.c.group_id == Group.id)
        .where(group_members.c.user_id == user_id)
        .order_by(Group.created_at.desc())
    )
    return list(result.scalars().all())


async def member_count(db: AsyncSession, group_id: uuid.UUID) -> int:
    return await db.scalar(
        select(func.count()).select_from(group_members).where(group_members.c.group_id == group_id)
    ) or 0


async def members(db: AsyncSession, group_id: uuid.UUID) -> List[User]:
    result = await db.execute(
        select(User)
        .join(group_members, group_members.c.user_id == User.id)
        .where(group_members.c.group_id == group_id)
        .order_by(group_members.c.joined_at)
    )
    return list(result.scalars().all())
