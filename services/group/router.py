"""
services/group/router.py
Prayer groups: discovery, membership and group-scoped prayer requests.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from core import groups, membership, prayer_requests
from core.identity import Actor
from shared.middleware.auth import get_actor
from shared.models.models import Group
from shared.schemas.schemas import (
    AuthorSummary,
    GroupCreate,
    GroupResponse,
    GroupUpdate,
    MessageResponse,
    PaginatedResponse,
)
from services.prayer.router import to_response as prayer_to_response

router = APIRouter(prefix="/groups", tags=["Groups"])


async def _to_response(db: AsyncSession, group: Group, actor: Actor) -> GroupResponse:
    response = GroupResponse.model_validate(group)
    response.member_count = await membership.member_count(db, group.id)
    response.is_member = await membership.is_member(db, group.id, actor.user_id)
    return response


# ── Discovery ─────────────────────────────────────────────────

@router.get("", response_model=PaginatedResponse)
async def list_groups(
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await groups.list_groups(db, search, page, page_size)
    result["items"] = [await _to_response(db, g, actor) for g in result["items"]]
    return result


@router.get("/my-groups", response_model=List[GroupResponse])
async def my_groups(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Groups the caller belongs to, including the ones they lead."""
    return [await _to_response(db, g, actor) for g in await membership.groups_for(db, actor.user_id)]


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    group = await groups.get_group(db, group_id)
    return await _to_response(db, group, actor)


@router.get("/{group_id}/members", response_model=List[AuthorSummary])
async def list_members(
    group_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    await groups.get_group(db, group_id)
    return [AuthorSummary.model_validate(u) for u in await membership.members(db, group_id)]


@router.get("/{group_id}/prayer-requests", response_model=PaginatedResponse)
async def group_prayer_requests(
    group_id: UUID,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: str = Query("created_at"),
    sort_dir: str = Query("desc"),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Requests posted to the group. Members only."""
    result = await prayer_requests.list_for_group(
        db, actor, group_id, page, page_size, sort_by, sort_dir
    )
    result["items"] = [prayer_to_response(r, actor) for r in result["items"]]
    return result


# ── Lifecycle ─────────────────────────────────────────────────

@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    data: GroupCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Create a group. The caller becomes its leader and first member."""
    group = await groups.create_group(db, actor, data.name, data.description)
    return await _to_response(db, group, actor)


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: UUID,
    data: GroupUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    group = await groups.update_group(db, actor, group_id, data.name, data.description)
    return await _to_response(db, group, actor)


@router.delete("/{group_id}", response_model=MessageResponse)
async def delete_group(
    group_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    await groups.delete_group(db, actor, group_id)
    return MessageResponse(message="Group deleted successfully")


# ── Membership ────────────────────────────────────────────────

@router.post("/{group_id}/join", response_model=GroupResponse)
async def join_group(
    group_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    group = await groups.join_group(db, actor, group_id)
    return await _to_response(db, group, actor)


@router.post("/{group_id}/leave", response_model=MessageResponse)
async def leave_group(
    group_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    await groups.leave_group(db, actor, group_id)
    return MessageResponse(message="Left group successfully")
