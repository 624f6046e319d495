"""
services/prayer/router.py
Prayer request endpoints. Thin HTTP layer over core.prayer_requests.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from core import prayer_requests
from core.identity import Actor
from shared.middleware.auth import get_actor
from shared.models.models import PrayerRequest
from shared.schemas.schemas import (
    AnswerRequest,
    MessageResponse,
    PaginatedResponse,
    PrayerRequestCreate,
    PrayerRequestResponse,
    PrayerRequestUpdate,
    PrayResponse,
)

router = APIRouter(prefix="/prayer-requests", tags=["Prayer Requests"])


def to_response(request: PrayerRequest, actor: Actor) -> PrayerRequestResponse:
    """Anonymous requests hide their author from everyone but the author."""
    response = PrayerRequestResponse.model_validate(request)
    if request.is_anonymous and not actor.owns(request.author_id):
        response.author_id = None
        response.author = None
    return response


# ── Listing ───────────────────────────────────────────────────

@router.get("", response_model=PaginatedResponse)
async def list_prayer_requests(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: str = Query("created_at"),
    sort_dir: str = Query("desc"),
    search: Optional[str] = Query(None, max_length=200),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Every request the caller is allowed to see, optionally filtered by a search term."""
    result = await prayer_requests.list_visible(
        db, actor, page, page_size, sort_by, sort_dir, search=search
    )
    result["items"] = [to_response(r, actor) for r in result["items"]]
    return result


@router.get("/my-requests", response_model=PaginatedResponse)
async def my_prayer_requests(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: str = Query("created_at"),
    sort_dir: str = Query("desc"),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await prayer_requests.list_by_author(db, actor, page, page_size, sort_by, sort_dir)
    result["items"] = [to_response(r, actor) for r in result["items"]]
    return result


@router.get("/answered", response_model=PaginatedResponse)
async def answered_prayer_requests(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: str = Query("answered_at"),
    sort_dir: str = Query("desc"),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Answered requests, limited to what the caller can see."""
    result = await prayer_requests.list_visible(
        db, actor, page, page_size, sort_by, sort_dir, answered=True
    )
    result["items"] = [to_response(r, actor) for r in result["items"]]
    return result


# ── Single request ────────────────────────────────────────────

@router.get("/{request_id}", response_model=PrayerRequestResponse)
async def get_prayer_request(
    request_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    request = await prayer_requests.get_prayer_request(db, actor, request_id)
    return to_response(request, actor)


@router.post("", response_model=PrayerRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_prayer_request(
    data: PrayerRequestCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a prayer request.
    Passing a group_id you belong to posts it to that group as GROUP_ONLY;
    any other group_id is ignored.
    """
    request = await prayer_requests.create_prayer_request(
        db,
        actor,
        title=data.title,
        description=data.description,
        visibility=data.visibility,
        is_anonymous=data.is_anonymous,
        group_id=data.group_id,
    )
    return to_response(request, actor)


@router.put("/{request_id}", response_model=PrayerRequestResponse)
async def update_prayer_request(
    request_id: UUID,
    data: PrayerRequestUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    request = await prayer_requests.update_prayer_request(
        db,
        actor,
        request_id,
        title=data.title,
        description=data.description,
        visibility=data.visibility,
        is_anonymous=data.is_anonymous,
    )
    return to_response(request, actor)


@router.delete("/{request_id}", response_model=MessageResponse)
async def delete_prayer_request(
    request_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    await prayer_requests.delete_prayer_request(db, actor, request_id)
    return MessageResponse(message="Prayer request deleted successfully")


@router.post("/{request_id}/pray", response_model=PrayResponse)
async def pray_for_request(
    request_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    count = await prayer_requests.pray_for_request(db, actor, request_id)
    return PrayResponse(message="Thank you for praying", prayed_for_count=count)


@router.post("/{request_id}/answer", response_model=PrayerRequestResponse)
async def mark_answered(
    request_id: UUID,
    data: AnswerRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    request = await prayer_requests.mark_answered(
        db, actor, request_id, data.answered_description
    )
    return to_response(request, actor)
