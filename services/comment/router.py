"""
services/comment/router.py
Comments on prayer requests.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from core import comments
from core.identity import Actor
from shared.middleware.auth import get_actor
from shared.schemas.schemas import (
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    MessageResponse,
    PaginatedResponse,
)

router = APIRouter(tags=["Comments"])


@router.get("/prayer-requests/{request_id}/comments", response_model=PaginatedResponse)
async def list_comments(
    request_id: UUID,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await comments.list_comments(db, actor, request_id, page, page_size)
    result["items"] = [CommentResponse.model_validate(c) for c in result["items"]]
    return result


@router.post(
    "/prayer-requests/{request_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    request_id: UUID,
    data: CommentCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Comment on a request. The request author is notified unless they wrote the comment."""
    comment = await comments.create_comment(db, actor, request_id, data.content)
    return CommentResponse.model_validate(comment)


@router.put("/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: UUID,
    data: CommentUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    comment = await comments.update_comment(db, actor, comment_id, data.content)
    return CommentResponse.model_validate(comment)


@router.delete("/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    await comments.delete_comment(db, actor, comment_id)
    return MessageResponse(message="Comment deleted successfully")
