"""
services/resource/router.py
Public catalogue of devotional resources. Admin CRUD lives in services/admin.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from core.errors import NotFoundError
from shared.models.models import Resource, ResourceType
from shared.schemas.schemas import PaginatedResponse, ResourceResponse
from shared.utils.pagination import paginate

router = APIRouter(prefix="/resources", tags=["Resources"])


@router.get("", response_model=PaginatedResponse)
async def list_resources(
    type: Optional[ResourceType] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
):
    """Active resources, newest first."""
    query = select(Resource).where(Resource.is_active.is_(True))
    if type:
        query = query.where(Resource.type == type)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(Resource.title.ilike(pattern), Resource.content.ilike(pattern)))

    return await paginate(
        db,
        query.order_by(Resource.created_at.desc(), Resource.id),
        page,
        page_size,
        transform=ResourceResponse.model_validate,
    )


@router.get("/types", response_model=List[str])
async def resource_types():
    return [t.value for t in ResourceType]


@router.get("/{resource_id}", response_model=ResourceResponse)
async def get_resource(resource_id: UUID, db: AsyncSession = Depends(get_db)):
    resource = await db.get(Resource, resource_id)
    if not resource or not resource.is_active:
        raise NotFoundError("Resource", resource_id)
    return ResourceResponse.model_validate(resource)
