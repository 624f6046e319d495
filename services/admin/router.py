"""
services/admin/router.py
Admin-only endpoints: user moderation, content moderation, resource
management, platform analytics, and immutable audit log.

ALL mutations are logged to AdminAuditLog in the same transaction.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from core import comments, prayer_requests
from core.errors import NotFoundError, ValidationError
from core.identity import Actor
from shared.middleware.auth import require_admin
from shared.models.models import (
    AdminAuditLog,
    Group,
    PrayerRequest,
    Resource,
    User,
    UserRole,
    Visibility,
)
from shared.schemas.schemas import (
    AdminAnalyticsResponse,
    AdminRoleUpdateRequest,
    MessageResponse,
    PaginatedResponse,
    ResourceCreate,
    ResourceResponse,
    ResourceUpdate,
    UserResponse,
)
from shared.utils.pagination import paginate
from services.prayer.router import to_response as prayer_to_response

router = APIRouter(prefix="/admin", tags=["Admin"])


# ── Helpers ────────────────────────────────────────────────────────────────────

def _log(
    db: AsyncSession,
    admin: User,
    action: str,
    entity_type: str,
    entity_id: str,
    payload: dict | None = None,
    request: Request | None = None,
):
    """Append an immutable record to AdminAuditLog."""
    log = AdminAuditLog(
        admin_id=admin.id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        payload=payload or {},
        ip_address=request.client.host if request and request.client else None,
    )
    db.add(log)


async def _load_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return user


# ── Analytics ─────────────────────────────────────────────────────────────────

@router.get("/analytics", response_model=AdminAnalyticsResponse)
async def get_analytics(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Platform-wide counts for the dashboard."""
    recent_since = datetime.now(timezone.utc) - timedelta(days=30)

    total_users = await db.scalar(select(func.count(User.id)))
    active_users = await db.scalar(select(func.count(User.id)).where(User.is_active.is_(True)))
    total_requests = await db.scalar(select(func.count(PrayerRequest.id)))
    active_requests = await db.scalar(
        select(func.count(PrayerRequest.id)).where(PrayerRequest.is_answered.is_(False))
    )
    public_requests = await db.scalar(
        select(func.count(PrayerRequest.id)).where(PrayerRequest.visibility == Visibility.PUBLIC)
    )
    recent_requests = await db.scalar(
        select(func.count(PrayerRequest.id)).where(PrayerRequest.created_at >= recent_since)
    )
    total_groups = await db.scalar(select(func.count(Group.id)))

    return AdminAnalyticsResponse(
        total_users=total_users or 0,
        active_users=active_users or 0,
        total_prayer_requests=total_requests or 0,
        active_prayer_requests=active_requests or 0,
        public_prayer_requests=public_requests or 0,
        recent_prayer_requests=recent_requests or 0,
        total_groups=total_groups or 0,
    )


# ── User Moderation ───────────────────────────────────────────────────────────

@router.get("/users", response_model=PaginatedResponse)
async def list_users(
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    query = select(User)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                User.username.ilike(pattern),
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            )
        )
    return await paginate(
        db,
        query.order_by(User.created_at.desc(), User.id),
        page,
        page_size,
        transform=UserResponse.model_validate,
    )


@router.put("/users/{user_id}/toggle-status", response_model=UserResponse)
async def toggle_user_status(
    user_id: UUID,
    request: Request,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Enable or disable an account. Disabled accounts cannot sign in."""
    if user_id == current_user.id:
        raise ValidationError("You cannot disable your own account")

    user = await _load_user(db, user_id)
    user.is_active = not user.is_active
    _log(db, current_user, "TOGGLE_USER_STATUS", "user", str(user_id),
         {"is_active": user.is_active}, request)
    await db.commit()
    return UserResponse.model_validate(user)


@router.put("/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: UUID,
    data: AdminRoleUpdateRequest,
    request: Request,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await _load_user(db, user_id)
    old_role = UserRole(user.role).value
    user.role = UserRole(data.role)
    _log(db, current_user, "UPDATE_USER_ROLE", "user", str(user_id),
         {"from": old_role, "to": user.role.value}, request)
    await db.commit()
    return UserResponse.model_validate(user)


# ── Content Moderation ────────────────────────────────────────────────────────

@router.get("/prayer-requests", response_model=PaginatedResponse)
async def list_prayer_requests(
    visibility: Optional[str] = Query(None, description="PUBLIC, PRIVATE, GROUP_ONLY or ADMIN_ONLY"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: str = Query("created_at"),
    sort_dir: str = Query("desc"),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """All prayer requests, optionally filtered by visibility (case-insensitive)."""
    parsed = Visibility.parse(visibility) if visibility else None
    actor = Actor.from_user(current_user)
    result = await prayer_requests.list_by_visibility(
        db, parsed, page, page_size, sort_by, sort_dir
    )
    result["items"] = [prayer_to_response(r, actor) for r in result["items"]]
    return result


@router.delete("/prayer-requests/{request_id}", response_model=MessageResponse)
async def delete_prayer_request(
    request_id: UUID,
    request: Request,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    _log(db, current_user, "DELETE_PRAYER_REQUEST", "prayer_request", str(request_id), request=request)
    await prayer_requests.delete_prayer_request(db, Actor.from_user(current_user), request_id)
    return MessageResponse(message="Prayer request deleted successfully")


@router.delete("/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: UUID,
    request: Request,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    _log(db, current_user, "DELETE_COMMENT", "comment", str(comment_id), request=request)
    await comments.delete_comment(db, Actor.from_user(current_user), comment_id)
    return MessageResponse(message="Comment deleted successfully")


# ── Resources ─────────────────────────────────────────────────────────────────

@router.get("/resources", response_model=PaginatedResponse)
async def list_resources(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Every resource, inactive ones included."""
    return await paginate(
        db,
        select(Resource).order_by(Resource.created_at.desc(), Resource.id),
        page,
        page_size,
        transform=ResourceResponse.model_validate,
    )


@router.post("/resources", response_model=ResourceResponse, status_code=201)
async def create_resource(
    data: ResourceCreate,
    request: Request,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    resource = Resource(**data.model_dump())
    db.add(resource)
    await db.flush()
    _log(db, current_user, "CREATE_RESOURCE", "resource", str(resource.id),
         {"title": resource.title}, request)
    await db.commit()
    return ResourceResponse.model_validate(resource)


@router.put("/resources/{resource_id}", response_model=ResourceResponse)
async def update_resource(
    resource_id: UUID,
    data: ResourceUpdate,
    request: Request,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    resource = await db.get(Resource, resource_id)
    if not resource:
        raise NotFoundError("Resource", resource_id)

    updates = data.model_dump(exclude_none=True)
    for field, value in updates.items():
        setattr(resource, field, value)
    _log(db, current_user, "UPDATE_RESOURCE", "resource", str(resource_id),
         {"fields": sorted(updates)}, request)
    await db.commit()
    return ResourceResponse.model_validate(resource)


@router.delete("/resources/{resource_id}", response_model=MessageResponse)
async def delete_resource(
    resource_id: UUID,
    request: Request,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    resource = await db.get(Resource, resource_id)
    if not resource:
        raise NotFoundError("Resource", resource_id)

    await db.delete(resource)
    _log(db, current_user, "DELETE_RESOURCE", "resource", str(resource_id),
         {"title": resource.title}, request)
    await db.commit()
    return MessageResponse(message="Resource deleted successfully")


# ── Audit Log ─────────────────────────────────────────────────────────────────

@router.get("/audit-logs")
async def get_audit_logs(
    action: str = Query(None, description="Filter by action type e.g. DELETE_COMMENT"),
    entity_type: str = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Immutable admin audit log; append-only, never editable."""
    query = (
        select(AdminAuditLog, User)
        .join(User, User.id == AdminAuditLog.admin_id)
        .order_by(AdminAuditLog.created_at.desc())
    )
    if action:
        query = query.where(AdminAuditLog.action == action.upper())
    if entity_type:
        query = query.where(AdminAuditLog.entity_type == entity_type)

    total = await db.scalar(select(func.count()).select_from(query.order_by(None).subquery()))
    result = await db.execute(query.offset((page - 1) * page_size).limit(page_size))
    rows = result.all()

    return {
        "items": [
            {
                "id": str(row[0].id),
                "admin_username": row[1].username,
                "action": row[0].action,
                "entity_type": row[0].entity_type,
                "entity_id": row[0].entity_id,
                "payload": row[0].payload,
                "ip_address": row[0].ip_address,
                "created_at": row[0].created_at.isoformat(),
            }
            for row in rows
        ],
        "total": total,
        "page": page,
        "page_size": page_size,
        "pages": -(-total // page_size),  # ceiling division
    }
