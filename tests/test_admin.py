"""
tests/test_admin.py
Tests for admin-only endpoints: user moderation, content moderation,
resources, analytics, audit log.
"""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import (
    AdminAuditLog,
    Comment,
    PrayerRequest,
    Resource,
    ResourceType,
    User,
    UserRole,
    Visibility,
)
from tests.conftest import auth_headers


async def _seed_requests(db: AsyncSession, author: User) -> dict:
    rows = {}
    for visibility in (Visibility.PUBLIC, Visibility.PRIVATE, Visibility.ADMIN_ONLY):
        request = PrayerRequest(
            title=f"{visibility.value} request",
            description="Please pray",
            visibility=visibility,
            author_id=author.id,
        )
        db.add(request)
        rows[visibility] = request
    await db.commit()
    return rows


async def _audit_actions(db: AsyncSession) -> list:
    result = await db.execute(select(AdminAuditLog.action).order_by(AdminAuditLog.created_at))
    return list(result.scalars().all())


# ── Access Control ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path", ["/admin/analytics", "/admin/users", "/admin/resources", "/admin/audit-logs"]
)
async def test_user_cannot_access_admin_endpoints(client: AsyncClient, user: User, path: str):
    """Regular users get 403 on all admin endpoints."""
    response = await client.get(path, headers=auth_headers(user))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unauthenticated_cannot_access_admin(client: AsyncClient):
    response = await client.get("/admin/analytics")
    assert response.status_code == 401


# ── Analytics ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_analytics_counts(
    client: AsyncClient, db: AsyncSession, user: User, other_user: User, admin_user: User, group
):
    rows = await _seed_requests(db, user)
    rows[Visibility.PUBLIC].is_answered = True
    other_user.is_active = False
    await db.commit()

    response = await client.get("/admin/analytics", headers=auth_headers(admin_user))
    assert response.status_code == 200
    data = response.json()
    assert data["total_users"] == 3
    assert data["active_users"] == 2
    assert data["total_prayer_requests"] == 3
    assert data["active_prayer_requests"] == 2
    assert data["public_prayer_requests"] == 1
    assert data["recent_prayer_requests"] == 3
    assert data["total_groups"] == 1


# ── User Moderation ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_list_users_with_search(
    client: AsyncClient, user: User, other_user: User, admin_user: User
):
    response = await client.get(
        "/admin/users", params={"search": "stone"}, headers=auth_headers(admin_user)
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["username"] == "bob"


@pytest.mark.asyncio
async def test_toggle_user_status(
    client: AsyncClient, db: AsyncSession, user: User, admin_user: User
):
    response = await client.put(
        f"/admin/users/{user.id}/toggle-status", headers=auth_headers(admin_user)
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    # Existing token stops working for a disabled account
    response = await client.get("/auth/me", headers=auth_headers(user))
    assert response.status_code == 403

    assert await _audit_actions(db) == ["TOGGLE_USER_STATUS"]


@pytest.mark.asyncio
async def test_admin_cannot_disable_self(client: AsyncClient, admin_user: User):
    response = await client.put(
        f"/admin/users/{admin_user.id}/toggle-status", headers=auth_headers(admin_user)
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_toggle_missing_user(client: AsyncClient, admin_user: User):
    response = await client.put(
        f"/admin/users/{uuid.uuid4()}/toggle-status", headers=auth_headers(admin_user)
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_promote_user_to_admin(
    client: AsyncClient, db: AsyncSession, user: User, admin_user: User
):
    response = await client.put(
        f"/admin/users/{user.id}/role", json={"role": "ADMIN"}, headers=auth_headers(admin_user)
    )
    assert response.status_code == 200
    assert response.json()["role"] == "ADMIN"

    await db.refresh(user)
    assert user.role == UserRole.ADMIN

    # Role is read from the database on every request
    response = await client.get("/admin/analytics", headers=auth_headers(user))
    assert response.status_code == 200


# ── Content Moderation ─────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_admin_lists_by_visibility(
    client: AsyncClient, db: AsyncSession, user: User, admin_user: User
):
    await _seed_requests(db, user)

    response = await client.get(
        "/admin/prayer-requests", params={"visibility": "admin_only"}, headers=auth_headers(admin_user)
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["visibility"] == "ADMIN_ONLY"

    response = await client.get("/admin/prayer-requests", headers=auth_headers(admin_user))
    assert response.json()["total"] == 3


@pytest.mark.asyncio
async def test_admin_list_rejects_unknown_visibility(client: AsyncClient, admin_user: User):
    response = await client.get(
        "/admin/prayer-requests", params={"visibility": "everyone"}, headers=auth_headers(admin_user)
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_VISIBILITY"


@pytest.mark.asyncio
async def test_admin_only_request_hidden_from_admin_feed(
    client: AsyncClient, db: AsyncSession, user: User, admin_user: User
):
    """ADMIN_ONLY is author-only on the view path; moderation is a separate listing."""
    rows = await _seed_requests(db, user)

    response = await client.get(
        f"/prayer-requests/{rows[Visibility.ADMIN_ONLY].id}", headers=auth_headers(admin_user)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_deletes_prayer_request(
    client: AsyncClient, db: AsyncSession, user: User, admin_user: User
):
    rows = await _seed_requests(db, user)
    target = rows[Visibility.PRIVATE]

    response = await client.delete(
        f"/admin/prayer-requests/{target.id}", headers=auth_headers(admin_user)
    )
    assert response.status_code == 200
    assert await db.scalar(select(func.count(PrayerRequest.id))) == 2
    assert await _audit_actions(db) == ["DELETE_PRAYER_REQUEST"]


@pytest.mark.asyncio
async def test_admin_delete_missing_request_leaves_no_audit(
    client: AsyncClient, db: AsyncSession, admin_user: User
):
    response = await client.delete(
        f"/admin/prayer-requests/{uuid.uuid4()}", headers=auth_headers(admin_user)
    )
    assert response.status_code == 404
    assert await _audit_actions(db) == []


@pytest.mark.asyncio
async def test_admin_deletes_comment(
    client: AsyncClient, db: AsyncSession, user: User, other_user: User, admin_user: User
):
    rows = await _seed_requests(db, user)
    comment = Comment(
        content="Off topic", author_id=other_user.id, prayer_request_id=rows[Visibility.PUBLIC].id
    )
    db.add(comment)
    await db.commit()

    response = await client.delete(f"/admin/comments/{comment.id}", headers=auth_headers(admin_user))
    assert response.status_code == 200
    assert await db.scalar(select(func.count(Comment.id))) == 0
    assert await _audit_actions(db) == ["DELETE_COMMENT"]


# ── Resources ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_resource_crud(client: AsyncClient, db: AsyncSession, admin_user: User):
    response = await client.post(
        "/admin/resources",
        json={"title": "Psalm 23", "content": "The Lord is my shepherd", "type": "SCRIPTURE"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 201
    resource_id = response.json()["id"]
    assert response.json()["type"] == "SCRIPTURE"

    response = await client.put(
        f"/admin/resources/{resource_id}",
        json={"is_active": False},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    response = await client.delete(
        f"/admin/resources/{resource_id}", headers=auth_headers(admin_user)
    )
    assert response.status_code == 200
    assert await db.scalar(select(func.count(Resource.id))) == 0

    assert await _audit_actions(db) == ["CREATE_RESOURCE", "UPDATE_RESOURCE", "DELETE_RESOURCE"]


@pytest.mark.asyncio
async def test_admin_lists_all_resources_newest_first(
    client: AsyncClient, db: AsyncSession, admin_user: User
):
    for title, active in [("Psalm 23", True), ("Retired guide", False), ("Lectio Divina", True)]:
        db.add(Resource(title=title, type=ResourceType.ARTICLE, is_active=active))
        await db.commit()

    response = await client.get("/admin/resources", headers=auth_headers(admin_user))
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert [r["title"] for r in data["items"]] == ["Lectio Divina", "Retired guide", "Psalm 23"]
    assert data["items"][1]["is_active"] is False

    response = await client.get(
        "/admin/resources", params={"page": 2, "page_size": 2}, headers=auth_headers(admin_user)
    )
    assert [r["title"] for r in response.json()["items"]] == ["Psalm 23"]


@pytest.mark.asyncio
async def test_user_cannot_create_resource(client: AsyncClient, user: User):
    response = await client.post(
        "/admin/resources",
        json={"title": "Sneaky", "type": ResourceType.ARTICLE.value},
        headers=auth_headers(user),
    )
    assert response.status_code == 403


# ── Audit Log ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_audit_log_filters(
    client: AsyncClient, user: User, other_user: User, admin_user: User
):
    await client.put(f"/admin/users/{user.id}/toggle-status", headers=auth_headers(admin_user))
    await client.put(
        f"/admin/users/{other_user.id}/role", json={"role": "ADMIN"}, headers=auth_headers(admin_user)
    )

    response = await client.get("/admin/audit-logs", headers=auth_headers(admin_user))
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert all(item["admin_username"] == "admin" for item in data["items"])

    response = await client.get(
        "/admin/audit-logs",
        params={"action": "update_user_role"},
        headers=auth_headers(admin_user),
    )
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["payload"] == {"from": "USER", "to": "ADMIN"}
    assert data["items"][0]["entity_id"] == str(other_user.id)
