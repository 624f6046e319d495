"""
tests/test_notifications.py
Tests for notification dispatch, the Celery task that writes them, and
in-app read state: listing, marking as read, unread count, clearing.
"""

import asyncio
import time
import uuid

import pytest
from httpx import AsyncClient
from pybreaker import STATE_OPEN
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core import notifications
from core.notifications import dispatch_breaker, notify
from shared.models.models import Notification, NotificationType, PrayerRequest, User
from tasks.notification_tasks import create_notification
from tests.conftest import actor_for, auth_headers


async def _make_notification(db: AsyncSession, user: User, **kwargs) -> Notification:
    notification = Notification(
        user_id=user.id,
        message=kwargs.pop("message", "Bob Stone prayed for your request: Healing"),
        type=kwargs.pop("type", NotificationType.PRAYER_RECEIVED),
        **kwargs,
    )
    db.add(notification)
    await db.commit()
    return notification


# ── Dispatch ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_notify_publishes_task(notify_mock):
    target, related = uuid.uuid4(), uuid.uuid4()
    assert await notify(target, "hello", NotificationType.COMMENT_RECEIVED, related) is True
    notify_mock.delay.assert_called_once_with(
        str(target), "hello", "COMMENT_RECEIVED", str(related)
    )


@pytest.mark.asyncio
async def test_notify_without_related_entity(notify_mock):
    target = uuid.uuid4()
    await notify(target, "hello", NotificationType.PRAYER_RECEIVED)
    notify_mock.delay.assert_called_once_with(str(target), "hello", "PRAYER_RECEIVED", None)


@pytest.mark.asyncio
async def test_notify_swallows_publish_failure(notify_mock):
    notify_mock.delay.side_effect = ConnectionError("broker unreachable")
    assert await notify(uuid.uuid4(), "hello", NotificationType.PRAYER_RECEIVED) is False


@pytest.mark.asyncio
async def test_breaker_opens_and_short_circuits(notify_mock):
    notify_mock.delay.side_effect = ConnectionError("broker unreachable")
    for _ in range(dispatch_breaker.fail_max):
        assert await notify(uuid.uuid4(), "hello", NotificationType.PRAYER_RECEIVED) is False
    assert dispatch_breaker.current_state == STATE_OPEN

    notify_mock.delay.reset_mock()
    notify_mock.delay.side_effect = None
    assert await notify(uuid.uuid4(), "hello", NotificationType.PRAYER_RECEIVED) is False
    notify_mock.delay.assert_not_called()


@pytest.mark.asyncio
async def test_slow_broker_does_not_stall_event_loop(
    client: AsyncClient, db: AsyncSession, user: User, other_user: User, notify_mock
):
    """A publish stuck for half a second must not freeze other work on the loop."""
    notify_mock.delay.side_effect = lambda *args: time.sleep(0.5)
    request = PrayerRequest(title="Exams", description="Finals next week", author_id=user.id)
    db.add(request)
    await db.commit()

    loop = asyncio.get_running_loop()
    gaps = []
    finished = asyncio.Event()

    async def ticker():
        last = loop.time()
        while not finished.is_set():
            await asyncio.sleep(0.01)
            now = loop.time()
            gaps.append(now - last)
            last = now

    ticking = asyncio.create_task(ticker())
    response = await client.post(
        f"/prayer-requests/{request.id}/comments",
        json={"content": "Good luck!"},
        headers=auth_headers(other_user),
    )
    finished.set()
    await ticking

    assert response.status_code == 201
    notify_mock.delay.assert_called_once()
    assert max(gaps) < 0.25


# ── Task ───────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_task_writes_unread_notification(db: AsyncSession, user: User):
    related = uuid.uuid4()
    result = create_notification.apply(
        args=[str(user.id), "Carol commented", "COMMENT_RECEIVED", str(related)]
    )
    notification_id = result.get()
    assert notification_id is not None

    notification = await db.get(Notification, uuid.UUID(notification_id))
    assert notification.user_id == user.id
    assert notification.message == "Carol commented"
    assert notification.type == NotificationType.COMMENT_RECEIVED
    assert notification.related_entity_id == related
    assert notification.is_read is False


@pytest.mark.asyncio
async def test_task_drops_notification_for_missing_user(db: AsyncSession):
    result = create_notification.apply(
        args=[str(uuid.uuid4()), "Nobody home", "PRAYER_RECEIVED", None]
    )
    assert result.get() is None
    assert await db.scalar(select(func.count(Notification.id))) == 0


@pytest.mark.asyncio
async def test_deleting_user_removes_their_notifications(
    db: AsyncSession, user: User, other_user: User
):
    await _make_notification(db, user)
    await _make_notification(db, other_user)

    await db.delete(user)
    await db.commit()

    remaining = (await db.execute(select(Notification.user_id))).scalars().all()
    assert remaining == [other_user.id]


# ── Listing ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_get_notifications_empty(client: AsyncClient, user: User):
    """User with no notifications gets empty list."""
    response = await client.get("/notifications", headers=auth_headers(user))
    assert response.status_code == 200
    data = response.json()
    assert data["items"] == []
    assert data["total"] == 0


@pytest.mark.asyncio
async def test_get_notifications_returns_own_newest_first(
    client: AsyncClient, db: AsyncSession, user: User, other_user: User
):
    older = await _make_notification(db, user, message="older")
    newer = await _make_notification(db, user, message="newer")
    await _make_notification(db, other_user, message="not yours")

    response = await client.get("/notifications", headers=auth_headers(user))
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [n["id"] for n in data["items"]] == [str(newer.id), str(older.id)]


@pytest.mark.asyncio
async def test_unread_only_filter(client: AsyncClient, db: AsyncSession, user: User):
    await _make_notification(db, user, is_read=True)
    unread = await _make_notification(db, user)

    response = await client.get(
        "/notifications", params={"unread_only": True}, headers=auth_headers(user)
    )
    assert response.status_code == 200
    assert [n["id"] for n in response.json()["items"]] == [str(unread.id)]


@pytest.mark.asyncio
async def test_unread_count(client: AsyncClient, db: AsyncSession, user: User):
    await _make_notification(db, user)
    await _make_notification(db, user)
    await _make_notification(db, user, is_read=True)

    response = await client.get("/notifications/unread-count", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["unread_count"] == 2


# ── Marking read ───────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_mark_read(client: AsyncClient, db: AsyncSession, user: User):
    notification = await _make_notification(db, user)

    response = await client.put(
        f"/notifications/{notification.id}/read", headers=auth_headers(user)
    )
    assert response.status_code == 200
    data = response.json()
    assert data["is_read"] is True
    assert data["read_at"] is not None


@pytest.mark.asyncio
async def test_mark_someone_elses_notification_forbidden(
    client: AsyncClient, db: AsyncSession, user: User, other_user: User
):
    notification = await _make_notification(db, user)

    response = await client.put(
        f"/notifications/{notification.id}/read", headers=auth_headers(other_user)
    )
    assert response.status_code == 403

    await db.refresh(notification)
    assert notification.is_read is False


@pytest.mark.asyncio
async def test_mark_missing_notification_returns_404(client: AsyncClient, user: User):
    response = await client.put(f"/notifications/{uuid.uuid4()}/read", headers=auth_headers(user))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_mark_all_read_only_touches_own(
    client: AsyncClient, db: AsyncSession, user: User, other_user: User
):
    await _make_notification(db, user)
    await _make_notification(db, user)
    theirs = await _make_notification(db, other_user)

    response = await client.put("/notifications/read-all", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["message"] == "2 notifications marked as read"

    assert await notifications.unread_count(db, actor_for(user)) == 0
    await db.refresh(theirs)
    assert theirs.is_read is False


@pytest.mark.asyncio
async def test_notification_after_mark_all_read_counts_as_unread(
    client: AsyncClient, db: AsyncSession, user: User
):
    await _make_notification(db, user)
    response = await client.put("/notifications/read-all", headers=auth_headers(user))
    assert response.status_code == 200

    fresh = await _make_notification(db, user, message="Carol commented on your request")

    response = await client.get("/notifications/unread-count", headers=auth_headers(user))
    assert response.json()["unread_count"] == 1
    response = await client.get(
        "/notifications", params={"unread_only": True}, headers=auth_headers(user)
    )
    assert [n["id"] for n in response.json()["items"]] == [str(fresh.id)]


@pytest.mark.asyncio
async def test_clear_read(client: AsyncClient, db: AsyncSession, user: User):
    await _make_notification(db, user, is_read=True)
    unread = await _make_notification(db, user)

    response = await client.delete("/notifications/clear-read", headers=auth_headers(user))
    assert response.status_code == 200

    remaining = (await db.execute(select(Notification.id))).scalars().all()
    assert remaining == [unread.id]


@pytest.mark.asyncio
async def test_notifications_require_auth(client: AsyncClient):
    response = await client.get("/notifications")
    assert response.status_code == 401
