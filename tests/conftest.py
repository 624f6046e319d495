"""
tests/conftest.py
Shared fixtures: a throwaway SQLite database, an HTTP client over the ASGI
app with Redis replaced by fakeredis, seeded users/groups, and a mock for
the Celery notification task.
"""

import os
import tempfile

# Test modules also import this file as tests.conftest; both copies share one database
_TEST_DIR = os.environ.get("PRAYER_PORTAL_TEST_DIR") or tempfile.mkdtemp(prefix="prayer-portal-tests-")
os.environ["PRAYER_PORTAL_TEST_DIR"] = _TEST_DIR
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["APP_ENV"] = "test"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"

from unittest.mock import patch  # noqa: E402

import fakeredis.aioredis  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event, insert  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from config.database import Base, engine  # noqa: E402
from config.redis_client import get_redis  # noqa: E402
from config.settings import settings  # noqa: E402
from core.identity import Actor  # noqa: E402
from core.notifications import dispatch_breaker  # noqa: E402
from main import app  # noqa: E402
from shared.models.models import Group, User, UserRole, group_members  # noqa: E402
from shared.utils.security import create_access_token, hash_password  # noqa: E402

PASSWORD = "password123"
PASSWORD_HASH = hash_password(PASSWORD)


# ── Database ──────────────────────────────────────────────────

# Fixture data goes through an autocommit connection so test code never
# holds a SQLite write lock while the app is serving a request.
fixture_engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)


@event.listens_for(fixture_engine.sync_engine, "connect")
def _fixture_on_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


FixtureSession = async_sessionmaker(fixture_engine, expire_on_commit=False, autoflush=False)


@pytest.fixture(autouse=True)
async def setup_database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db():
    async with FixtureSession() as session:
        yield session


# ── Notifications ─────────────────────────────────────────────

@pytest.fixture(autouse=True)
def notify_mock():
    """Replaces the Celery task; assert on notify_mock.delay."""
    dispatch_breaker.close()
    with patch("core.notifications.create_notification") as task:
        yield task
    dispatch_breaker.close()


# ── HTTP client ───────────────────────────────────────────────

@pytest.fixture
async def redis():
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
async def client(redis):
    app.dependency_overrides[get_redis] = lambda: redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ── Data helpers ──────────────────────────────────────────────

async def make_user(db, username: str, role: UserRole = UserRole.USER, **kwargs) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        first_name=kwargs.pop("first_name", username.capitalize()),
        last_name=kwargs.pop("last_name", "Tester"),
        password_hash=PASSWORD_HASH,
        role=role,
        **kwargs,
    )
    db.add(user)
    await db.commit()
    return user


async def make_group(db, leader: User, name: str = "Morning Prayer") -> Group:
    group = Group(name=name, description="Daily intercession", leader_id=leader.id)
    group.leader = leader
    db.add(group)
    await db.flush()
    await db.execute(insert(group_members).values(group_id=group.id, user_id=leader.id))
    await db.commit()
    return group


async def add_member(db, group: Group, user: User) -> None:
    await db.execute(insert(group_members).values(group_id=group.id, user_id=user.id))
    await db.commit()


def auth_headers(user: User) -> dict:
    token, _ = create_access_token(
        user_id=str(user.id),
        role=UserRole(user.role).value,
        username=user.username,
    )
    return {"Authorization": f"Bearer {token}"}


def actor_for(user: User) -> Actor:
    return Actor.from_user(user)


# ── Fixtures ──────────────────────────────────────────────────

@pytest.fixture
async def user(db) -> User:
    return await make_user(db, "alice", first_name="Alice", last_name="Walker")


@pytest.fixture
async def other_user(db) -> User:
    return await make_user(db, "bob", first_name="Bob", last_name="Stone")


@pytest.fixture
async def third_user(db) -> User:
    return await make_user(db, "carol", first_name="Carol", last_name="Reyes")


@pytest.fixture
async def admin_user(db) -> User:
    return await make_user(db, "admin", role=UserRole.ADMIN, first_name="Ada", last_name="Admin")


@pytest.fixture
async def group(db, user) -> Group:
    """Group led by `user`."""
    return await make_group(db, user)
