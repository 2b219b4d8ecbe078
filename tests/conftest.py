"""Shared test fixtures.

Tests run against an in-memory SQLite database through aiosqlite. The
environment is set before any `bookrats` import so the cached settings
pick it up.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("IDENTITY_JWT_SECRET", "bookrats-test-identity-secret-0123456789")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("ENABLE_METRICS", "true")

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from bookrats.config import get_settings
from bookrats.models import Group, GroupMember, User
from bookrats.services.storage import PhotoStorage
from bookrats.utils.db import Database

TEST_DATABASE_URL = "sqlite+aiosqlite://"


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def database() -> AsyncGenerator[Database, None]:
    """Fresh in-memory database with all tables for each test."""
    db = Database(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_db(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """A session bound to the test database."""
    async with database.session_factory() as session:
        yield session


# =============================================================================
# Storage Fixtures
# =============================================================================


def make_s3_session(
    put_object: AsyncMock | None = None,
    delete_object: AsyncMock | None = None,
) -> tuple[MagicMock, MagicMock]:
    """aioboto3-shaped session whose S3 client records put and delete calls."""
    s3 = MagicMock()
    s3.put_object = put_object or AsyncMock(return_value={})
    s3.delete_object = delete_object or AsyncMock(return_value={})

    client_cm = MagicMock()
    client_cm.__aenter__ = AsyncMock(return_value=s3)
    client_cm.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.client.return_value = client_cm
    return session, s3


@pytest.fixture
def s3_client() -> tuple[MagicMock, MagicMock]:
    return make_s3_session()


@pytest.fixture
def storage(s3_client) -> PhotoStorage:
    """PhotoStorage backed by a mocked S3 client."""
    session, _ = s3_client
    return PhotoStorage(get_settings(), session=session)


# =============================================================================
# Model Fixtures
# =============================================================================


async def create_user(
    db: AsyncSession,
    email: str,
    name: str | None = None,
    auth_id: str | None = None,
) -> User:
    user = User(auth_id=auth_id or f"auth-{email}", email=email, name=name)
    db.add(user)
    await db.commit()
    return user


async def add_member(db: AsyncSession, group: Group, user: User) -> GroupMember:
    membership = GroupMember(group_id=group.id, user_id=user.id)
    db.add(membership)
    await db.commit()
    return membership


@pytest_asyncio.fixture
async def test_user(test_db: AsyncSession) -> User:
    return await create_user(test_db, "ada@example.com", name="Ada")


@pytest_asyncio.fixture
async def test_user2(test_db: AsyncSession) -> User:
    return await create_user(test_db, "grace@example.com", name="Grace")


@pytest_asyncio.fixture
async def test_group(test_db: AsyncSession, test_user: User) -> Group:
    """A group created by test_user, who is its only member."""
    group = Group(title="Sci-fi Club", description="Dune first", created_by=test_user.id)
    test_db.add(group)
    await test_db.flush()
    test_db.add(GroupMember(group_id=group.id, user_id=test_user.id))
    await test_db.commit()
    # Start tests from an empty identity map, like a fresh request
    test_db.expunge_all()
    return group
