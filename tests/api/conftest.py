"""Test fixtures for API integration tests."""

from collections.abc import AsyncGenerator

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from bookrats.models import User
from bookrats.utils.db import Database
from bookrats.utils.security import create_identity_token


@pytest_asyncio.fixture(scope="function")
async def test_app(database: Database, storage) -> AsyncGenerator[FastAPI, None]:
    """The application wired to the test database and mocked storage.

    httpx does not run the lifespan, so the handles it would create are
    attached here.
    """
    from bookrats.main import app

    app.state.db = database
    app.state.storage = storage
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def bearer(user: User) -> dict[str, str]:
    token = create_identity_token(user.auth_id, user.email, name=user.name)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict[str, str]:
    return bearer(test_user)


@pytest_asyncio.fixture
async def auth_headers2(test_user2: User) -> dict[str, str]:
    return bearer(test_user2)
