"""API test fixtures.

Provides an async HTTP client wired to the FastAPI app with the DI container
overridden to use fakes. Available to all colocated API tests under api/.

Pattern:
    1. Override get_container -> returns test_container (all fakes)
    2. Override get_db        -> yields an AsyncMock session
    3. Test hits the endpoint with a bearer token, asserts on HTTP response
       + fake state
"""

from unittest.mock import AsyncMock
from uuid import UUID

import jwt
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tierwave.api.deps import get_container, get_db
from tierwave.core.config import settings

TEST_USER_ID = UUID("00000000-0000-0000-0000-0000000000aa")


def _make_token(user_id: UUID = TEST_USER_ID, claim: str = "userId") -> str:
    """Sign a bearer token the way the account service does."""
    return jwt.encode({claim: str(user_id)}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _auth_headers(user_id: UUID = TEST_USER_ID) -> dict[str, str]:
    return {"Authorization": f"Bearer {_make_token(user_id)}"}


@pytest_asyncio.fixture
async def client(test_container):
    """Async HTTP client with faked DI container and database session."""
    from tierwave.main import app

    async def _fake_db():
        yield AsyncMock()

    app.dependency_overrides[get_container] = lambda: test_container
    app.dependency_overrides[get_db] = _fake_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
