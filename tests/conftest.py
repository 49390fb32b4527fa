"""Pytest configuration and shared fixtures."""

import asyncio
import time

import httpx
import jwt
import pytest
import pytest_asyncio

from points_service.app import app
from points_service.routers.dependencies import get_store, get_token_verifier
from points_service.services.token_verifier import TokenVerifier
from points_service.store.memory_store import MemoryStore, MemoryTransaction

PROJECT_ID = "points-test"
SECRET = "test-secret-key-with-enough-bytes-for-hs256"
USER_ID = "user_test_001"


def make_token(sub=USER_ID, secret=SECRET, project_id=PROJECT_ID, expires_in=3600, **overrides):
    now = int(time.time())
    claims = {
        "sub": sub,
        "iat": now,
        "exp": now + expires_in,
        "aud": project_id,
        "iss": f"https://securetoken.google.com/{project_id}",
    }
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_header(sub=USER_ID, **kwargs):
    return {"Authorization": f"Bearer {make_token(sub=sub, **kwargs)}"}


class InterleavingTransaction(MemoryTransaction):
    """Yields to the event loop after reading, so concurrent awards overlap."""

    async def snapshot(self):
        record = await super().snapshot()
        await asyncio.sleep(0)
        return record


class InterleavingMemoryStore(MemoryStore):
    async def _begin(self, user_id):
        return InterleavingTransaction(self, user_id)


@pytest.fixture
def memory_store():
    return MemoryStore(max_transaction_attempts=5)


@pytest.fixture
def interleaving_store():
    return InterleavingMemoryStore(max_transaction_attempts=5)


@pytest.fixture
def verifier():
    return TokenVerifier(project_id=PROJECT_ID, secret=SECRET)


@pytest_asyncio.fixture
async def client(memory_store, verifier):
    """HTTP client against the app, backed by the in-memory store."""
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_token_verifier] = lambda: verifier
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
