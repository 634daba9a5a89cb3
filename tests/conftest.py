"""Shared fixtures: a throwaway SQLite database, an API client and user helpers."""
from __future__ import annotations

import asyncio
import os
from typing import Callable, Dict, Iterator, Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URI", "sqlite+aiosqlite:///./test_stayprivate.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("AUTO_CREATE_TABLES", "true")

from app import models  # noqa: E402,F401
from app.core.database import AsyncSessionLocal, Base, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import User  # noqa: E402

API = "/api/v1"


async def _reset_schema() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def client() -> Iterator[TestClient]:
    asyncio.run(_reset_schema())
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register_user(client: TestClient) -> Callable[..., Dict]:
    def _register(name: str, email: Optional[str] = None, password: str = "password123") -> Dict:
        email = email or f"{name.lower()}@example.com"
        response = client.post(
            f"{API}/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        payload = response.json()
        return {
            "id": payload["user"]["id"],
            "email": email,
            "headers": {"Authorization": f"Bearer {payload['access_token']}"},
        }
    return _register


@pytest.fixture
def make_friends(client: TestClient) -> Callable[[Dict, Dict], int]:
    def _befriend(sender: Dict, receiver: Dict) -> int:
        sent = client.post(
            f"{API}/friends/requests",
            json={"receiver_id": receiver["id"]},
            headers=sender["headers"],
        )
        assert sent.status_code == 200, sent.text
        request_id = sent.json()["request"]["id"]
        accepted = client.put(
            f"{API}/friends/requests/{request_id}",
            json={"action": "accept"},
            headers=receiver["headers"],
        )
        assert accepted.status_code == 200, accepted.text
        return request_id
    return _befriend


@pytest_asyncio.fixture
async def db_session():
    await _reset_schema()
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def user_factory(db_session):
    async def _factory(name: str) -> User:
        user = User(
            name=name,
            email=f"{name.lower()}@example.com",
            hashed_password="test-hash",
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user
    return _factory
