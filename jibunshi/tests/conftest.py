"""
Test configuration for Jibunshi API tests.

Every test gets a fresh application built by create_app() with:
  - an in-memory SQLite Database (StaticPool keeps the one connection alive)
  - a MagicMock Mistral client whose chat.complete_async is an AsyncMock
  - Redis disabled (app.state.redis = None)
  - upload / pdf directories under pytest's tmp_path

ASGITransport does not run the lifespan, so nothing here touches Alembic,
Redis or the network.
"""
from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from jibunshi.database import Database
from jibunshi.main import create_app


def completion(text: Any) -> SimpleNamespace:
    """Shape of a mistralai chat completion, as far as llm_service reads it."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


@pytest_asyncio.fixture
async def database():
    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def mistral() -> MagicMock:
    client = MagicMock()
    client.chat.complete_async = AsyncMock(return_value=completion("整えられた文章です。"))
    return client


@pytest.fixture
def app(database, mistral, tmp_path):
    return create_app(
        database,
        mistral=mistral,
        upload_dir=str(tmp_path / "uploads"),
        pdf_dir=str(tmp_path / "pdfs"),
    )


@pytest_asyncio.fixture
async def client(app):
    """Async httpx client using ASGI transport — no live server needed."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def register(client):
    """Register a user and return (user_id, auth headers)."""

    async def _register(
        name: str = "山田太郎",
        age: int = 78,
        birth_month: int = 4,
        birth_day: int = 12,
        pin: str = "1234",
    ) -> tuple[int, dict]:
        response = await client.post(
            "/api/users/register",
            json={
                "name": name,
                "age": age,
                "birthMonth": birth_month,
                "birthDay": birth_day,
                "pin": pin,
                "deviceId": "test-device",
            },
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return body["userId"], {"Authorization": f"Bearer {body['token']}"}

    return _register


@pytest.fixture
def png_bytes():
    """Small valid PNG produced with Pillow."""
    import io

    from PIL import Image

    def _make(size: tuple[int, int] = (8, 8), color: str = "red", fmt: str = "PNG") -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", size, color).save(buffer, format=fmt)
        return buffer.getvalue()

    return _make


@pytest.fixture
def upload_photo(client, png_bytes):
    async def _upload(headers: dict, description: Optional[str] = None) -> dict:
        data = {"stage": "childhood"}
        if description is not None:
            data["description"] = description
        response = await client.post(
            "/api/photos",
            files={"photo": ("family.png", png_bytes(), "image/png")},
            data=data,
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _upload


@pytest.fixture
def llm_reply(mistral):
    """Set the text the mocked model returns on its next calls."""

    def _set(text: Any) -> None:
        mistral.chat.complete_async.return_value = completion(text)

    return _set
