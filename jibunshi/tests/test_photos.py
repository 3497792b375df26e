"""
API tests for photo uploads — /api/photos

Content is sniffed, not trusted: the client Content-Type is ignored.
"""
from __future__ import annotations

import os

import pytest
from httpx import AsyncClient

from jibunshi.config import settings
from jibunshi.photos.storage import UnsupportedImageError, sniff_image_format


def test_sniff_accepts_png_and_jpeg(png_bytes) -> None:
    assert sniff_image_format(png_bytes()) == "PNG"
    assert sniff_image_format(png_bytes(fmt="JPEG")) == "JPEG"


def test_sniff_rejects_other_formats(png_bytes) -> None:
    with pytest.raises(UnsupportedImageError):
        sniff_image_format(b"%PDF-1.4 not an image")
    with pytest.raises(UnsupportedImageError):
        sniff_image_format(png_bytes(fmt="BMP"))


@pytest.mark.asyncio
async def test_upload_stores_file_and_row(client: AsyncClient, app, register, upload_photo) -> None:
    user_id, headers = await register()
    photo = await upload_photo(headers, description="七五三")

    assert photo["user_id"] == user_id
    assert photo["file_path"].startswith("/uploads/")
    assert photo["file_path"].endswith(".png")
    assert photo["description"] == "七五三"
    assert photo["stage"] == "childhood"
    assert os.path.isfile(os.path.join(app.state.upload_dir, photo["filename"]))

    served = await client.get(photo["file_path"])
    assert served.status_code == 200


@pytest.mark.asyncio
async def test_upload_accepts_file_field_name(client: AsyncClient, register, png_bytes) -> None:
    _, headers = await register()
    response = await client.post(
        "/api/photos",
        files={"file": ("x.jpg", png_bytes(fmt="JPEG"), "application/octet-stream")},
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["file_path"].endswith(".jpg")


@pytest.mark.asyncio
async def test_upload_without_file_is_bad_request(client: AsyncClient, register) -> None:
    _, headers = await register()
    response = await client.post("/api/photos", data={"stage": "school"}, headers=headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_upload_non_image_is_unsupported(client: AsyncClient, app, register) -> None:
    _, headers = await register()
    response = await client.post(
        "/api/photos",
        files={"photo": ("fake.png", b"definitely not a picture", "image/png")},
        headers=headers,
    )
    assert response.status_code == 415
    assert response.json()["error"]["code"] == "INVALID_MIME_TYPE"
    assert os.listdir(app.state.upload_dir) == []


@pytest.mark.asyncio
async def test_upload_over_size_limit(client: AsyncClient, app, register, png_bytes, monkeypatch) -> None:
    _, headers = await register()
    contents = png_bytes(size=(64, 64))
    monkeypatch.setattr(settings, "max_file_size", len(contents) - 1)

    response = await client.post(
        "/api/photos",
        files={"photo": ("big.png", contents, "image/png")},
        headers=headers,
    )
    assert response.status_code == 413
    assert response.json()["error"]["code"] == "FILE_TOO_LARGE"
    assert os.listdir(app.state.upload_dir) == []


@pytest.mark.asyncio
async def test_list_get_and_delete(client: AsyncClient, app, register, upload_photo) -> None:
    _, headers = await register(name="持ち主", birth_month=2, birth_day=2)
    _, other = await register(name="他人", birth_month=2, birth_day=3)
    first = await upload_photo(headers)
    await upload_photo(headers)

    listed = (await client.get("/api/photos", headers=headers)).json()
    assert len(listed) == 2
    assert (await client.get("/api/photos", headers=other)).json() == []

    assert (await client.get(f"/api/photos/{first['id']}", headers=other)).status_code == 403
    assert (await client.delete(f"/api/photos/{first['id']}", headers=other)).status_code == 403

    deleted = await client.delete(f"/api/photos/{first['id']}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["fileRemoved"] is True
    assert not os.path.exists(os.path.join(app.state.upload_dir, first["filename"]))
    assert (await client.get(f"/api/photos/{first['id']}", headers=headers)).status_code == 404
