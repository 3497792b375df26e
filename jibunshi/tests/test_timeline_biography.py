"""
API tests for /api/timeline and /api/biography — CRUD, ownership,
metadata and ordered photo links.
"""
from __future__ import annotations

import pytest
from httpx import AsyncClient


async def _create_entry(client: AsyncClient, headers: dict, **fields) -> dict:
    body = {"eventTitle": "入学式", "eventDescription": "桜の下で写真を撮った", **fields}
    response = await client.post("/api/timeline", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_entry_defaults(client: AsyncClient, register) -> None:
    user_id, headers = await register()
    entry = await _create_entry(client, headers, year=1953, month=4)
    assert entry["user_id"] == user_id
    assert entry["stage"] == "turning_points"
    assert entry["is_auto_generated"] is False
    assert entry["year"] == 1953


@pytest.mark.asyncio
async def test_create_entry_requires_title_and_description(client: AsyncClient, register) -> None:
    _, headers = await register()
    response = await client.post("/api/timeline", json={"eventTitle": "x"}, headers=headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_filters_by_stage(client: AsyncClient, register) -> None:
    _, headers = await register()
    await _create_entry(client, headers, stage="school")
    await _create_entry(client, headers, stage="work")

    assert len((await client.get("/api/timeline", headers=headers)).json()) == 2
    school = (await client.get("/api/timeline", params={"stage": "school"}, headers=headers)).json()
    assert [e["stage"] for e in school] == ["school"]


@pytest.mark.asyncio
async def test_update_and_delete_are_owner_only(client: AsyncClient, register) -> None:
    _, owner = await register(name="持ち主", birth_month=6, birth_day=1)
    _, other = await register(name="他人", birth_month=6, birth_day=2)
    entry = await _create_entry(client, owner)

    assert (await client.get(f"/api/timeline/{entry['id']}", headers=other)).status_code == 403
    assert (await client.put(f"/api/timeline/{entry['id']}", json={"eventTitle": "x"}, headers=other)).status_code == 403

    updated = await client.put(
        f"/api/timeline/{entry['id']}", json={"editedContent": "書き直した文章"}, headers=owner
    )
    assert updated.status_code == 200
    assert updated.json()["edited_content"] == "書き直した文章"
    assert updated.json()["event_title"] == "入学式"

    assert (await client.delete(f"/api/timeline/{entry['id']}", headers=owner)).status_code == 200
    assert (await client.get(f"/api/timeline/{entry['id']}", headers=owner)).status_code == 404


@pytest.mark.asyncio
async def test_metadata_upsert(client: AsyncClient, register) -> None:
    _, headers = await register()
    assert (await client.get("/api/timeline/metadata", headers=headers)).json() == {"important_events": []}

    await client.post("/api/timeline/metadata", json={"importantEvents": ["結婚", "長男誕生"]}, headers=headers)
    await client.post("/api/timeline/metadata", json={"importantEvents": ["定年"]}, headers=headers)
    response = await client.get("/api/timeline/metadata", headers=headers)
    assert response.json() == {"important_events": ["定年"]}


@pytest.mark.asyncio
async def test_photo_links_keep_order_and_skip_foreign_photos(
    client: AsyncClient, register, upload_photo
) -> None:
    _, owner = await register(name="持ち主", birth_month=6, birth_day=1)
    _, other = await register(name="他人", birth_month=6, birth_day=2)
    entry = await _create_entry(client, owner)
    first = await upload_photo(owner, description="一枚目")
    second = await upload_photo(owner, description="二枚目")
    foreign = await upload_photo(other)

    response = await client.post(
        f"/api/timeline/{entry['id']}/photos",
        json={"photoIds": [second["id"], foreign["id"], first["id"]]},
        headers=owner,
    )
    assert response.status_code == 200
    assert response.json()["linkedPhotoCount"] == 2
    assert response.json()["skippedPhotoIds"] == [foreign["id"]]

    links = (await client.get(f"/api/timeline/{entry['id']}/photos", headers=owner)).json()
    assert [link["photo_id"] for link in links] == [second["id"], first["id"]]
    assert [link["description"] for link in links] == ["二枚目", "一枚目"]

    removed = await client.delete(f"/api/timeline/{entry['id']}/photos/{second['id']}", headers=owner)
    assert removed.status_code == 200
    again = await client.delete(f"/api/timeline/{entry['id']}/photos/{second['id']}", headers=owner)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_deleting_photo_drops_its_links(client: AsyncClient, register, upload_photo) -> None:
    _, headers = await register()
    entry = await _create_entry(client, headers)
    photo = await upload_photo(headers)
    await client.post(f"/api/timeline/{entry['id']}/photos", json={"photoIds": [photo["id"]]}, headers=headers)

    await client.delete(f"/api/photos/{photo['id']}", headers=headers)
    links = (await client.get(f"/api/timeline/{entry['id']}/photos", headers=headers)).json()
    assert links == []


# ---------------------------------------------------------------------------
# Biography
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_biography_create_then_overwrite(client: AsyncClient, register) -> None:
    user_id, headers = await register()
    assert (await client.get("/api/biography", headers=headers)).status_code == 404

    created = await client.post("/api/biography", json={"editedContent": "第一稿"}, headers=headers)
    assert created.status_code == 201
    assert created.json()["message"] == "Biography created"

    overwritten = await client.post(
        "/api/biography",
        json={
            "editedContent": "第二稿",
            "answersWithPhotos": [{"photos": ["/uploads/a.png", {"filePath": "/uploads/b.png", "description": "b"}]}],
        },
        headers=headers,
    )
    assert overwritten.json()["message"] == "Biography updated"
    assert overwritten.json()["photoCount"] == 2
    assert overwritten.json()["data"]["id"] == created.json()["data"]["id"]

    data = (await client.get("/api/biography", headers=headers)).json()["data"]
    assert data["user_id"] == user_id
    assert data["edited_content"] == "第二稿"
    assert [p["file_path"] for p in data["photos"]] == ["/uploads/a.png", "/uploads/b.png"]


@pytest.mark.asyncio
async def test_biography_update_and_delete_are_owner_only(client: AsyncClient, register) -> None:
    _, owner = await register(name="持ち主", birth_month=6, birth_day=1)
    _, other = await register(name="他人", birth_month=6, birth_day=2)
    created = (await client.post("/api/biography", json={"editedContent": "本文"}, headers=owner)).json()
    biography_id = created["data"]["id"]

    assert (await client.put(f"/api/biography/{biography_id}", json={"editedContent": "x"}, headers=other)).status_code == 403
    assert (await client.delete(f"/api/biography/{biography_id}", headers=other)).status_code == 403

    updated = await client.put(f"/api/biography/{biography_id}", json={"aiSummary": "要約"}, headers=owner)
    assert updated.json()["data"]["ai_summary"] == "要約"
    assert updated.json()["data"]["edited_content"] == "本文"

    assert (await client.delete(f"/api/biography/{biography_id}", headers=owner)).status_code == 200
    assert (await client.get("/api/biography", headers=owner)).status_code == 404
