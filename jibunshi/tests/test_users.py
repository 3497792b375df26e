"""
API tests for the user registry — /api/users

Covers registration, the three-step login (name → birthday → PIN),
forgot-PIN, logout and the owner-only profile routes.
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from jibunshi.models import (
    AuthSessionORM,
    BiographyORM,
    BiographyPhotoORM,
    InterviewSessionORM,
    PhotoORM,
    TimelineMetadataORM,
    TimelineORM,
    TimelinePhotoORM,
    UserORM,
)


@pytest.mark.asyncio
async def test_register_returns_token_and_user(client: AsyncClient) -> None:
    response = await client.post(
        "/api/users/register",
        json={"name": "  山田太郎 ", "age": 78, "birthMonth": 4, "birthDay": 12, "pin": "1234"},
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["token"]
    assert body["user"] == {"id": body["userId"], "name": "山田太郎", "age": 78}


@pytest.mark.asyncio
async def test_register_duplicate_identity_is_conflict(client: AsyncClient, register) -> None:
    await register(name="佐藤花子", birth_month=1, birth_day=5)
    response = await client.post(
        "/api/users/register",
        json={"name": "佐藤花子", "age": 70, "birthMonth": 1, "birthDay": 5, "pin": "9999"},
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_register_same_name_different_birthday_is_allowed(client: AsyncClient, register) -> None:
    await register(name="佐藤花子", birth_month=1, birth_day=5)
    await register(name="佐藤花子", birth_month=1, birth_day=6)


@pytest.mark.asyncio
@pytest.mark.parametrize("pin", ["123", "12345", "abcd", "12a4"])
async def test_register_rejects_malformed_pin(client: AsyncClient, pin: str) -> None:
    response = await client.post(
        "/api/users/register",
        json={"name": "鈴木一郎", "age": 80, "birthMonth": 2, "birthDay": 3, "pin": pin},
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert any(d["field"] == "pin" for d in error["details"])


@pytest.mark.asyncio
async def test_register_rejects_out_of_range_birthday(client: AsyncClient) -> None:
    response = await client.post(
        "/api/users/register",
        json={"name": "鈴木一郎", "age": 80, "birthMonth": 13, "birthDay": 32, "pin": "1234"},
    )
    assert response.status_code == 400
    # Both violations are reported in one response
    assert len(response.json()["error"]["details"]) == 2


@pytest.mark.asyncio
async def test_check_name_counts(client: AsyncClient, register) -> None:
    response = await client.post("/api/users/login/check-name", json={"name": "誰もいない"})
    assert response.json() == {"exists": False, "count": 0, "message": "This name is not registered"}

    user_id, _ = await register(name="田中")
    single = (await client.post("/api/users/login/check-name", json={"name": "田中"})).json()
    assert single["count"] == 1
    assert single["userId"] == user_id


@pytest.mark.asyncio
async def test_three_same_name_users_are_told_apart_by_birthday(client: AsyncClient, register) -> None:
    ids = {}
    for month, day in [(1, 1), (5, 20), (12, 31)]:
        user_id, _ = await register(name="高橋", birth_month=month, birth_day=day, pin=f"{month:02d}{day:02d}")
        ids[(month, day)] = user_id

    response = await client.post("/api/users/login/check-name", json={"name": "高橋"})
    body = response.json()
    assert body["count"] == 3
    assert {(c["birthMonth"], c["birthDay"]) for c in body["candidates"]} == set(ids)

    response = await client.post(
        "/api/users/login/check-birthday", json={"name": "高橋", "month": 5, "day": 20}
    )
    assert response.status_code == 200
    assert response.json()["userId"] == ids[(5, 20)]

    response = await client.post(
        "/api/users/login/verify-pin", json={"userId": ids[(5, 20)], "pin": "0520"}
    )
    assert response.status_code == 200
    assert response.json()["userId"] == ids[(5, 20)]


@pytest.mark.asyncio
async def test_check_birthday_unknown_is_not_found(client: AsyncClient, register) -> None:
    await register(name="高橋", birth_month=5, birth_day=20)
    response = await client.post(
        "/api/users/login/verify-birthday", json={"name": "高橋", "month": 5, "day": 21}
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_wrong_pin_is_unauthorized(client: AsyncClient, register) -> None:
    user_id, _ = await register(pin="1234")
    response = await client.post("/api/users/login/verify-pin", json={"userId": user_id, "pin": "4321"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_verify_pin_unknown_user_is_not_found(client: AsyncClient) -> None:
    response = await client.post("/api/users/login/verify-pin", json={"userId": 999, "pin": "1234"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_forgot_pin_replaces_pin(client: AsyncClient, register) -> None:
    user_id, _ = await register(name="伊藤", birth_month=7, birth_day=7, pin="1111")
    response = await client.post(
        "/api/users/login/forgot-pin",
        json={"name": "伊藤", "month": 7, "day": 7, "newPin": "2222"},
    )
    assert response.status_code == 200

    old = await client.post("/api/users/login/verify-pin", json={"userId": user_id, "pin": "1111"})
    new = await client.post("/api/users/login/verify-pin", json={"userId": user_id, "pin": "2222"})
    assert old.status_code == 401
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_profile_routes_are_owner_only(client: AsyncClient, register) -> None:
    user_id, headers = await register(name="本人", birth_month=3, birth_day=3)
    other_id, _ = await register(name="他人", birth_month=3, birth_day=4)

    me = await client.get("/api/users/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["id"] == user_id

    assert (await client.get(f"/api/users/{other_id}", headers=headers)).status_code == 403
    assert (await client.delete(f"/api/users/{other_id}", headers=headers)).status_code == 403


@pytest.mark.asyncio
async def test_update_user_progress_stage(client: AsyncClient, register) -> None:
    user_id, headers = await register()
    response = await client.put(
        f"/api/users/{user_id}", json={"progressStage": "school"}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["progress_stage"] == "school"

    bad = await client.put(f"/api/users/{user_id}", json={"progressStage": "space"}, headers=headers)
    assert bad.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/api/users/login/check-birthday", "/api/users/login/verify-birthday"])
@pytest.mark.parametrize(
    "birthday",
    [{"birthMonth": 4, "birthDay": 15}, {"birth_month": 4, "birth_day": 15}, {"month": 4, "day": 15}],
)
async def test_birthday_step_accepts_every_field_spelling(
    client: AsyncClient, register, path: str, birthday: dict
) -> None:
    user_id, _ = await register(name="太郎", age=65, birth_month=4, birth_day=15)
    response = await client.post(path, json={"name": "太郎", **birthday})
    assert response.status_code == 200, response.text
    assert response.json()["userId"] == user_id


@pytest.mark.asyncio
async def test_forgot_pin_accepts_birth_field_names(client: AsyncClient, register) -> None:
    user_id, _ = await register(name="太郎", age=65, birth_month=4, birth_day=15, pin="1234")
    response = await client.post(
        "/api/users/login/forgot-pin",
        json={"name": "太郎", "birthMonth": 4, "birthDay": 15, "newPin": "4321"},
    )
    assert response.status_code == 200, response.text

    login = await client.post("/api/users/login/verify-pin", json={"userId": user_id, "pin": "4321"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_verify_pin_accepts_numeric_pin(client: AsyncClient, register) -> None:
    user_id, _ = await register(pin="1234")
    response = await client.post("/api/users/login/verify-pin", json={"userId": user_id, "pin": 1234})
    assert response.status_code == 200, response.text

    # 0123 as a JSON number is 123: three digits, not a PIN
    short = await client.post("/api/users/login/verify-pin", json={"userId": user_id, "pin": 123})
    assert short.status_code == 400


@pytest.mark.asyncio
async def test_age_update_rederives_birth_year(client: AsyncClient, database, register) -> None:
    user_id, headers = await register(age=78)
    response = await client.put(f"/api/users/{user_id}", json={"age": 80}, headers=headers)
    assert response.status_code == 200
    assert response.json()["age"] == 80

    async with database.session() as db:
        user = (await db.execute(select(UserORM).where(UserORM.id == user_id))).scalar_one()
    assert user.birth_year == datetime.now(timezone.utc).year - 80


@pytest.mark.asyncio
async def test_delete_user_cascades_to_all_children(
    client: AsyncClient, database, register, upload_photo
) -> None:
    user_id, headers = await register()
    photo = await upload_photo(headers)
    entry = (
        await client.post(
            "/api/timeline", json={"eventTitle": "結婚", "eventDescription": "春に式を挙げた"}, headers=headers
        )
    ).json()
    await client.post(f"/api/timeline/{entry['id']}/photos", json={"photoIds": [photo["id"]]}, headers=headers)
    await client.post("/api/timeline/metadata", json={"importantEvents": ["結婚"]}, headers=headers)
    await client.post(
        "/api/biography",
        json={"editedContent": "本文", "answersWithPhotos": [{"photos": [photo["file_path"]]}]},
        headers=headers,
    )
    await client.post(
        "/api/interview/save", json={"currentQuestionIndex": 1, "timestamp": 10}, headers=headers
    )

    response = await client.delete(f"/api/users/{user_id}", headers=headers)
    assert response.status_code == 200

    owned = (
        AuthSessionORM,
        InterviewSessionORM,
        TimelineORM,
        PhotoORM,
        BiographyORM,
        TimelineMetadataORM,
    )
    async with database.session() as db:
        for model in owned:
            count = await db.scalar(select(func.count()).select_from(model).where(model.user_id == user_id))
            assert count == 0, model.__tablename__
        for model in (TimelinePhotoORM, BiographyPhotoORM):
            assert await db.scalar(select(func.count()).select_from(model)) == 0, model.__tablename__

    check = await client.post("/api/users/login/check-name", json={"name": "山田太郎"})
    assert check.json()["count"] == 0
