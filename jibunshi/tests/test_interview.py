"""
API tests for interview progress — /api/interview

Last-writer-wins on the client timestamp, verbatim round trip of the
transcript, save-all finalization and corrupt stored JSON.
"""
from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import update

from jibunshi.models import InterviewSessionORM
from jibunshi.store import now_ms

CONVERSATION = [
    {"role": "assistant", "content": "子どもの頃、どんな遊びをしましたか？"},
    {"role": "user", "content": "川で魚を捕まえていました。", "audio": "clip-1"},
]

ANSWERS = [
    {
        "question": "子どもの頃、どんな遊びをしましたか？",
        "answer": "川で魚を捕まえていました。",
        "photos": ["/uploads/river.png"],
    }
]


def _payload(timestamp: int, index: int = 1, **extra) -> dict:
    return {
        "currentQuestionIndex": index,
        "conversation": CONVERSATION,
        "answersWithPhotos": ANSWERS,
        "eventTitle": "夏休み",
        "eventYear": 1955,
        "eventMonth": 8,
        "timestamp": timestamp,
        **extra,
    }


@pytest.mark.asyncio
async def test_save_then_load_round_trips_verbatim(client: AsyncClient, register) -> None:
    _, headers = await register()
    saved = await client.post("/api/interview/save", json=_payload(1_000), headers=headers)
    assert saved.status_code == 200
    assert saved.json()["success"] is True
    assert saved.json()["data"]["conversationLength"] == 2

    loaded = await client.get("/api/interview/load", headers=headers)
    assert loaded.status_code == 200
    data = loaded.json()["data"]
    assert data["conversation"] == CONVERSATION
    assert data["answersWithPhotos"] == ANSWERS
    assert data["currentQuestionIndex"] == 1
    assert data["eventTitle"] == "夏休み"
    assert data["timestamp"] == 1_000


@pytest.mark.asyncio
async def test_snake_case_fields_are_accepted(client: AsyncClient, register) -> None:
    _, headers = await register()
    response = await client.post(
        "/api/interview/save",
        json={"current_question_index": 3, "answers_with_photos": [], "timestamp": 5},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["currentQuestionIndex"] == 3


@pytest.mark.asyncio
async def test_unknown_top_level_field_is_rejected(client: AsyncClient, register) -> None:
    _, headers = await register()
    response = await client.post(
        "/api/interview/save", json=_payload(1, surprise=True), headers=headers
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_older_timestamp_is_skipped(client: AsyncClient, register) -> None:
    _, headers = await register()
    await client.post("/api/interview/save", json=_payload(2_000, index=4), headers=headers)

    stale = await client.post("/api/interview/save", json=_payload(1_500, index=2), headers=headers)
    assert stale.status_code == 200
    body = stale.json()
    assert body["success"] is False
    assert body["reason"] == "timestamp_conflict"
    assert body["existingTimestamp"] == 2_000
    assert body["requestTimestamp"] == 1_500

    loaded = (await client.get("/api/interview/load", headers=headers)).json()["data"]
    assert loaded["currentQuestionIndex"] == 4
    assert loaded["timestamp"] == 2_000


@pytest.mark.asyncio
async def test_equal_timestamp_is_applied_as_retry(client: AsyncClient, register) -> None:
    _, headers = await register()
    await client.post("/api/interview/save", json=_payload(3_000, index=1), headers=headers)
    retry = await client.post("/api/interview/save", json=_payload(3_000, index=2), headers=headers)
    assert retry.json()["success"] is True

    loaded = (await client.get("/api/interview/load", headers=headers)).json()["data"]
    assert loaded["currentQuestionIndex"] == 2


@pytest.mark.asyncio
async def test_newer_timestamp_replaces_lists_wholesale(client: AsyncClient, register) -> None:
    _, headers = await register()
    await client.post("/api/interview/save", json=_payload(1_000), headers=headers)
    newer = _payload(1_001)
    newer["conversation"] = [{"role": "user", "content": "やり直し"}]
    await client.post("/api/interview/save", json=newer, headers=headers)

    loaded = (await client.get("/api/interview/load", headers=headers)).json()["data"]
    assert loaded["conversation"] == [{"role": "user", "content": "やり直し"}]


@pytest.mark.asyncio
async def test_progress_is_per_user(client: AsyncClient, register) -> None:
    _, alice = await register(name="A", birth_month=1, birth_day=1)
    _, bob = await register(name="B", birth_month=1, birth_day=2)
    await client.post("/api/interview/save", json=_payload(9_000), headers=alice)

    # Bob's older timestamp is not compared against Alice's row
    response = await client.post("/api/interview/save", json=_payload(10), headers=bob)
    assert response.json()["success"] is True
    assert (await client.get("/api/interview/load", headers=alice)).json()["data"]["timestamp"] == 9_000


@pytest.mark.asyncio
async def test_load_without_progress_is_not_found(client: AsyncClient, register) -> None:
    _, headers = await register()
    response = await client.get("/api/interview/load", headers=headers)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_corrupt_stored_conversation_is_reported(client: AsyncClient, database, register) -> None:
    user_id, headers = await register()
    await client.post("/api/interview/save", json=_payload(1_000), headers=headers)

    async with database.session() as db:
        await db.execute(
            update(InterviewSessionORM)
            .where(InterviewSessionORM.user_id == user_id)
            .values(conversation="{not json")
        )
        await db.commit()

    response = await client.get("/api/interview/load", headers=headers)
    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "CORRUPT_DATA"
    assert error["details"][0]["field"] == "interview_sessions.conversation"


@pytest.mark.asyncio
async def test_info_and_update_answers(client: AsyncClient, register) -> None:
    _, headers = await register()
    assert (await client.get("/api/interview/info", headers=headers)).status_code == 404
    missing = await client.post(
        "/api/interview/update-answers", json={"answersWithPhotos": []}, headers=headers
    )
    assert missing.status_code == 404

    await client.post("/api/interview/save", json=_payload(1_000), headers=headers)
    updated = await client.post(
        "/api/interview/update-answers",
        json={"answersWithPhotos": [{"question": "Q", "answer": "A", "photos": []}]},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["answersCount"] == 1

    info = (await client.get("/api/interview/info", headers=headers)).json()["data"]
    assert info["currentQuestionIndex"] == 1
    assert "conversation" not in info

    loaded = (await client.get("/api/interview/load", headers=headers)).json()["data"]
    assert loaded["answersWithPhotos"] == [{"question": "Q", "answer": "A", "photos": []}]
    assert loaded["conversation"] == CONVERSATION


@pytest.mark.asyncio
async def test_delete_progress(client: AsyncClient, register) -> None:
    _, headers = await register()
    await client.post("/api/interview/save", json=_payload(1_000), headers=headers)

    first = await client.delete("/api/interview", headers=headers)
    assert first.json()["deleted"] is True
    second = await client.delete("/api/interview/", headers=headers)
    assert second.json()["deleted"] is False
    assert (await client.get("/api/interview/load", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_save_all_creates_entry_links_photos_and_biography(client: AsyncClient, register) -> None:
    _, headers = await register(age=78)
    await client.post("/api/interview/save", json=_payload(1_000), headers=headers)

    response = await client.post(
        "/api/interview/save-all",
        json={
            "answers": ANSWERS,
            "eventInfo": {"title": "夏休み", "year": 1955, "month": 8},
            "correctedText": "  夏休みには毎日川で魚を捕まえました。  ",
            "photoPaths": ["/uploads/a.png", "/uploads/b.png"],
            "timestamp": 2_000,
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["photoCount"] == 2
    assert data["biographyId"] is not None
    assert data["correctedTextLength"] == len("夏休みには毎日川で魚を捕まえました。")

    entry = (await client.get(f"/api/timeline/{data['timelineId']}", headers=headers)).json()
    assert entry["stage"] == "interview"
    assert entry["is_auto_generated"] is False
    assert entry["edited_content"] == "夏休みには毎日川で魚を捕まえました。"

    photos = (await client.get(f"/api/timeline/{data['timelineId']}/photos", headers=headers)).json()
    assert [p["file_path"] for p in photos] == ["/uploads/a.png", "/uploads/b.png"]
    assert [p["display_order"] for p in photos] == [0, 1]

    biography = (await client.get("/api/biography", headers=headers)).json()["data"]
    assert biography["edited_content"] == "夏休みには毎日川で魚を捕まえました。"

    loaded = (await client.get("/api/interview/load", headers=headers)).json()["data"]
    assert loaded["timestamp"] == 2_000


@pytest.mark.asyncio
async def test_save_all_without_corrected_text_skips_biography(client: AsyncClient, register) -> None:
    _, headers = await register()
    response = await client.post(
        "/api/interview/save-all",
        json={"answers": [], "eventInfo": {}, "correctedText": "   "},
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["data"]["biographyId"] is None
    assert (await client.get("/api/biography", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_taro_end_to_end(client: AsyncClient, mistral, llm_reply, register, upload_photo) -> None:
    """Register, interview, assemble with the model and print a booklet."""
    user_id, headers = await register(name="山田太郎", age=78, birth_month=4, birth_day=12)
    photo = await upload_photo(headers, description="川遊び")

    answers = [
        {"question": "遊び", "answer": "川で魚を捕まえました。", "photos": [photo["file_path"]]},
        {"question": "家族", "answer": "兄とよく一緒でした。", "photos": []},
    ]
    await client.post(
        "/api/interview/save",
        json={"currentQuestionIndex": 2, "answersWithPhotos": answers, "timestamp": 100},
        headers=headers,
    )

    llm_reply("夏になると兄と川へ行き、魚を捕まえて過ごしました。")
    edited = await client.post(
        "/api/ai/edit-text",
        json={
            "responses": [a["answer"] for a in answers],
            "stage": "childhood",
            "userId": user_id,
            "answersWithPhotos": answers,
            "eventTitle": "川遊び",
            "eventYear": 1955,
        },
        headers=headers,
    )
    assert edited.status_code == 200, edited.text
    assert edited.json()["photoCount"] == 1

    entries = (await client.get("/api/timeline?stage=childhood", headers=headers)).json()
    assert len(entries) == 1
    assert entries[0]["is_auto_generated"] is True
    assert entries[0]["event_title"] == "川遊び"

    generated = await client.post("/api/pdf/generate", headers=headers)
    assert generated.status_code == 200, generated.text
    filename = generated.json()["filename"]

    download = await client.get(f"/api/pdf/download/{filename}", headers=headers)
    assert download.status_code == 200
    assert download.headers["content-type"] == "application/pdf"
    assert download.content.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_login_flow_then_stale_save_keeps_newer_progress(client: AsyncClient) -> None:
    registered = await client.post(
        "/api/users/register",
        json={"name": "Taro", "age": 65, "birthMonth": 4, "birthDay": 15, "pin": "1234"},
    )
    assert registered.status_code == 201

    by_name = (await client.post("/api/users/login/check-name", json={"name": "Taro"})).json()
    assert by_name["exists"] is True
    assert by_name["count"] == 1

    by_birthday = await client.post(
        "/api/users/login/check-birthday", json={"name": "Taro", "birthMonth": 4, "birthDay": 15}
    )
    assert by_birthday.status_code == 200
    user_id = by_birthday.json()["userId"]
    assert user_id == by_name["userId"]

    login = await client.post("/api/users/login/verify-pin", json={"userId": user_id, "pin": "1234"})
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['token']}"}

    t0, t1 = 1_700_000_000_000, 1_700_000_000_500
    first = await client.post("/api/interview/save", json={"currentQuestionIndex": 3, "timestamp": t1}, headers=headers)
    assert first.json()["success"] is True
    stale = await client.post("/api/interview/save", json={"currentQuestionIndex": 5, "timestamp": t0}, headers=headers)
    assert stale.json()["success"] is False
    assert stale.json()["reason"] == "timestamp_conflict"

    loaded = (await client.get("/api/interview/load", headers=headers)).json()["data"]
    assert loaded["currentQuestionIndex"] == 3
    assert loaded["timestamp"] == t1


@pytest.mark.asyncio
@pytest.mark.parametrize("timestamp", [0, -5])
async def test_non_positive_timestamp_uses_server_clock(client: AsyncClient, register, timestamp: int) -> None:
    _, headers = await register()
    before = now_ms()
    response = await client.post(
        "/api/interview/save", json={"currentQuestionIndex": 2, "timestamp": timestamp}, headers=headers
    )
    assert response.status_code == 200, response.text

    loaded = (await client.get("/api/interview/load", headers=headers)).json()["data"]
    assert loaded["timestamp"] >= before
