"""
Interview progress HTTP routes — /api/interview

  POST   /save             last-writer-wins save keyed on the client timestamp
  GET    /load             newest progress row, decoded
  GET    /info             metadata only (no transcript)
  POST   /update-answers   replace answers_with_photos only
  DELETE /                 drop the progress row
  POST   /save-all         finalize into a timeline entry + biography

A save that loses the timestamp race is not an error: it answers 200 with
success=false and reason="timestamp_conflict", and the stored row is untouched.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jibunshi import store
from jibunshi.auth import CurrentUser, get_current_user
from jibunshi.database import get_db
from jibunshi.interview.schemas import (
    InterviewSaveRequest,
    SaveAllRequest,
    UpdateAnswersRequest,
    dump_list,
)
from jibunshi.store import PhotoRef, now_ms, to_iso

router = APIRouter(prefix="/api/interview", tags=["interview"])
logger = logging.getLogger(__name__)

UNTITLED_EVENT = "（タイトル未設定）"


def _progress_body(progress: store.InterviewProgress) -> dict:
    return {
        "currentQuestionIndex": progress.current_question_index,
        "conversation": progress.conversation,
        "answersWithPhotos": progress.answers_with_photos,
        "eventTitle": progress.event_title,
        "eventYear": progress.event_year,
        "eventMonth": progress.event_month,
        "eventDescription": progress.event_description,
        "timestamp": progress.timestamp,
        "updatedAt": to_iso(progress.updated_at),
    }


@router.post("/save")
async def save_progress(
    body: InterviewSaveRequest,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Returns:
        200 {success: true, data}                     write applied
        200 {success: false, reason: "timestamp_conflict", existingTimestamp, requestTimestamp}
    """
    timestamp = body.timestamp or now_ms()
    outcome = await store.save_interview_progress(
        db,
        current.user_id,
        current_question_index=body.current_question_index,
        conversation=dump_list(body.conversation),
        answers_with_photos=dump_list(body.answers_with_photos),
        timestamp=timestamp,
        event_title=body.event_title,
        event_year=body.event_year,
        event_month=body.event_month,
        event_description=body.event_description,
    )

    if not outcome.saved:
        return JSONResponse(
            status_code=200,
            content={
                "success": False,
                "reason": "timestamp_conflict",
                "message": "Data is older than the stored progress - skipped",
                "existingTimestamp": outcome.existing_timestamp,
                "requestTimestamp": outcome.request_timestamp,
            },
        )

    progress = outcome.progress
    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "message": "Session saved successfully",
            "data": {
                "userId": current.user_id,
                "currentQuestionIndex": progress.current_question_index,
                "conversationLength": len(progress.conversation),
                "answersCount": len(progress.answers_with_photos),
                "eventTitle": progress.event_title,
                "timestamp": progress.timestamp,
                "savedAt": to_iso(progress.updated_at),
            },
        },
    )


@router.get("/load")
async def load_progress(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Returns:
        200: {success: true, data} — empty lists when the session exists but is empty
        404: no progress stored
        500: CORRUPT_DATA when a stored JSON column cannot be decoded
    """
    progress = await store.load_interview_progress(db, current.user_id)
    if progress is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return JSONResponse(status_code=200, content={"success": True, "data": _progress_body(progress)})


@router.get("/info")
async def progress_info(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    row = await store.get_interview_row(db, current.user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "data": {
                "id": row.id,
                "userId": row.user_id,
                "currentQuestionIndex": row.current_question_index,
                "eventTitle": row.event_title,
                "eventYear": row.event_year,
                "eventMonth": row.event_month,
                "timestamp": row.timestamp,
                "conversationBytes": len(row.conversation or ""),
                "answersBytes": len(row.answers_with_photos or ""),
                "createdAt": to_iso(row.created_at),
                "updatedAt": to_iso(row.updated_at),
            },
        },
    )


@router.post("/update-answers")
async def update_answers(
    body: UpdateAnswersRequest,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    answers = dump_list(body.answers_with_photos)
    if not await store.update_interview_answers(db, current.user_id, answers, body.timestamp):
        raise HTTPException(status_code=404, detail="Session not found")
    return JSONResponse(
        status_code=200,
        content={"success": True, "message": "Answers updated", "answersCount": len(answers)},
    )


@router.delete("")
@router.delete("/")
async def delete_progress(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    deleted = await store.delete_interview_progress(db, current.user_id)
    return JSONResponse(
        status_code=200,
        content={"success": True, "deleted": deleted > 0, "message": "Interview session deleted"},
    )


@router.post("/save-all", status_code=201)
async def save_all(
    body: SaveAllRequest,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Finalize an interview in one transaction:
      1. manual timeline entry (age = event year - birth year)
      2. photo_paths linked to it in order
      3. interview progress answers refreshed (if a progress row exists)
      4. biography upserted from corrected_text (if non-blank)
    """
    user = await store.get_user(db, current.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    timestamp = body.timestamp or now_ms()
    event = body.event_info
    title = event.title or UNTITLED_EVENT
    corrected: Optional[str] = body.corrected_text.strip() if body.corrected_text else None

    age = None
    if event.year is not None and user.birth_year is not None:
        age = event.year - user.birth_year

    entry = await store.create_timeline_entry(
        db,
        user.id,
        age=age,
        year=event.year,
        month=event.month,
        stage="interview",
        event_title=title,
        event_description=corrected or f"{title}についての出来事",
        edited_content=corrected,
        ai_corrected_text=corrected,
        is_auto_generated=False,
    )

    refs = []
    for idx, path in enumerate(body.photo_paths):
        photo = await store.get_photo_by_path(db, user.id, path)
        refs.append(
            PhotoRef(
                file_path=path,
                description=f"出来事「{title}」の写真 #{idx + 1}",
                photo_id=photo.id if photo is not None else None,
            )
        )
    linked = await store.replace_timeline_photos(db, entry.id, refs)

    answers = dump_list(body.answers)
    await store.update_interview_answers(db, user.id, answers, timestamp)

    biography_id = None
    if corrected:
        biography, _ = await store.upsert_biography(db, user.id, corrected, ai_summary=corrected)
        biography_id = biography.id

    logger.info(
        "Interview finalized user_id=%s timeline_id=%s photos=%d",
        user.id,
        entry.id,
        linked,
    )
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "All interview data saved",
            "data": {
                "timelineId": entry.id,
                "biographyId": biography_id,
                "userId": user.id,
                "eventTitle": event.title,
                "eventYear": event.year,
                "answersCount": len(answers),
                "photoCount": linked,
                "correctedTextLength": len(corrected or ""),
                "savedAt": to_iso(entry.created_at),
            },
        },
    )
