"""
AI proxy HTTP routes — POST /api/ai/generate-questions,
                       POST /api/ai/analyze-photo,
                       POST /api/ai/edit-text

All three need a bearer token. The Mistral client lives on app.state.mistral;
a missing API key surfaces per request as 500 AI_SERVICE_ERROR.

Parse policy:
  generate-questions / analyze-photo  structured JSON expected → unparseable reply is a 500
  edit-text                           free text → passed through as-is
"""
from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jibunshi import store
from jibunshi.ai import llm_service
from jibunshi.ai.schemas import AnalyzePhotoRequest, EditTextRequest, GenerateQuestionsRequest
from jibunshi.auth import CurrentUser, ensure_owner, get_current_user
from jibunshi.biography.assembler import assemble_biography
from jibunshi.cache import get_questions_cache, make_questions_key, set_questions_cache
from jibunshi.database import get_db
from jibunshi.interview.schemas import dump_list

router = APIRouter(prefix="/api/ai", tags=["ai"])
logger = logging.getLogger(__name__)

UPLOADS_URL_PREFIX = "/uploads/"

IMAGE_MIME_BY_SUFFIX = {
    ".png": "image/png",
    ".gif": "image/gif",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def resolve_upload_path(upload_dir: str, photo_path: str) -> Path:
    """
    Map a public photo path (/uploads/<name>, uploads/<name> or <name>) to a
    file inside upload_dir. Anything resolving outside upload_dir is a 400.
    """
    relative = photo_path.strip().lstrip("/")
    if relative.startswith("uploads/"):
        relative = relative[len("uploads/"):]
    if not relative:
        raise HTTPException(status_code=400, detail="photoPath does not name a file")

    root = Path(upload_dir).resolve()
    candidate = (root / relative).resolve()
    if candidate == root or root not in candidate.parents:
        raise HTTPException(status_code=400, detail="photoPath must point inside the upload directory")
    return candidate


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/generate-questions")
async def generate_questions(
    body: GenerateQuestionsRequest,
    request: Request,
    current: CurrentUser = Depends(get_current_user),
) -> JSONResponse:
    """
    Returns:
        200: {stage, questions: [5 strings]} — served from Redis for 1 h after the first call
        500: AI_SERVICE_ERROR when the key is missing or the reply is not the expected JSON
    """
    redis_client = request.app.state.redis
    key = make_questions_key(body.stage, body.user_name, body.age, body.photo_description)

    cached = await get_questions_cache(redis_client, key)
    if cached is not None:
        return JSONResponse(status_code=200, content={**cached, "cached": True})

    result = await llm_service.generate_questions(
        request.app.state.mistral,
        body.stage,
        user_name=body.user_name,
        age=body.age,
        photo_description=body.photo_description,
    )
    await set_questions_cache(redis_client, key, result)
    logger.info("Questions served user_id=%s stage=%s", current.user_id, body.stage)
    return JSONResponse(status_code=200, content={**result, "cached": False})


@router.post("/analyze-photo")
async def analyze_photo(
    body: AnalyzePhotoRequest,
    request: Request,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Returns:
        200: {scene_description, estimated_era, suggested_stage, emotional_context, suggested_questions}
        400: path escapes the upload directory
        404: file not found
    """
    full_path = resolve_upload_path(request.app.state.upload_dir, body.photo_path)
    if not full_path.is_file():
        raise HTTPException(status_code=404, detail="Photo file not found")

    mime_type = IMAGE_MIME_BY_SUFFIX.get(full_path.suffix.lower(), "image/jpeg")
    analysis = await llm_service.analyze_photo(
        request.app.state.mistral,
        full_path.read_bytes(),
        mime_type,
    )

    photo = await store.get_photo_by_path(db, current.user_id, UPLOADS_URL_PREFIX + full_path.name)
    if photo is not None:
        await store.set_photo_analysis(db, photo, analysis)

    return JSONResponse(status_code=200, content=analysis)


@router.post("/edit-text")
async def edit_text(
    body: EditTextRequest,
    request: Request,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Merge interview fragments into one narrative and persist it.

    Returns:
        200: {id, biographyId, stage, original_count, edited_content, photoCount, message}
        400: responses is empty
        403: user_id is not the caller
    """
    ensure_owner(current, body.user_id)
    if not body.responses:
        raise HTTPException(status_code=400, detail="responses array is required")

    result = await assemble_biography(
        db,
        request.app.state.mistral,
        body.user_id,
        body.responses,
        body.stage,
        answers_with_photos=dump_list(body.answers_with_photos),
        event_title=body.event_title,
        event_year=body.event_year,
        event_month=body.event_month,
    )

    return JSONResponse(
        status_code=200,
        content={
            "id": result.timeline_id,
            "biographyId": result.biography_id,
            "stage": body.stage,
            "original_count": len(body.responses),
            "edited_content": result.edited_content,
            "photoCount": result.photo_count,
            "message": "Corrected text saved",
        },
    )
