"""
Biography HTTP routes — /api/biography

  POST   /        create or overwrite the caller's biography
  GET    /        caller's biography with its photos
  PUT    /{id}    partial update (owner only)
  DELETE /{id}    owner only; biography_photos go with it
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jibunshi import store
from jibunshi.auth import CurrentUser, ensure_owner, get_current_user
from jibunshi.biography.assembler import collect_photo_refs
from jibunshi.biography.schemas import (
    BiographyOut,
    BiographyPhotoOut,
    BiographySaveRequest,
    BiographyUpdateRequest,
)
from jibunshi.database import get_db
from jibunshi.interview.schemas import dump_list
from jibunshi.models.biography import BiographyORM

router = APIRouter(prefix="/api/biography", tags=["biography"])
logger = logging.getLogger(__name__)


async def _owned_biography(db: AsyncSession, current: CurrentUser, biography_id: int) -> BiographyORM:
    biography = await store.get_biography_by_id(db, biography_id)
    if biography is None:
        raise HTTPException(status_code=404, detail="Biography not found")
    ensure_owner(current, biography.user_id)
    return biography


@router.post("", status_code=201)
async def save_biography(
    body: BiographySaveRequest,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    biography, created = await store.upsert_biography(
        db, current.user_id, body.edited_content, ai_summary=body.ai_summary
    )
    photo_count = None
    if body.answers_with_photos is not None:
        refs = collect_photo_refs(dump_list(body.answers_with_photos))
        photo_count = await store.replace_biography_photos(db, biography.id, refs)

    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "Biography created" if created else "Biography updated",
            "data": BiographyOut.model_validate(biography).model_dump(),
            "photoCount": photo_count,
        },
    )


@router.get("")
async def get_biography(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    biography = await store.get_biography(db, current.user_id)
    if biography is None:
        raise HTTPException(status_code=404, detail="Biography not found")
    photos = await store.list_biography_photos(db, biography.id)
    data = BiographyOut.model_validate(biography).model_dump()
    data["photos"] = [BiographyPhotoOut.model_validate(p).model_dump() for p in photos]
    return JSONResponse(status_code=200, content={"success": True, "data": data})


@router.put("/{biography_id}")
async def update_biography(
    biography_id: int,
    body: BiographyUpdateRequest,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    biography = await _owned_biography(db, current, biography_id)
    biography = await store.update_biography(db, biography, body.model_dump(exclude_none=True))
    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "message": "Biography updated",
            "data": BiographyOut.model_validate(biography).model_dump(),
        },
    )


@router.delete("/{biography_id}")
async def delete_biography(
    biography_id: int,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    biography = await _owned_biography(db, current, biography_id)
    await store.delete_biography(db, biography)
    return JSONResponse(status_code=200, content={"success": True, "message": "Biography deleted"})
