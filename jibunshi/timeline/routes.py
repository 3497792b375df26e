"""
Timeline HTTP routes — /api/timeline

  GET    /                          own entries, newest first (?stage= filter)
  POST   /                          manual entry
  POST   /metadata, GET /metadata   important_events list (upsert)
  GET/PUT/DELETE /{id}              owner only
  POST   /{id}/photos               replace photo links {photoIds}
  GET    /{id}/photos               links in display order
  DELETE /{id}/photos/{photo_id}    drop one link
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jibunshi import store
from jibunshi.auth import CurrentUser, ensure_owner, get_current_user
from jibunshi.database import get_db
from jibunshi.models.timeline import TimelineORM
from jibunshi.store import PhotoRef
from jibunshi.timeline.schemas import (
    LinkPhotosRequest,
    TimelineCreateRequest,
    TimelineMetadataRequest,
    TimelineOut,
    TimelinePhotoOut,
    TimelineUpdateRequest,
)

router = APIRouter(prefix="/api/timeline", tags=["timeline"])
logger = logging.getLogger(__name__)


async def _owned_entry(db: AsyncSession, current: CurrentUser, timeline_id: int) -> TimelineORM:
    entry = await store.get_timeline_entry(db, timeline_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Timeline entry not found")
    ensure_owner(current, entry.user_id)
    return entry


def _entry_body(entry: TimelineORM) -> dict:
    return TimelineOut.model_validate(entry).model_dump()


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------

@router.get("")
async def list_entries(
    stage: Optional[str] = Query(default=None),
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    entries = await store.list_timeline(db, current.user_id, stage)
    return JSONResponse(status_code=200, content=[_entry_body(e) for e in entries])


@router.post("", status_code=201)
async def create_entry(
    body: TimelineCreateRequest,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    entry = await store.create_timeline_entry(
        db,
        current.user_id,
        stage=body.stage,
        age=body.age,
        year=body.year,
        month=body.month,
        event_title=body.event_title,
        event_description=body.event_description,
        edited_content=body.edited_content,
        is_auto_generated=False,
    )
    return JSONResponse(status_code=201, content=_entry_body(entry))


# ---------------------------------------------------------------------------
# Metadata — declared before /{timeline_id}
# ---------------------------------------------------------------------------

@router.post("/metadata")
async def save_metadata(
    body: TimelineMetadataRequest,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    events = await store.upsert_timeline_metadata(db, current.user_id, body.important_events)
    return JSONResponse(status_code=200, content={"success": True, "important_events": events})


@router.get("/metadata")
async def get_metadata(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    events = await store.get_timeline_metadata(db, current.user_id)
    return JSONResponse(status_code=200, content={"important_events": events or []})


@router.get("/{timeline_id}")
async def get_entry(
    timeline_id: int,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    entry = await _owned_entry(db, current, timeline_id)
    return JSONResponse(status_code=200, content=_entry_body(entry))


@router.put("/{timeline_id}")
async def update_entry(
    timeline_id: int,
    body: TimelineUpdateRequest,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    entry = await _owned_entry(db, current, timeline_id)
    changes = body.model_dump(exclude_none=True)
    if changes:
        entry = await store.update_timeline_entry(db, entry, changes)
    return JSONResponse(status_code=200, content=_entry_body(entry))


@router.delete("/{timeline_id}")
async def delete_entry(
    timeline_id: int,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    entry = await _owned_entry(db, current, timeline_id)
    await store.delete_timeline_entry(db, entry)
    return JSONResponse(status_code=200, content={"success": True, "id": timeline_id})


# ---------------------------------------------------------------------------
# Photo links
# ---------------------------------------------------------------------------

@router.post("/{timeline_id}/photos")
async def link_photos(
    timeline_id: int,
    body: LinkPhotosRequest,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Replace the entry's links. Photo ids that are unknown or not the caller's are skipped."""
    await _owned_entry(db, current, timeline_id)

    refs = []
    skipped = []
    for photo_id in body.photo_ids:
        photo = await store.get_photo(db, photo_id)
        if photo is None or photo.user_id != current.user_id:
            skipped.append(photo_id)
            continue
        refs.append(PhotoRef(file_path=photo.file_path, description=photo.description, photo_id=photo.id))

    linked = await store.replace_timeline_photos(db, timeline_id, refs)
    if skipped:
        logger.warning("Skipped photo links timeline_id=%s photo_ids=%s", timeline_id, skipped)
    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "timelineId": timeline_id,
            "linkedPhotoCount": linked,
            "skippedPhotoIds": skipped,
        },
    )


@router.get("/{timeline_id}/photos")
async def list_linked_photos(
    timeline_id: int,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await _owned_entry(db, current, timeline_id)
    links = await store.list_timeline_photos(db, timeline_id)
    return JSONResponse(
        status_code=200,
        content=[TimelinePhotoOut.model_validate(link).model_dump() for link in links],
    )


@router.delete("/{timeline_id}/photos/{photo_id}")
async def unlink_photo(
    timeline_id: int,
    photo_id: int,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await _owned_entry(db, current, timeline_id)
    removed = await store.unlink_timeline_photo(db, timeline_id, photo_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Photo is not linked to this entry")
    return JSONResponse(status_code=200, content={"success": True, "removed": removed})
