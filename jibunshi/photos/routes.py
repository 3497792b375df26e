"""
Photo HTTP routes — POST/GET /api/photos, GET/DELETE /api/photos/{id}

Upload pipeline (nothing touches disk until every check passes):
  1. read at most max_file_size + 1 bytes   → 413 when over the limit
  2. sniff the bytes with Pillow             → 415 unless JPEG / PNG / GIF
  3. write <uuid4>.<ext> under upload_dir
  4. insert the photos row with file_path=/uploads/<name>
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jibunshi import store
from jibunshi.auth import CurrentUser, ensure_owner, get_current_user
from jibunshi.config import settings
from jibunshi.database import get_db
from jibunshi.photos.schemas import PhotoOut
from jibunshi.photos.storage import (
    UnsupportedImageError,
    remove_upload,
    save_upload,
    sniff_image_format,
)

router = APIRouter(prefix="/api/photos", tags=["photos"])
logger = logging.getLogger(__name__)


@router.post("", status_code=201)
async def upload_photo(
    request: Request,
    photo: Optional[UploadFile] = File(default=None),
    file: Optional[UploadFile] = File(default=None),
    stage: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Multipart field `photo` (or `file`) plus optional `stage` / `description`.

    Returns:
        201: photo row
        400: no file part
        413: FILE_TOO_LARGE
        415: INVALID_MIME_TYPE
    """
    upload = photo or file
    if upload is None:
        raise HTTPException(status_code=400, detail="No file uploaded (expected field 'photo')")

    max_size = settings.max_file_size
    contents = await upload.read(max_size + 1)
    if len(contents) > max_size:
        raise HTTPException(
            status_code=413,
            detail=f"File size exceeds maximum allowed {max_size // (1024 * 1024)} MB",
        )

    try:
        fmt = sniff_image_format(contents)
    except UnsupportedImageError as exc:
        raise HTTPException(status_code=415, detail=str(exc)) from exc

    filename = save_upload(request.app.state.upload_dir, contents, fmt)
    row = await store.create_photo(
        db,
        current.user_id,
        filename=filename,
        file_path=f"/uploads/{filename}",
        stage=stage,
        description=description,
    )
    return JSONResponse(status_code=201, content=PhotoOut.model_validate(row).model_dump())


@router.get("")
async def list_photos(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    rows = await store.list_photos(db, current.user_id)
    return JSONResponse(status_code=200, content=[PhotoOut.model_validate(r).model_dump() for r in rows])


@router.get("/{photo_id}")
async def get_photo(
    photo_id: int,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    row = await store.get_photo(db, photo_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Photo not found")
    ensure_owner(current, row.user_id)
    return JSONResponse(status_code=200, content=PhotoOut.model_validate(row).model_dump())


@router.delete("/{photo_id}")
async def delete_photo(
    photo_id: int,
    request: Request,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Removes the row (and its timeline links) and then the file on disk."""
    row = await store.get_photo(db, photo_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Photo not found")
    ensure_owner(current, row.user_id)

    file_path = row.file_path
    await store.delete_photo(db, row)
    file_removed = remove_upload(request.app.state.upload_dir, file_path)
    return JSONResponse(
        status_code=200,
        content={"success": True, "id": photo_id, "fileRemoved": file_removed},
    )
