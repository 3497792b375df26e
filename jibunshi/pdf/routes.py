"""
Rendering HTTP routes — POST /api/pdf/generate,
                        GET  /api/pdf/list,
                        GET  /api/pdf/download/{filename}

generate gathers everything the booklet needs from the store, renders it
with pdf_generator, writes autobiography_{userId}_{ms}.pdf under pdf_dir and
records a pdf_versions row. download serves only files recorded for the caller.
"""
from __future__ import annotations

import logging
import os

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jibunshi import store
from jibunshi.auth import CurrentUser, get_current_user
from jibunshi.database import get_db
from jibunshi.pdf.pdf_generator import BookletContent, BookletPhoto, ChronologyRow, generate_booklet
from jibunshi.photos.storage import local_path
from jibunshi.store import now_ms, to_iso

router = APIRouter(prefix="/api/pdf", tags=["pdf"])
logger = logging.getLogger(__name__)


async def _collect_content(db: AsyncSession, upload_dir: str, user) -> BookletContent:
    biography = await store.get_biography(db, user.id)
    latest = await store.latest_timeline_entry(db, user.id)

    if biography is not None and biography.edited_content:
        narrative = biography.edited_content
    elif latest is not None:
        narrative = latest.edited_content or latest.event_description or ""
    else:
        narrative = ""

    refs = []
    if latest is not None:
        refs.extend(await store.list_timeline_photos(db, latest.id))
    if biography is not None:
        refs.extend(await store.list_biography_photos(db, biography.id))

    photos = []
    seen = set()
    for ref in refs:
        if ref.file_path in seen:
            continue
        seen.add(ref.file_path)
        path = local_path(upload_dir, ref.file_path)
        if path is None:
            logger.warning("Booklet photo missing on disk user_id=%s ref_id=%s", user.id, ref.id)
            continue
        photos.append(BookletPhoto(path=path, caption=ref.description))

    chronology = [
        ChronologyRow(
            year=entry.year,
            month=entry.month,
            title=entry.event_title or "",
            text=entry.edited_content or entry.event_description or "",
        )
        for entry in await store.list_auto_generated_entries(db, user.id)
    ]

    return BookletContent(
        name=user.name,
        age=user.age,
        narrative=narrative,
        photos=photos,
        chronology=chronology,
    )


@router.post("/generate")
async def generate_pdf(
    request: Request,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Returns:
        200: {success, filename, filepath, version}
        400: neither a timeline entry nor a biography to print
        404: user row gone
    """
    user = await store.get_user(db, current.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    has_timeline = await store.count_timeline_entries(db, user.id) > 0
    has_biography = await store.get_biography(db, user.id) is not None
    if not (has_timeline or has_biography):
        raise HTTPException(status_code=400, detail="No timeline data available for PDF generation")

    content = await _collect_content(db, request.app.state.upload_dir, user)
    buffer = generate_booklet(content)

    pdf_dir = request.app.state.pdf_dir
    os.makedirs(pdf_dir, exist_ok=True)
    filename = f"autobiography_{user.id}_{now_ms()}.pdf"
    with open(os.path.join(pdf_dir, filename), "wb") as fh:
        fh.write(buffer.getvalue())

    record = await store.record_pdf_version(db, user.id, filename, f"/pdfs/{filename}")
    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "message": "PDF generated successfully",
            "filename": filename,
            "filepath": record.file_path,
            "version": record.version,
        },
    )


@router.get("/list")
async def list_pdfs(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    rows = await store.list_pdf_versions(db, current.user_id)
    return JSONResponse(
        status_code=200,
        content=[
            {
                "id": r.id,
                "filename": r.filename,
                "filepath": r.file_path,
                "version": r.version,
                "status": r.status,
                "createdAt": to_iso(r.created_at),
            }
            for r in rows
        ],
    )


@router.get("/download/{filename}")
async def download_pdf(
    filename: str,
    request: Request,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> FileResponse:
    if "/" in filename or "\\" in filename or filename in (".", ".."):
        raise HTTPException(status_code=400, detail="Invalid filename")

    record = await store.get_pdf_version(db, current.user_id, filename)
    if record is None:
        raise HTTPException(status_code=404, detail="PDF not found")

    full_path = os.path.join(request.app.state.pdf_dir, filename)
    if not os.path.isfile(full_path):
        raise HTTPException(status_code=404, detail="PDF file not found")

    return FileResponse(full_path, media_type="application/pdf", filename=filename)
