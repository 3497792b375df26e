"""
Cleanup HTTP route — DELETE /api/cleanup/old-data

Removes a user's generated content (timeline, biography, their photo links
and timeline metadata) while keeping the account, uploads and interview
progress. Scoped strictly to the caller's own user_id.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from jibunshi import store
from jibunshi.auth import CurrentUser, ensure_owner, get_current_user
from jibunshi.database import get_db

router = APIRouter(prefix="/api/cleanup", tags=["cleanup"])
logger = logging.getLogger(__name__)


class CleanupRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    user_id: int = Field(..., validation_alias=AliasChoices("user_id", "userId"))


@router.delete("/old-data")
async def delete_old_data(
    body: CleanupRequest,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Returns:
        200: {success, deleted: {biography_photos, timeline_photos, timeline,
             biography, timeline_metadata}, totalDeleted}
        403: body user_id is not the caller
    """
    ensure_owner(current, body.user_id)
    counts = await store.delete_user_content(db, body.user_id)
    total = sum(counts.values())
    logger.info("Cleanup finished user_id=%s total=%d", body.user_id, total)
    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "message": "Old data deleted",
            "deleted": counts,
            "totalDeleted": total,
        },
    )
