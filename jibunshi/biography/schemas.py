"""
schemas.py — Biography Pydantic v2 data contracts.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer

from jibunshi.interview.schemas import AnswerWithPhotos
from jibunshi.store import to_iso


class BiographySaveRequest(BaseModel):
    """
    edited_content is required; ai_summary defaults to it.
    When answers_with_photos is sent, its photo refs replace the biography's photos.
    """
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    edited_content: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("editedContent", "edited_content")
    )
    ai_summary: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("aiSummary", "ai_summary")
    )
    answers_with_photos: Optional[List[AnswerWithPhotos]] = Field(
        default=None, validation_alias=AliasChoices("answersWithPhotos", "answers_with_photos")
    )


class BiographyUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    edited_content: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("editedContent", "edited_content")
    )
    ai_summary: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("aiSummary", "ai_summary")
    )


class BiographyPhotoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    file_path: str
    description: Optional[str]
    display_order: int


class BiographyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    edited_content: Optional[str]
    ai_summary: Optional[str]
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _iso(self, value: datetime) -> str:
        return to_iso(value)
