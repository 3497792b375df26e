"""
schemas.py — Timeline Pydantic v2 data contracts.
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer

from jibunshi.store import to_iso

DEFAULT_STAGE = "turning_points"


class TimelineCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    event_title: str = Field(..., min_length=1, max_length=200, validation_alias=AliasChoices("eventTitle", "event_title"))
    event_description: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("eventDescription", "event_description")
    )
    stage: str = Field(default=DEFAULT_STAGE, max_length=50)
    age: Optional[int] = Field(default=None, ge=0, le=150)
    year: Optional[int] = None
    month: Optional[int] = Field(default=None, ge=1, le=12)
    edited_content: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("editedContent", "edited_content")
    )


class TimelineUpdateRequest(BaseModel):
    """Partial update — fields left out keep their stored value."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    event_title: Optional[str] = Field(
        default=None, max_length=200, validation_alias=AliasChoices("eventTitle", "event_title")
    )
    event_description: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("eventDescription", "event_description")
    )
    edited_content: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("editedContent", "edited_content")
    )
    stage: Optional[str] = Field(default=None, max_length=50)
    age: Optional[int] = Field(default=None, ge=0, le=150)
    year: Optional[int] = None
    month: Optional[int] = Field(default=None, ge=1, le=12)


class TimelineMetadataRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    important_events: List[Any] = Field(
        default_factory=list, validation_alias=AliasChoices("importantEvents", "important_events")
    )


class LinkPhotosRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    photo_ids: List[int] = Field(..., validation_alias=AliasChoices("photoIds", "photo_ids"))


class TimelineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    age: Optional[int]
    year: Optional[int]
    month: Optional[int]
    stage: Optional[str]
    event_title: Optional[str]
    event_description: Optional[str]
    edited_content: Optional[str]
    ai_corrected_text: Optional[str]
    is_auto_generated: bool
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _iso(self, value: datetime) -> str:
        return to_iso(value)


class TimelinePhotoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    timeline_id: int
    photo_id: Optional[int]
    file_path: str
    description: Optional[str]
    display_order: int
    created_at: datetime

    @field_serializer("created_at")
    def _iso(self, value: datetime) -> str:
        return to_iso(value)
