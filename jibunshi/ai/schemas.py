"""
schemas.py — AI proxy request contracts.
"""
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from jibunshi.interview.schemas import AnswerWithPhotos


class GenerateQuestionsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    stage: str = Field(..., min_length=1, max_length=50)
    user_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("userName", "user_name")
    )
    age: Optional[int] = Field(default=None, ge=1, le=120)
    photo_description: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("photoDescription", "photo_description")
    )


class AnalyzePhotoRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    photo_path: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("photoPath", "photo_path")
    )


class EditTextRequest(BaseModel):
    """
    responses: answer fragments in interview order.
    answers_with_photos: optional; photo refs found here are linked to the
                         generated timeline entry and to the biography.
    """
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    responses: List[str]
    stage: str = Field(..., min_length=1, max_length=50)
    user_id: int = Field(..., validation_alias=AliasChoices("user_id", "userId"))
    answers_with_photos: List[AnswerWithPhotos] = Field(
        default_factory=list,
        validation_alias=AliasChoices("answersWithPhotos", "answers_with_photos"),
    )
    event_title: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("eventTitle", "event_title")
    )
    event_year: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("eventYear", "event_year")
    )
    event_month: Optional[int] = Field(
        default=None, ge=1, le=12, validation_alias=AliasChoices("eventMonth", "event_month")
    )
