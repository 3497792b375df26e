"""
schemas.py — Interview progress Pydantic v2 data contracts.

Clients send both camelCase and snake_case spellings of the same field.
Every alias is normalized here, at the boundary, into one snake_case shape;
the store and routes never see the alternate spellings.

extra='forbid' on request bodies: unknown top-level fields are a 400.
Nested messages / answers keep unknown keys (extra='allow') because the
payload is persisted wholesale and handed back verbatim on load.
"""
from typing import Any, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class _TimestampMixin(BaseModel):
    @field_validator("timestamp", check_fields=False)
    @classmethod
    def positive_or_server_clock(cls, value: Optional[int]) -> Optional[int]:
        # Zero or negative means "no client clock"; the route substitutes now_ms()
        if value is not None and value <= 0:
            return None
        return value


class ConversationMessage(BaseModel):
    """One role-tagged message of the interview transcript."""
    model_config = ConfigDict(extra="allow")

    role: str = Field(..., min_length=1)
    content: str


class AnswerWithPhotos(BaseModel):
    """One answered question plus the photo references attached to it."""
    model_config = ConfigDict(extra="allow")

    question: str = ""
    answer: str = ""
    photos: List[Union[str, dict]] = Field(default_factory=list)


class InterviewSaveRequest(_TimestampMixin):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    current_question_index: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("currentQuestionIndex", "current_question_index"),
    )
    conversation: List[ConversationMessage] = Field(default_factory=list)
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
    event_description: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("eventDescription", "event_description")
    )
    # Client clock, epoch milliseconds. Server clock is used when omitted or not positive.
    timestamp: Optional[int] = None


class UpdateAnswersRequest(_TimestampMixin):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    answers_with_photos: List[AnswerWithPhotos] = Field(
        ..., validation_alias=AliasChoices("answersWithPhotos", "answers_with_photos")
    )
    timestamp: Optional[int] = None


class EventInfo(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = Field(default=None, ge=1, le=12)


class SaveAllRequest(_TimestampMixin):
    """Finalize an interview: one manual timeline entry + biography."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    answers: List[AnswerWithPhotos] = Field(default_factory=list)
    event_info: EventInfo = Field(
        default_factory=EventInfo, validation_alias=AliasChoices("eventInfo", "event_info")
    )
    corrected_text: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("correctedText", "corrected_text")
    )
    photo_paths: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("photoPaths", "photo_paths")
    )
    timestamp: Optional[int] = None


def dump_list(items: List[BaseModel]) -> List[dict[str, Any]]:
    return [item.model_dump() for item in items]
