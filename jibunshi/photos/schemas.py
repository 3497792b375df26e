"""
schemas.py — Photo response contract.
"""
import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator

from jibunshi.store import to_iso


class PhotoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    filename: str
    file_path: str
    stage: Optional[str]
    description: Optional[str]
    ai_analysis: Optional[Any]
    uploaded_at: datetime

    @field_validator("ai_analysis", mode="before")
    @classmethod
    def decode_analysis(cls, value: Any) -> Any:
        # Stored as JSON TEXT; an undecodable value is returned raw
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        return value

    @field_serializer("uploaded_at")
    def _iso(self, value: datetime) -> str:
        return to_iso(value)
