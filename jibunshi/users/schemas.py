"""
schemas.py — User registry Pydantic v2 data contracts.

Identity is (name, birth month, birth day); the PIN is exactly four ASCII digits.
Names are trimmed here so the store only ever sees the canonical form.
"""
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

PIN_PATTERN = r"^[0-9]{4}$"

LIFE_STAGES = ("birth", "childhood", "school", "work", "memory", "retirement")

MONTH_ALIASES = AliasChoices("month", "birthMonth", "birth_month")
DAY_ALIASES = AliasChoices("day", "birthDay", "birth_day")


class _NameMixin(BaseModel):
    @field_validator("name", check_fields=False)
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name is required")
        return value


class RegisterRequest(_NameMixin):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str = Field(..., max_length=100)
    age: int = Field(..., ge=1, le=120)
    birth_month: int = Field(..., ge=1, le=12, validation_alias=AliasChoices("birthMonth", "birth_month"))
    birth_day: int = Field(..., ge=1, le=31, validation_alias=AliasChoices("birthDay", "birth_day"))
    pin: str = Field(..., pattern=PIN_PATTERN)
    device_id: Optional[str] = Field(
        default=None, max_length=100, validation_alias=AliasChoices("deviceId", "device_id")
    )


class CheckNameRequest(_NameMixin):
    model_config = ConfigDict(extra="forbid")

    name: str


class CheckBirthdayRequest(_NameMixin):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str
    month: int = Field(..., ge=1, le=12, validation_alias=MONTH_ALIASES)
    day: int = Field(..., ge=1, le=31, validation_alias=DAY_ALIASES)


class VerifyPinRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    user_id: int = Field(..., validation_alias=AliasChoices("userId", "user_id"))
    pin: str = Field(..., pattern=PIN_PATTERN)
    device_id: Optional[str] = Field(
        default=None, max_length=100, validation_alias=AliasChoices("deviceId", "device_id")
    )

    @field_validator("pin", mode="before")
    @classmethod
    def numeric_pin(cls, value):
        # Keypad clients post the PIN as a JSON number
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ForgotPinRequest(_NameMixin):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str
    month: int = Field(..., ge=1, le=12, validation_alias=MONTH_ALIASES)
    day: int = Field(..., ge=1, le=31, validation_alias=DAY_ALIASES)
    new_pin: str = Field(..., pattern=PIN_PATTERN, validation_alias=AliasChoices("newPin", "new_pin"))


class UserUpdateRequest(BaseModel):
    """Partial update: only supplied fields change."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    age: Optional[int] = Field(default=None, ge=1, le=120)
    progress_stage: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("progressStage", "progress_stage")
    )
    status: Optional[str] = Field(default=None, max_length=20)

    @field_validator("progress_stage")
    @classmethod
    def known_stage(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in LIFE_STAGES:
            raise ValueError(f"progress_stage must be one of {', '.join(LIFE_STAGES)}")
        return value


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    age: int
    status: str
    progress_stage: str
