"""
models/user.py — SQLAlchemy ORM model for registered storytellers.

Table: users
Identity is the triple (name, birth_month, birth_day) — there is no e-mail.
Same-name users are told apart by their birthday during login.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from jibunshi.database import Base


class UserORM(Base):
    """
    ORM model for a user.

    pin_hash: pbkdf2_sha256 hash of the 4-digit PIN — the plaintext PIN is never stored.
    birth_year: derived at registration as (current year - age).
    progress_stage: one of birth, childhood, school, work, memory, retirement.
    """
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("name", "birth_month", "birth_day", name="uq_users_name_birthday"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Display name as typed at registration (trimmed)",
    )
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    birth_month: Mapped[int] = mapped_column(Integer, nullable=False)
    birth_day: Mapped[int] = mapped_column(Integer, nullable=False)
    birth_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    pin_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    progress_stage: Mapped[str] = mapped_column(String(20), nullable=False, default="birth")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
