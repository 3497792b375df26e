"""
models/interview_session.py — SQLAlchemy ORM model for in-progress interviews.

Table: interview_sessions
Scratch space: one row per user, overwritten by every accepted save and
deleted once the interview is finalized.

conversation / answers_with_photos are stored as JSON TEXT (not a JSON column)
so a corrupted value is detected by the store on load instead of by the driver.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from jibunshi.database import Base


class InterviewSessionORM(Base):
    """
    ORM model for a user's interview progress.

    timestamp: client-supplied epoch milliseconds of the write — the
               last-writer-wins key. updated_at is server time and only
               used to pick the newest row on load.
    """
    __tablename__ = "interview_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    current_question_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    conversation: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="[]",
        comment="JSON list of {role, content} messages in order",
    )
    answers_with_photos: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="[]",
        comment="JSON list of {question, answer, photos} in order",
    )
    event_title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    event_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    event_month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    event_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
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
