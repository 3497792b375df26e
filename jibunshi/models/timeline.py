"""
models/timeline.py — SQLAlchemy ORM model for life-event timeline entries.

Table: timeline
Manual entries come from POST /api/timeline and interview save-all.
Auto-generated entries (is_auto_generated=True) come from the AI assembler
and are the rows listed in the PDF chronology table.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from jibunshi.database import Base


class TimelineORM(Base):
    """
    ORM model for one life event.

    edited_content:    text the user last saved for this event.
    ai_corrected_text: raw correction returned by the language model.
    """
    __tablename__ = "timeline"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    stage: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    event_title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    event_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    edited_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_corrected_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_auto_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
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
