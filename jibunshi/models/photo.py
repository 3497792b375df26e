"""
models/photo.py — SQLAlchemy ORM models for uploaded photographs and their links.

Tables:
  photos            one row per uploaded file
  timeline_photos   ordered photo references attached to a timeline entry
  biography_photos  ordered photo references attached to the biography

Link rows carry their own file_path copy so a link survives even when the
reference came from an interview answer that never had a photos row.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from jibunshi.database import Base


class PhotoORM(Base):
    __tablename__ = "photos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Public path, always /uploads/<uuid>.<ext>",
    )
    stage: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_analysis: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="JSON analysis from the vision model",
    )
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class TimelinePhotoORM(Base):
    __tablename__ = "timeline_photos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timeline_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("timeline.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    photo_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("photos.id", ondelete="CASCADE"),
        nullable=True,
    )
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class BiographyPhotoORM(Base):
    __tablename__ = "biography_photos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    biography_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("biography.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
