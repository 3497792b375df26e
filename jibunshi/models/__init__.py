"""
models/__init__.py — imports all ORM models so Alembic's env.py and
Database.create_all() see them via Base.metadata.

Import order follows foreign-key dependencies (users first).
"""
from jibunshi.models.user import UserORM
from jibunshi.models.auth_session import AuthSessionORM
from jibunshi.models.interview_session import InterviewSessionORM
from jibunshi.models.timeline import TimelineORM
from jibunshi.models.biography import BiographyORM
from jibunshi.models.photo import BiographyPhotoORM, PhotoORM, TimelinePhotoORM
from jibunshi.models.timeline_metadata import TimelineMetadataORM
from jibunshi.models.pdf_version import PdfVersionORM

__all__ = [
    "UserORM",
    "AuthSessionORM",
    "InterviewSessionORM",
    "TimelineORM",
    "BiographyORM",
    "PhotoORM",
    "TimelinePhotoORM",
    "BiographyPhotoORM",
    "TimelineMetadataORM",
    "PdfVersionORM",
]
