"""
store.py — Data access facade for Jibunshi.

Provides a consistent, high-level API for persisting and retrieving domain objects.
All feature routes use these functions — no route builds SQLAlchemy statements directly.

Design principles:
  - All functions are async and accept an AsyncSession parameter
  - No raw SQL: ORM-only queries, identical on SQLite and PostgreSQL
  - flush() only — the get_db() dependency owns commit / rollback
  - Logs only ids, counts and timestamps — never PINs, tokens or narrative text
  - JSON TEXT columns are encoded / decoded here and nowhere else
"""
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from jibunshi.models.auth_session import AuthSessionORM
from jibunshi.models.biography import BiographyORM
from jibunshi.models.interview_session import InterviewSessionORM
from jibunshi.models.pdf_version import PdfVersionORM
from jibunshi.models.photo import BiographyPhotoORM, PhotoORM, TimelinePhotoORM
from jibunshi.models.timeline import TimelineORM
from jibunshi.models.timeline_metadata import TimelineMetadataORM
from jibunshi.models.user import UserORM

logger = logging.getLogger(__name__)


class StoredDataError(Exception):
    """A JSON TEXT column holds a value that cannot be decoded."""

    def __init__(self, table: str, column: str, row_id: int, reason: str) -> None:
        self.table = table
        self.column = column
        self.row_id = row_id
        super().__init__(f"{table}.{column} (id={row_id}) is not valid JSON: {reason}")


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is written in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return as_utc(value).isoformat() if value is not None else None


def _decode_list(raw: Optional[str], table: str, column: str, row_id: int) -> list:
    if raw is None or raw == "":
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StoredDataError(table, column, row_id, str(exc)) from exc
    if not isinstance(value, list):
        raise StoredDataError(table, column, row_id, f"expected a list, got {type(value).__name__}")
    return value


def _encode(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


# ---------------------------------------------------------------------------
# User operations
# ---------------------------------------------------------------------------

async def create_user(
    db: AsyncSession,
    *,
    name: str,
    age: int,
    birth_month: int,
    birth_day: int,
    pin_hash: str,
) -> UserORM:
    """
    Insert a new user. birth_year is derived as (current year - age).
    Caller checks find_user_by_identity() first and answers 409 on a hit;
    the unique constraint still guards concurrent registrations.
    """
    orm = UserORM(
        name=name,
        age=age,
        birth_month=birth_month,
        birth_day=birth_day,
        birth_year=datetime.now(timezone.utc).year - age,
        pin_hash=pin_hash,
        status="active",
        progress_stage="birth",
    )
    db.add(orm)
    await db.flush()
    logger.info("Registered user user_id=%s", orm.id)
    return orm


async def get_user(db: AsyncSession, user_id: int) -> Optional[UserORM]:
    result = await db.execute(select(UserORM).where(UserORM.id == user_id))
    return result.scalar_one_or_none()


async def find_users_by_name(db: AsyncSession, name: str) -> Sequence[UserORM]:
    result = await db.execute(
        select(UserORM).where(UserORM.name == name).order_by(UserORM.id)
    )
    return result.scalars().all()


async def find_user_by_identity(
    db: AsyncSession, name: str, birth_month: int, birth_day: int
) -> Optional[UserORM]:
    """Resolve the (name, birth_month, birth_day) identity triple to at most one user."""
    result = await db.execute(
        select(UserORM).where(
            UserORM.name == name,
            UserORM.birth_month == birth_month,
            UserORM.birth_day == birth_day,
        )
    )
    return result.scalar_one_or_none()


async def update_user(db: AsyncSession, user: UserORM, changes: dict) -> UserORM:
    """Apply a partial update. A new age re-derives birth_year the same way create_user does."""
    for field, value in changes.items():
        setattr(user, field, value)
    if "age" in changes:
        user.birth_year = datetime.now(timezone.utc).year - user.age
    await db.flush()
    logger.info("Updated user user_id=%s fields=%s", user.id, sorted(changes))
    return user


async def set_user_pin(db: AsyncSession, user: UserORM, pin_hash: str) -> None:
    user.pin_hash = pin_hash
    await db.flush()
    logger.info("PIN reset user_id=%s", user.id)


async def delete_user(db: AsyncSession, user_id: int) -> bool:
    """
    Hard-delete a user. Every child table declares ON DELETE CASCADE, so the
    database removes sessions, interview progress, timeline, photos,
    biography, metadata and pdf_versions rows in the same statement.
    """
    result = await db.execute(delete(UserORM).where(UserORM.id == user_id))
    deleted = result.rowcount > 0
    logger.info("Deleted user user_id=%s deleted=%s", user_id, deleted)
    return deleted


# ---------------------------------------------------------------------------
# Auth session operations
# ---------------------------------------------------------------------------

async def replace_auth_session(
    db: AsyncSession,
    *,
    user_id: int,
    device_id: str,
    token_hash: str,
    expires_at: datetime,
) -> AuthSessionORM:
    """Supersede any previous login: delete the old row, insert the new one."""
    await db.execute(delete(AuthSessionORM).where(AuthSessionORM.user_id == user_id))
    orm = AuthSessionORM(
        user_id=user_id,
        device_id=device_id,
        token_hash=token_hash,
        expires_at=expires_at,
    )
    db.add(orm)
    await db.flush()
    logger.info("Auth session replaced user_id=%s", user_id)
    return orm


async def verify_auth_session(
    db: AsyncSession, user_id: int, token_hash: str
) -> bool:
    """
    True when the user's session row matches token_hash and has not expired.
    A successful check bumps last_activity.
    """
    result = await db.execute(
        select(AuthSessionORM).where(AuthSessionORM.user_id == user_id)
    )
    orm = result.scalar_one_or_none()
    if orm is None or orm.token_hash != token_hash:
        return False
    now = datetime.now(timezone.utc)
    if as_utc(orm.expires_at) <= now:
        return False
    orm.last_activity = now
    await db.flush()
    return True


async def delete_auth_session(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(delete(AuthSessionORM).where(AuthSessionORM.user_id == user_id))
    logger.info("Auth session removed user_id=%s rows=%d", user_id, result.rowcount)
    return result.rowcount


async def purge_expired_auth_sessions(
    db: AsyncSession, now: Optional[datetime] = None
) -> int:
    """Delete every auth session whose expires_at is in the past. Returns the row count."""
    cutoff = now or datetime.now(timezone.utc)
    result = await db.execute(
        delete(AuthSessionORM)
        .where(AuthSessionORM.expires_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        logger.info("Purged expired auth sessions count=%d", result.rowcount)
    return result.rowcount


# ---------------------------------------------------------------------------
# Interview progress operations
# ---------------------------------------------------------------------------

@dataclass
class InterviewProgress:
    """Decoded interview progress row."""
    id: int
    user_id: int
    current_question_index: int
    conversation: list
    answers_with_photos: list
    event_title: Optional[str]
    event_year: Optional[int]
    event_month: Optional[int]
    event_description: Optional[str]
    timestamp: Optional[int]
    created_at: datetime
    updated_at: datetime


@dataclass
class SaveOutcome:
    """
    Result of save_interview_progress().

    saved=False means the stored row carries a later client timestamp and the
    write was skipped; progress is then the untouched stored row's id only.
    """
    saved: bool
    request_timestamp: int
    existing_timestamp: Optional[int]
    progress: Optional[InterviewProgress] = None


def _decode_progress(orm: InterviewSessionORM) -> InterviewProgress:
    return InterviewProgress(
        id=orm.id,
        user_id=orm.user_id,
        current_question_index=orm.current_question_index,
        conversation=_decode_list(orm.conversation, "interview_sessions", "conversation", orm.id),
        answers_with_photos=_decode_list(
            orm.answers_with_photos, "interview_sessions", "answers_with_photos", orm.id
        ),
        event_title=orm.event_title,
        event_year=orm.event_year,
        event_month=orm.event_month,
        event_description=orm.event_description,
        timestamp=orm.timestamp,
        created_at=orm.created_at,
        updated_at=orm.updated_at,
    )


async def _latest_interview_row(
    db: AsyncSession, user_id: int
) -> Optional[InterviewSessionORM]:
    result = await db.execute(
        select(InterviewSessionORM)
        .where(InterviewSessionORM.user_id == user_id)
        .order_by(InterviewSessionORM.updated_at.desc(), InterviewSessionORM.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def save_interview_progress(
    db: AsyncSession,
    user_id: int,
    *,
    current_question_index: int,
    conversation: list,
    answers_with_photos: list,
    timestamp: int,
    event_title: Optional[str] = None,
    event_year: Optional[int] = None,
    event_month: Optional[int] = None,
    event_description: Optional[str] = None,
) -> SaveOutcome:
    """
    Last-writer-wins save keyed on the client-supplied millisecond timestamp.

    1. Look up the user's existing progress row.
    2. If its stored timestamp is strictly greater than `timestamp`, skip the
       write and report the conflict. An equal timestamp is a retry of the
       same write and is applied again.
    3. Otherwise update every mutable field in place, or insert a new row.

    conversation / answers_with_photos are replaced wholesale, never merged.
    """
    orm = await _latest_interview_row(db, user_id)

    if orm is not None and orm.timestamp is not None and orm.timestamp > timestamp:
        logger.info(
            "Interview save skipped user_id=%s stored_ts=%s request_ts=%s",
            user_id,
            orm.timestamp,
            timestamp,
        )
        return SaveOutcome(saved=False, request_timestamp=timestamp, existing_timestamp=orm.timestamp)

    existing_timestamp = orm.timestamp if orm is not None else None
    if orm is None:
        orm = InterviewSessionORM(user_id=user_id)
        db.add(orm)

    orm.current_question_index = current_question_index
    orm.conversation = _encode(conversation)
    orm.answers_with_photos = _encode(answers_with_photos)
    orm.event_title = event_title
    orm.event_year = event_year
    orm.event_month = event_month
    orm.event_description = event_description
    orm.timestamp = timestamp
    orm.updated_at = datetime.now(timezone.utc)

    await db.flush()
    logger.info(
        "Interview progress saved user_id=%s index=%d messages=%d answers=%d ts=%d",
        user_id,
        current_question_index,
        len(conversation),
        len(answers_with_photos),
        timestamp,
    )
    return SaveOutcome(
        saved=True,
        request_timestamp=timestamp,
        existing_timestamp=existing_timestamp,
        progress=_decode_progress(orm),
    )


async def load_interview_progress(
    db: AsyncSession, user_id: int
) -> Optional[InterviewProgress]:
    """
    Most recently updated progress row, decoded.
    Returns None when the user has no row; raises StoredDataError when a
    stored JSON column is corrupt.
    """
    orm = await _latest_interview_row(db, user_id)
    if orm is None:
        return None
    return _decode_progress(orm)


async def get_interview_row(
    db: AsyncSession, user_id: int
) -> Optional[InterviewSessionORM]:
    """Undecoded row, for metadata-only callers."""
    return await _latest_interview_row(db, user_id)


async def update_interview_answers(
    db: AsyncSession,
    user_id: int,
    answers_with_photos: list,
    timestamp: Optional[int] = None,
) -> bool:
    """Replace answers_with_photos only. False when the user has no progress row."""
    orm = await _latest_interview_row(db, user_id)
    if orm is None:
        return False
    orm.answers_with_photos = _encode(answers_with_photos)
    if timestamp is not None:
        orm.timestamp = timestamp
    orm.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("Interview answers replaced user_id=%s answers=%d", user_id, len(answers_with_photos))
    return True


async def delete_interview_progress(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        delete(InterviewSessionORM).where(InterviewSessionORM.user_id == user_id)
    )
    logger.info("Interview progress deleted user_id=%s rows=%d", user_id, result.rowcount)
    return result.rowcount


# ---------------------------------------------------------------------------
# Timeline operations
# ---------------------------------------------------------------------------

TIMELINE_FIELDS = (
    "age",
    "year",
    "month",
    "stage",
    "event_title",
    "event_description",
    "edited_content",
    "ai_corrected_text",
    "is_auto_generated",
)


async def create_timeline_entry(db: AsyncSession, user_id: int, **fields: Any) -> TimelineORM:
    unknown = set(fields) - set(TIMELINE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown timeline fields: {sorted(unknown)}")
    orm = TimelineORM(user_id=user_id, **fields)
    db.add(orm)
    await db.flush()
    logger.info(
        "Timeline entry created user_id=%s timeline_id=%s auto=%s",
        user_id,
        orm.id,
        orm.is_auto_generated,
    )
    return orm


async def get_timeline_entry(db: AsyncSession, timeline_id: int) -> Optional[TimelineORM]:
    result = await db.execute(select(TimelineORM).where(TimelineORM.id == timeline_id))
    return result.scalar_one_or_none()


async def list_timeline(
    db: AsyncSession, user_id: int, stage: Optional[str] = None
) -> Sequence[TimelineORM]:
    """User's timeline, newest first, optionally restricted to one stage."""
    stmt = select(TimelineORM).where(TimelineORM.user_id == user_id)
    if stage:
        stmt = stmt.where(TimelineORM.stage == stage)
    stmt = stmt.order_by(TimelineORM.created_at.desc(), TimelineORM.id.desc())
    result = await db.execute(stmt)
    return result.scalars().all()


async def latest_timeline_entry(db: AsyncSession, user_id: int) -> Optional[TimelineORM]:
    result = await db.execute(
        select(TimelineORM)
        .where(TimelineORM.user_id == user_id)
        .order_by(TimelineORM.created_at.desc(), TimelineORM.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_auto_generated_entries(db: AsyncSession, user_id: int) -> Sequence[TimelineORM]:
    """AI-assembled entries in chronological (year, month) order; undated rows last."""
    result = await db.execute(
        select(TimelineORM)
        .where(TimelineORM.user_id == user_id, TimelineORM.is_auto_generated.is_(True))
        .order_by(
            TimelineORM.year.is_(None),
            TimelineORM.year,
            TimelineORM.month.is_(None),
            TimelineORM.month,
            TimelineORM.id,
        )
    )
    return result.scalars().all()


async def count_timeline_entries(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count(TimelineORM.id)).where(TimelineORM.user_id == user_id)
    )
    return result.scalar_one()


async def update_timeline_entry(db: AsyncSession, entry: TimelineORM, changes: dict) -> TimelineORM:
    for field, value in changes.items():
        if field not in TIMELINE_FIELDS:
            raise ValueError(f"Unknown timeline field: {field}")
        setattr(entry, field, value)
    entry.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("Timeline entry updated timeline_id=%s fields=%s", entry.id, sorted(changes))
    return entry


async def delete_timeline_entry(db: AsyncSession, entry: TimelineORM) -> None:
    await db.execute(delete(TimelineORM).where(TimelineORM.id == entry.id))
    logger.info("Timeline entry deleted timeline_id=%s", entry.id)


# ---------------------------------------------------------------------------
# Photo operations
# ---------------------------------------------------------------------------

@dataclass
class PhotoRef:
    """A photo reference to attach to a timeline entry or the biography."""
    file_path: str
    description: Optional[str] = None
    photo_id: Optional[int] = None


async def create_photo(
    db: AsyncSession,
    user_id: int,
    *,
    filename: str,
    file_path: str,
    stage: Optional[str] = None,
    description: Optional[str] = None,
) -> PhotoORM:
    orm = PhotoORM(
        user_id=user_id,
        filename=filename,
        file_path=file_path,
        stage=stage,
        description=description,
    )
    db.add(orm)
    await db.flush()
    logger.info("Photo stored user_id=%s photo_id=%s", user_id, orm.id)
    return orm


async def get_photo(db: AsyncSession, photo_id: int) -> Optional[PhotoORM]:
    result = await db.execute(select(PhotoORM).where(PhotoORM.id == photo_id))
    return result.scalar_one_or_none()


async def get_photo_by_path(
    db: AsyncSession, user_id: int, file_path: str
) -> Optional[PhotoORM]:
    result = await db.execute(
        select(PhotoORM)
        .where(PhotoORM.user_id == user_id, PhotoORM.file_path == file_path)
        .order_by(PhotoORM.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_photos(db: AsyncSession, user_id: int) -> Sequence[PhotoORM]:
    result = await db.execute(
        select(PhotoORM)
        .where(PhotoORM.user_id == user_id)
        .order_by(PhotoORM.uploaded_at.desc(), PhotoORM.id.desc())
    )
    return result.scalars().all()


async def delete_photo(db: AsyncSession, photo: PhotoORM) -> None:
    await db.execute(delete(PhotoORM).where(PhotoORM.id == photo.id))
    logger.info("Photo deleted photo_id=%s", photo.id)


async def set_photo_analysis(db: AsyncSession, photo: PhotoORM, analysis: dict) -> None:
    photo.ai_analysis = _encode(analysis)
    await db.flush()
    logger.info("Photo analysis stored photo_id=%s", photo.id)


async def replace_timeline_photos(
    db: AsyncSession, timeline_id: int, refs: Sequence[PhotoRef]
) -> int:
    """Drop every existing link of the entry, then insert refs with display_order = position."""
    await db.execute(delete(TimelinePhotoORM).where(TimelinePhotoORM.timeline_id == timeline_id))
    for order, ref in enumerate(refs):
        db.add(
            TimelinePhotoORM(
                timeline_id=timeline_id,
                photo_id=ref.photo_id,
                file_path=ref.file_path,
                description=ref.description,
                display_order=order,
            )
        )
    await db.flush()
    logger.info("Timeline photos replaced timeline_id=%s count=%d", timeline_id, len(refs))
    return len(refs)


async def list_timeline_photos(db: AsyncSession, timeline_id: int) -> Sequence[TimelinePhotoORM]:
    result = await db.execute(
        select(TimelinePhotoORM)
        .where(TimelinePhotoORM.timeline_id == timeline_id)
        .order_by(TimelinePhotoORM.display_order, TimelinePhotoORM.id)
    )
    return result.scalars().all()


async def unlink_timeline_photo(db: AsyncSession, timeline_id: int, photo_id: int) -> int:
    result = await db.execute(
        delete(TimelinePhotoORM).where(
            TimelinePhotoORM.timeline_id == timeline_id,
            TimelinePhotoORM.photo_id == photo_id,
        )
    )
    logger.info(
        "Timeline photo unlinked timeline_id=%s photo_id=%s rows=%d",
        timeline_id,
        photo_id,
        result.rowcount,
    )
    return result.rowcount


# ---------------------------------------------------------------------------
# Biography operations
# ---------------------------------------------------------------------------

async def get_biography(db: AsyncSession, user_id: int) -> Optional[BiographyORM]:
    result = await db.execute(select(BiographyORM).where(BiographyORM.user_id == user_id))
    return result.scalar_one_or_none()


async def get_biography_by_id(db: AsyncSession, biography_id: int) -> Optional[BiographyORM]:
    result = await db.execute(select(BiographyORM).where(BiographyORM.id == biography_id))
    return result.scalar_one_or_none()


async def upsert_biography(
    db: AsyncSession,
    user_id: int,
    edited_content: str,
    ai_summary: Optional[str] = None,
) -> tuple[BiographyORM, bool]:
    """
    Create or overwrite the user's single biography row.
    ai_summary defaults to edited_content. Returns (row, created).
    """
    orm = await get_biography(db, user_id)
    created = orm is None
    if created:
        orm = BiographyORM(user_id=user_id)
        db.add(orm)
    orm.edited_content = edited_content
    orm.ai_summary = ai_summary or edited_content
    orm.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("Biography saved user_id=%s biography_id=%s created=%s", user_id, orm.id, created)
    return orm, created


async def update_biography(db: AsyncSession, biography: BiographyORM, changes: dict) -> BiographyORM:
    for field in ("edited_content", "ai_summary"):
        if changes.get(field):
            setattr(biography, field, changes[field])
    biography.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("Biography updated biography_id=%s", biography.id)
    return biography


async def delete_biography(db: AsyncSession, biography: BiographyORM) -> None:
    await db.execute(delete(BiographyORM).where(BiographyORM.id == biography.id))
    logger.info("Biography deleted biography_id=%s", biography.id)


async def replace_biography_photos(
    db: AsyncSession, biography_id: int, refs: Sequence[PhotoRef]
) -> int:
    await db.execute(delete(BiographyPhotoORM).where(BiographyPhotoORM.biography_id == biography_id))
    for order, ref in enumerate(refs):
        db.add(
            BiographyPhotoORM(
                biography_id=biography_id,
                file_path=ref.file_path,
                description=ref.description,
                display_order=order,
            )
        )
    await db.flush()
    logger.info("Biography photos replaced biography_id=%s count=%d", biography_id, len(refs))
    return len(refs)


async def list_biography_photos(db: AsyncSession, biography_id: int) -> Sequence[BiographyPhotoORM]:
    result = await db.execute(
        select(BiographyPhotoORM)
        .where(BiographyPhotoORM.biography_id == biography_id)
        .order_by(BiographyPhotoORM.display_order, BiographyPhotoORM.id)
    )
    return result.scalars().all()


# ---------------------------------------------------------------------------
# Timeline metadata operations
# ---------------------------------------------------------------------------

async def get_timeline_metadata(db: AsyncSession, user_id: int) -> Optional[list]:
    result = await db.execute(
        select(TimelineMetadataORM).where(TimelineMetadataORM.user_id == user_id)
    )
    orm = result.scalar_one_or_none()
    if orm is None:
        return None
    return _decode_list(orm.important_events, "timeline_metadata", "important_events", orm.id)


async def upsert_timeline_metadata(db: AsyncSession, user_id: int, important_events: list) -> list:
    result = await db.execute(
        select(TimelineMetadataORM).where(TimelineMetadataORM.user_id == user_id)
    )
    orm = result.scalar_one_or_none()
    if orm is None:
        orm = TimelineMetadataORM(user_id=user_id)
        db.add(orm)
    orm.important_events = _encode(important_events)
    orm.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("Timeline metadata saved user_id=%s events=%d", user_id, len(important_events))
    return important_events


# ---------------------------------------------------------------------------
# PDF version operations
# ---------------------------------------------------------------------------

async def record_pdf_version(
    db: AsyncSession, user_id: int, filename: str, file_path: str
) -> PdfVersionORM:
    """Insert a pdf_versions row with version = previous max + 1."""
    result = await db.execute(
        select(func.max(PdfVersionORM.version)).where(PdfVersionORM.user_id == user_id)
    )
    latest = result.scalar_one_or_none() or 0
    orm = PdfVersionORM(
        user_id=user_id,
        filename=filename,
        file_path=file_path,
        version=latest + 1,
        status="generated",
    )
    db.add(orm)
    await db.flush()
    logger.info("PDF recorded user_id=%s version=%d", user_id, orm.version)
    return orm


async def list_pdf_versions(db: AsyncSession, user_id: int) -> Sequence[PdfVersionORM]:
    result = await db.execute(
        select(PdfVersionORM)
        .where(PdfVersionORM.user_id == user_id)
        .order_by(PdfVersionORM.version.desc())
    )
    return result.scalars().all()


async def get_pdf_version(
    db: AsyncSession, user_id: int, filename: str
) -> Optional[PdfVersionORM]:
    result = await db.execute(
        select(PdfVersionORM).where(
            PdfVersionORM.user_id == user_id,
            PdfVersionORM.filename == filename,
        )
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------

async def delete_user_content(db: AsyncSession, user_id: int) -> dict[str, int]:
    """
    Remove all generated content of one user, children before parents.
    Returns per-table deleted row counts. Nothing outside user_id is touched.
    """
    biography_ids = select(BiographyORM.id).where(BiographyORM.user_id == user_id)
    timeline_ids = select(TimelineORM.id).where(TimelineORM.user_id == user_id)

    counts = {}
    result = await db.execute(
        delete(BiographyPhotoORM)
        .where(BiographyPhotoORM.biography_id.in_(biography_ids))
        .execution_options(synchronize_session=False)
    )
    counts["biography_photos"] = result.rowcount
    result = await db.execute(
        delete(TimelinePhotoORM)
        .where(TimelinePhotoORM.timeline_id.in_(timeline_ids))
        .execution_options(synchronize_session=False)
    )
    counts["timeline_photos"] = result.rowcount
    result = await db.execute(delete(TimelineORM).where(TimelineORM.user_id == user_id))
    counts["timeline"] = result.rowcount
    result = await db.execute(delete(BiographyORM).where(BiographyORM.user_id == user_id))
    counts["biography"] = result.rowcount
    result = await db.execute(
        delete(TimelineMetadataORM).where(TimelineMetadataORM.user_id == user_id)
    )
    counts["timeline_metadata"] = result.rowcount

    logger.info("User content deleted user_id=%s counts=%s", user_id, counts)
    return counts
