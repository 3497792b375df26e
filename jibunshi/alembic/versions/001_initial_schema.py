"""initial_schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-01 09:00:00.000000 UTC

Creates the ten Jibunshi tables:
  - users               storytellers, identified by (name, birth_month, birth_day)
  - sessions            one login per user, token stored as SHA-256
  - interview_sessions  in-progress interview transcript (JSON TEXT)
  - timeline            life events, manual and auto-generated
  - timeline_metadata   important_events list per user
  - photos              uploaded files
  - timeline_photos     ordered photo links of a timeline entry
  - biography           one finalized narrative per user
  - biography_photos    ordered photo links of the biography
  - pdf_versions        generated booklets
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- users table ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False, comment="Display name as typed at registration (trimmed)"),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("birth_month", sa.Integer(), nullable=False),
        sa.Column("birth_day", sa.Integer(), nullable=False),
        sa.Column("birth_year", sa.Integer(), nullable=True, comment="current year - age at registration"),
        sa.Column("pin_hash", sa.String(length=255), nullable=False, comment="pbkdf2_sha256 hash — plaintext PIN never stored"),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("progress_stage", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", "birth_month", "birth_day", name="uq_users_name_birthday"),
    )
    op.create_index(op.f("ix_users_name"), "users", ["name"], unique=False)

    # --- sessions table ---
    op.create_table(
        "sessions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("device_id", sa.String(length=100), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False, comment="SHA-256 hex digest of the bearer token"),
        sa.Column("login_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_sessions_user_id"), "sessions", ["user_id"], unique=True)
    op.create_index(op.f("ix_sessions_expires_at"), "sessions", ["expires_at"], unique=False)

    # --- interview_sessions table ---
    op.create_table(
        "interview_sessions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("current_question_index", sa.Integer(), nullable=False),
        sa.Column("conversation", sa.Text(), nullable=False, comment="JSON list of {role, content} messages in order"),
        sa.Column("answers_with_photos", sa.Text(), nullable=False, comment="JSON list of {question, answer, photos} in order"),
        sa.Column("event_title", sa.String(length=200), nullable=True),
        sa.Column("event_year", sa.Integer(), nullable=True),
        sa.Column("event_month", sa.Integer(), nullable=True),
        sa.Column("event_description", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.BigInteger(), nullable=True, comment="Client epoch ms — last-writer-wins key"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_interview_sessions_user_id"), "interview_sessions", ["user_id"], unique=True)

    # --- timeline table ---
    op.create_table(
        "timeline",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("month", sa.Integer(), nullable=True),
        sa.Column("stage", sa.String(length=50), nullable=True),
        sa.Column("event_title", sa.String(length=200), nullable=True),
        sa.Column("event_description", sa.Text(), nullable=True),
        sa.Column("edited_content", sa.Text(), nullable=True),
        sa.Column("ai_corrected_text", sa.Text(), nullable=True),
        sa.Column("is_auto_generated", sa.Boolean(), nullable=False, comment="True for entries written by the AI assembler"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_timeline_user_id"), "timeline", ["user_id"], unique=False)
    op.create_index(op.f("ix_timeline_stage"), "timeline", ["stage"], unique=False)

    # --- timeline_metadata table ---
    op.create_table(
        "timeline_metadata",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("important_events", sa.Text(), nullable=False, comment="JSON list of event labels"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_timeline_metadata_user_id"), "timeline_metadata", ["user_id"], unique=True)

    # --- photos table ---
    op.create_table(
        "photos",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("file_path", sa.String(length=500), nullable=False, comment="Public path, always /uploads/<uuid>.<ext>"),
        sa.Column("stage", sa.String(length=50), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ai_analysis", sa.Text(), nullable=True, comment="JSON analysis from the vision model"),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_photos_user_id"), "photos", ["user_id"], unique=False)

    # --- timeline_photos table ---
    op.create_table(
        "timeline_photos",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("timeline_id", sa.Integer(), nullable=False),
        sa.Column("photo_id", sa.Integer(), nullable=True, comment="NULL when the link came from an answer without a photos row"),
        sa.Column("file_path", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["timeline_id"], ["timeline.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["photo_id"], ["photos.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_timeline_photos_timeline_id"), "timeline_photos", ["timeline_id"], unique=False)

    # --- biography table ---
    op.create_table(
        "biography",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("edited_content", sa.Text(), nullable=True),
        sa.Column("ai_summary", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_biography_user_id"), "biography", ["user_id"], unique=True)

    # --- biography_photos table ---
    op.create_table(
        "biography_photos",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("biography_id", sa.Integer(), nullable=False),
        sa.Column("file_path", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["biography_id"], ["biography.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_biography_photos_biography_id"), "biography_photos", ["biography_id"], unique=False)

    # --- pdf_versions table ---
    op.create_table(
        "pdf_versions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("file_path", sa.String(length=500), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, comment="generated"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_pdf_versions_user_id"), "pdf_versions", ["user_id"], unique=False)
    op.create_index(op.f("ix_pdf_versions_filename"), "pdf_versions", ["filename"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_pdf_versions_filename"), table_name="pdf_versions")
    op.drop_index(op.f("ix_pdf_versions_user_id"), table_name="pdf_versions")
    op.drop_table("pdf_versions")
    op.drop_index(op.f("ix_biography_photos_biography_id"), table_name="biography_photos")
    op.drop_table("biography_photos")
    op.drop_index(op.f("ix_biography_user_id"), table_name="biography")
    op.drop_table("biography")
    op.drop_index(op.f("ix_timeline_photos_timeline_id"), table_name="timeline_photos")
    op.drop_table("timeline_photos")
    op.drop_index(op.f("ix_photos_user_id"), table_name="photos")
    op.drop_table("photos")
    op.drop_index(op.f("ix_timeline_metadata_user_id"), table_name="timeline_metadata")
    op.drop_table("timeline_metadata")
    op.drop_index(op.f("ix_timeline_stage"), table_name="timeline")
    op.drop_index(op.f("ix_timeline_user_id"), table_name="timeline")
    op.drop_table("timeline")
    op.drop_index(op.f("ix_interview_sessions_user_id"), table_name="interview_sessions")
    op.drop_table("interview_sessions")
    op.drop_index(op.f("ix_sessions_expires_at"), table_name="sessions")
    op.drop_index(op.f("ix_sessions_user_id"), table_name="sessions")
    op.drop_table("sessions")
    op.drop_index(op.f("ix_users_name"), table_name="users")
    op.drop_table("users")
