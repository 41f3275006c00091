"""
Notesy Backend - Note SQLAlchemy Model
=======================================

What:  ORM model representing the `notes` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads it for
       migrations.
Who:   NoteRepository for all reads and writes.

Table Design:
    - UUID primary key generated at creation
    - title/subject/semester: required metadata (validated before insert by
      schemas.note, range also enforced by a CHECK constraint)
    - unit/description: optional metadata
    - filename/file_path/file_size: where the PDF lives in the blob store
    - uploaded_by: non-owning reference to users.id
    - downloads: counter, only ever incremented with an atomic UPDATE
    - created_at: set once at insert, never updated

Indexes:
    idx_notes_subject_semester: filtered listing (?subject=..&semester=..)
    idx_notes_uploaded_by:      per-user queries
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from notesy.database import Base
from notesy.models.user import User

SEMESTER_MIN = 1
SEMESTER_MAX = 8


class Note(Base):
    """
    Metadata record for one uploaded PDF.

    Lifecycle:
        1. Created by the upload handler after its blob is written
        2. Metadata edited by the update handler (blob untouched)
        3. downloads incremented by the download handler
        4. Deleted together with its blob by the delete handler
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Metadata ──────────────────────────────────────────────────────────
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    unit: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Blob Reference ────────────────────────────────────────────────────
    # filename: generated name inside the upload directory (e.g. 1718...-42.pdf)
    # file_path: full path the blob was written to
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # ── Ownership ─────────────────────────────────────────────────────────
    uploaded_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )
    uploader: Mapped[Optional[User]] = relationship(User, lazy="raise")

    # ── Counters & Timestamps ─────────────────────────────────────────────
    downloads: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            f"semester >= {SEMESTER_MIN} AND semester <= {SEMESTER_MAX}",
            name="ck_notes_semester_range",
        ),
        CheckConstraint("downloads >= 0", name="ck_notes_downloads_non_negative"),
        Index("idx_notes_subject_semester", "subject", "semester"),
        Index("idx_notes_uploaded_by", "uploaded_by"),
    )

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, title='{self.title}', subject='{self.subject}', "
            f"semester={self.semester}, downloads={self.downloads})>"
        )
