"""
Notesy Backend - User SQLAlchemy Model
=======================================

What:  Read-side mapping of the `users` table.
Who:   auth.py (resolving the token subject) and Note.uploader.

The identity service owns these rows (registration, password hashing, token
issuance). This service only reads them: to authenticate a request and to
show who uploaded a note.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notesy.database import Base

ROLE_ADMIN = "admin"
ROLE_STUDENT = "student"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    # 'admin' may upload, edit and delete notes; 'student' may browse/download
    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=ROLE_STUDENT,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
