"""Create users and notes tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates `users` (uploaders, resolved from bearer tokens) and `notes`
       (metadata of uploaded PDFs).
How:   UUID primary keys, TIMESTAMP WITH TIME ZONE, CHECK constraints on
       semester range and download counter, indexes for the two common
       lookups (subject + semester filter, notes by uploader).

Rollback: downgrade() drops both tables (all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.String(50),
            nullable=False,
            server_default=sa.text("'student'"),
            comment="Access role: admin or student",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "notes",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("unit", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "filename",
            sa.String(255),
            nullable=False,
            comment="Generated stored file name",
        ),
        sa.Column(
            "file_path",
            sa.String(1024),
            nullable=False,
            comment="Location of the stored PDF",
        ),
        sa.Column(
            "file_size",
            sa.Integer(),
            nullable=True,
            comment="Stored size in bytes",
        ),
        sa.Column("uploaded_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "downloads",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["uploaded_by"], ["users.id"], name="fk_notes_uploaded_by_users"),
        sa.CheckConstraint("semester BETWEEN 1 AND 8", name="ck_notes_semester_range"),
        sa.CheckConstraint("downloads >= 0", name="ck_notes_downloads_non_negative"),
    )

    op.create_index("idx_notes_subject_semester", "notes", ["subject", "semester"])
    op.create_index("idx_notes_uploaded_by", "notes", ["uploaded_by"])


def downgrade() -> None:
    op.drop_index("idx_notes_uploaded_by", table_name="notes")
    op.drop_index("idx_notes_subject_semester", table_name="notes")
    op.drop_table("notes")
    op.drop_table("users")
