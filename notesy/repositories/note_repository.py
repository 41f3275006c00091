"""
Notesy Backend - Note Record Store
===================================

What:  All reads and writes of the `notes` table.
How:   Wraps one AsyncSession. Metadata is validated with the pydantic rules
       in schemas.note before it reaches the ORM, so nothing invalid is ever
       flushed. SQLAlchemy failures are re-raised as StoreError.
Who:   NoteService.

Query patterns:
    list:      WHERE subject = :s AND semester = :n
                 AND (lower(title) LIKE :q OR lower(description) LIKE :q)
               ORDER BY created_at DESC
               -> idx_notes_subject_semester
    get:       WHERE id = :id (primary key)
    download:  UPDATE notes SET downloads = downloads + 1 WHERE id = :id
               (single statement, so concurrent increments never overwrite
               each other)
    subjects:  SELECT DISTINCT subject
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from notesy.exceptions import StoreError
from notesy.models.note import SEMESTER_MAX, SEMESTER_MIN, Note
from notesy.schemas.note import NoteCreate, NoteUpdate, validate_metadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoteFilters:
    """
    Listing filters. All present filters must match; `search` matches when
    either title or description contains it (case-insensitive).
    """
    subject: Optional[str] = None
    semester: Optional[int] = None
    search: Optional[str] = None

    @classmethod
    def from_query(
        cls,
        subject: Optional[str] = None,
        semester: Optional[str] = None,
        search: Optional[str] = None,
    ) -> "NoteFilters":
        """
        Build filters from raw query-string values.

        Empty strings count as absent and a non-numeric semester is ignored.
        """
        parsed_semester: Optional[int] = None
        if semester:
            try:
                parsed_semester = int(semester)
            except ValueError:
                logger.debug("Ignoring non-numeric semester filter %r", semester)
        return cls(
            subject=subject or None,
            semester=parsed_semester,
            search=search or None,
        )

    @property
    def matches_nothing(self) -> bool:
        """A semester outside 1-8 cannot match any stored note."""
        return self.semester is not None and not SEMESTER_MIN <= self.semester <= SEMESTER_MAX


class NoteRepository:
    """Persistence for Note records, bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        metadata: Mapping[str, Any],
        *,
        filename: str,
        file_path: str,
        file_size: Optional[int],
        uploaded_by: uuid.UUID,
    ) -> Note:
        """
        Validate metadata and insert a new note (flushed, not committed).

        Raises:
            ValidationError: metadata breaks a field rule
            StoreError: the insert failed
        """
        fields = validate_metadata(NoteCreate, metadata)
        note = Note(
            **fields.model_dump(),
            filename=filename,
            file_path=file_path,
            file_size=file_size,
            uploaded_by=uploaded_by,
        )
        try:
            self.session.add(note)
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error("Insert of note failed: %s", str(e))
            raise StoreError(
                message="Could not save the note. Please try again.",
                context={"error_type": type(e).__name__},
            )
        logger.info("Note record created: %s", note.id)
        return note

    async def get(self, note_id: uuid.UUID) -> Optional[Note]:
        """Fetch one note with its uploader loaded, or None."""
        query = (
            select(Note)
            .where(Note.id == note_id)
            .options(selectinload(Note.uploader))
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error fetching note %s: %s", note_id, str(e))
            raise StoreError(
                message="Could not retrieve the note. Please try again.",
                context={"note_id": str(note_id)},
            )
        return result.scalar_one_or_none()

    async def find(self, filters: NoteFilters) -> List[Note]:
        """All notes matching `filters`, newest first, uploaders loaded."""
        if filters.matches_nothing:
            return []

        query = select(Note).options(selectinload(Note.uploader))

        if filters.subject is not None:
            query = query.where(Note.subject == filters.subject)
        if filters.semester is not None:
            query = query.where(Note.semester == filters.semester)
        if filters.search is not None:
            # autoescape: % and _ in the term match literally
            query = query.where(
                or_(
                    Note.title.icontains(filters.search, autoescape=True),
                    Note.description.icontains(filters.search, autoescape=True),
                )
            )

        query = query.order_by(Note.created_at.desc())

        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise StoreError(
                message="Could not retrieve notes. Please try again.",
                context={"error_type": type(e).__name__},
            )
        return list(result.scalars().all())

    async def increment_downloads(self, note_id: uuid.UUID) -> bool:
        """
        Add one to a note's download counter in a single UPDATE.

        Returns:
            False if no note has this id.
        """
        statement = (
            update(Note)
            .where(Note.id == note_id)
            .values(downloads=Note.downloads + 1)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            logger.error("Download counter update failed for %s: %s", note_id, str(e))
            raise StoreError(
                message="Could not record the download. Please try again.",
                context={"note_id": str(note_id)},
            )
        return result.rowcount > 0

    async def update(self, note: Note, changes: Mapping[str, Any]) -> Note:
        """
        Apply a partial metadata update.

        All supplied fields are validated before any attribute is touched,
        so a rejected update leaves `note` exactly as it was.
        """
        fields = validate_metadata(NoteUpdate, changes).changes()
        for name, value in fields.items():
            setattr(note, name, value)
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error("Update of note %s failed: %s", note.id, str(e))
            raise StoreError(
                message="Could not update the note. Please try again.",
                context={"note_id": str(note.id)},
            )
        logger.info("Note %s updated: %s", note.id, ", ".join(sorted(fields)) or "no changes")
        return note

    async def delete(self, note: Note) -> None:
        try:
            await self.session.delete(note)
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error("Delete of note %s failed: %s", note.id, str(e))
            raise StoreError(
                message="Could not delete the note. Please try again.",
                context={"note_id": str(note.id)},
            )

    async def distinct_subjects(self) -> List[str]:
        query = select(Note.subject).distinct().order_by(Note.subject)
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error listing subjects: %s", str(e))
            raise StoreError(
                message="Could not retrieve subjects. Please try again.",
                context={"error_type": type(e).__name__},
            )
        return list(result.scalars().all())

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            logger.error("Commit failed: %s", str(e))
            raise StoreError(context={"error_type": type(e).__name__})

    async def rollback(self) -> None:
        await self.session.rollback()
