"""
Notesy Backend - Note Service (Handler Orchestration)
======================================================

What:  The upload, query, download, update and delete handlers.
How:   Composes NoteRepository (record store) and BlobStore (file store).
Who:   Called by route handlers after authentication/authorization.
When:  Once per request; the service holds no per-request state.

Upload Flow (write-then-record):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │  Check   │───▶│ Write blob  │───▶│ Validate &   │───▶│  Commit  │
    │  file    │    │ (BlobStore) │    │ insert record│    │          │
    └──────────┘    └─────────────┘    └──────────────┘    └──────────┘
                                              │ any failure
                                              ▼
                                       rollback + delete blob

    There is no transaction spanning the file system and the database, so
    the blob written first is removed again if the record cannot be
    created. Failing to remove it is logged, not reported.

Known gaps (accepted):
    - download: the counter is committed before the blob is opened; a
      missing blob still counts as a download.
    - delete: the blob is removed before the record; if the record delete
      then fails the record points at a missing file.
"""

import logging
import uuid
from pathlib import Path
from typing import Any, List, Mapping, Optional

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from notesy.exceptions import NotFoundError, ValidationError
from notesy.models.note import Note
from notesy.models.user import User
from notesy.repositories.note_repository import NoteFilters, NoteRepository
from notesy.schemas.note import NoteResponse, UploaderSummary
from notesy.services.blob_store import BlobStore, blob_store

logger = logging.getLogger(__name__)


def _parse_id(note_id: str) -> uuid.UUID:
    """Malformed identifiers cannot name a note, so they are reported as not found."""
    try:
        return uuid.UUID(str(note_id))
    except ValueError:
        raise NotFoundError(resource="note", resource_id=str(note_id))


def to_response(note: Note) -> NoteResponse:
    """Serialize a Note with its (already loaded) uploader."""
    uploader = note.uploader
    return NoteResponse(
        id=note.id,
        title=note.title,
        subject=note.subject,
        semester=note.semester,
        unit=note.unit,
        description=note.description,
        filename=note.filename,
        file_path=note.file_path,
        file_size=note.file_size,
        uploaded_by=(
            UploaderSummary(id=uploader.id, name=uploader.name, email=uploader.email)
            if uploader is not None
            else None
        ),
        downloads=note.downloads,
        created_at=note.created_at,
    )


class NoteService:
    """
    Note handlers.

    Error Handling Strategy:
        ValidationError / SizeLimitError / NotFoundError propagate as-is.
        Record store failures arrive as StoreError and blob failures as
        FilesystemError; the global handlers turn all of them into JSON.
    """

    def __init__(self, blobs: BlobStore):
        self.blobs = blobs

    # ── Upload ────────────────────────────────────────────────────────────

    async def upload_note(
        self,
        db: AsyncSession,
        file: Optional[UploadFile],
        metadata: Mapping[str, Any],
        uploader: User,
    ) -> NoteResponse:
        """
        Store a PDF and create its note record as one unit.

        Args:
            db: Request session
            file: The multipart `file` field (None when absent)
            metadata: title, subject, semester, unit, description as received
            uploader: Authenticated admin performing the upload

        Raises:
            ValidationError: no file, not a PDF, or invalid metadata
            SizeLimitError: file over the cap
            FilesystemError / StoreError: storage failures
        """
        if file is None or not file.filename:
            raise ValidationError(message="Please upload a PDF file", field="file")

        self.blobs.validate_media_type(file.content_type)

        blob = await self.blobs.save(file, file.filename, declared_size=file.size)

        repo = NoteRepository(db)
        try:
            note = await repo.create(
                metadata,
                filename=blob.filename,
                file_path=blob.path,
                file_size=blob.size,
                uploaded_by=uploader.id,
            )
            await repo.commit()
        except BaseException:
            # Also reached when the request is cancelled mid-commit
            await repo.rollback()
            await self.blobs.discard(blob.path)
            logger.info("Upload of %s rolled back; blob %s removed", file.filename, blob.filename)
            raise

        created = await repo.get(note.id)
        if created is None:
            raise NotFoundError(resource="note", resource_id=str(note.id))
        logger.info("Note %s uploaded by %s (%s)", created.id, uploader.email, blob.filename)
        return to_response(created)

    # ── Query ─────────────────────────────────────────────────────────────

    async def list_notes(
        self,
        db: AsyncSession,
        subject: Optional[str] = None,
        semester: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[NoteResponse]:
        """
        Every note matching the filters, newest first.

        `semester` is the raw query value; non-numeric input is ignored.
        """
        filters = NoteFilters.from_query(subject=subject, semester=semester, search=search)
        notes = await NoteRepository(db).find(filters)
        return [to_response(note) for note in notes]

    async def get_note(self, db: AsyncSession, note_id: str) -> NoteResponse:
        return to_response(await self._require(NoteRepository(db), note_id))

    async def list_subjects(self, db: AsyncSession) -> List[str]:
        return await NoteRepository(db).distinct_subjects()

    # ── Download ──────────────────────────────────────────────────────────

    async def download_note(self, db: AsyncSession, note_id: str) -> Note:
        """
        Count a download and return the note whose blob should be streamed.

        The increment is committed before the blob is checked. If the blob is
        missing the count stays and NotFoundError("file") is raised.
        """
        parsed = _parse_id(note_id)
        repo = NoteRepository(db)

        if not await repo.increment_downloads(parsed):
            raise NotFoundError(resource="note", resource_id=str(note_id))
        await repo.commit()

        note = await self._require(repo, note_id)
        if not await self.blobs.exists(note.file_path):
            logger.error(
                "Note %s references missing blob %s", note.id, Path(note.file_path).name
            )
            raise NotFoundError(resource="file", resource_id=note.filename)
        return note

    # ── Update ────────────────────────────────────────────────────────────

    async def update_note(
        self,
        db: AsyncSession,
        note_id: str,
        changes: Mapping[str, Any],
    ) -> NoteResponse:
        repo = NoteRepository(db)
        note = await self._require(repo, note_id)
        await repo.update(note, changes)
        await repo.commit()
        return to_response(await self._require(repo, note_id))

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete_note(self, db: AsyncSession, note_id: str) -> None:
        """
        Remove a note's blob, then its record.

        A missing blob is tolerated. A blob that exists but cannot be removed
        raises FilesystemError and the record is kept.
        """
        repo = NoteRepository(db)
        note = await self._require(repo, note_id)

        await self.blobs.delete(note.file_path)
        await repo.delete(note)
        await repo.commit()
        logger.info("Note %s deleted", note.id)

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _require(self, repo: NoteRepository, note_id: str) -> Note:
        note = await repo.get(_parse_id(note_id))
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note


note_service = NoteService(blob_store)


def get_note_service() -> NoteService:
    """FastAPI dependency returning the process-wide note service."""
    return note_service
