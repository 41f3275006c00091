"""
Notesy Backend - Notes Route Handlers
======================================

What:  HTTP surface of the note handlers, mounted at /api/notes.
How:   Authenticates (and for mutations authorizes) through dependencies,
       delegates to NoteService, wraps results in response envelopes.

Route Inventory:
    POST   /api/notes/upload          admin          create note + blob
    GET    /api/notes                 authenticated  list/filter notes
    GET    /api/notes/subjects/list   authenticated  distinct subjects
    GET    /api/notes/download/{id}   authenticated  count + stream PDF
    GET    /api/notes/{id}            authenticated  fetch one note
    PUT    /api/notes/{id}            admin          update metadata
    DELETE /api/notes/{id}            admin          delete note + blob

/subjects/list and /download/{id} are registered before /{id} so the
literal segments win.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, Form, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from notesy.auth import get_current_user, require_role
from notesy.database import get_db_session
from notesy.models.user import ROLE_ADMIN, User
from notesy.schemas.note import (
    ErrorResponse,
    MessageEnvelope,
    NoteEnvelope,
    NoteListEnvelope,
    SubjectsEnvelope,
)
from notesy.services.blob_store import ALLOWED_MEDIA_TYPE
from notesy.services.note_service import NoteService, get_note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["Notes"])

_AUTH_ERRORS = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}
_ADMIN_ERRORS = {
    **_AUTH_ERRORS,
    403: {"description": "Admin role required", "model": ErrorResponse},
}


@router.post(
    "/upload",
    status_code=201,
    response_model=NoteEnvelope,
    responses={
        400: {"description": "Missing file, not a PDF, too large, or invalid metadata", "model": ErrorResponse},
        **_ADMIN_ERRORS,
    },
    summary="Upload a PDF note",
    description=(
        "Multipart upload with a `file` field (PDF only, max 10MB) and the metadata "
        "fields title, subject, semester (1-8), unit and description."
    ),
)
async def upload_note(
    file: Optional[UploadFile] = File(None, description="PDF file, max 10MB"),
    title: Optional[str] = Form(None),
    subject: Optional[str] = Form(None),
    semester: Optional[str] = Form(None, description="Semester number 1-8"),
    unit: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    user: User = Depends(require_role(ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteEnvelope:
    logger.info(
        "Received upload: filename=%s, content_type=%s",
        file.filename if file else None,
        file.content_type if file else None,
    )
    metadata = {
        "title": title,
        "subject": subject,
        "semester": semester,
        "unit": unit,
        "description": description,
    }
    try:
        note = await service.upload_note(db, file, metadata, user)
    finally:
        if file is not None:
            await file.close()
    return NoteEnvelope(message="Note uploaded successfully", note=note)


@router.get(
    "",
    response_model=NoteListEnvelope,
    responses=_AUTH_ERRORS,
    summary="List notes",
    description=(
        "All notes matching the optional filters, newest first. `subject` is an exact "
        "match, `semester` an integer (non-numeric values are ignored), `search` a "
        "case-insensitive substring of the title or description."
    ),
)
async def list_notes(
    subject: Optional[str] = Query(default=None, description="Exact subject"),
    semester: Optional[str] = Query(default=None, description="Semester number"),
    search: Optional[str] = Query(default=None, description="Text in title or description"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteListEnvelope:
    notes = await service.list_notes(db, subject=subject, semester=semester, search=search)
    return NoteListEnvelope(count=len(notes), notes=notes)


@router.get(
    "/subjects/list",
    response_model=SubjectsEnvelope,
    responses=_AUTH_ERRORS,
    summary="Distinct subjects",
)
async def list_subjects(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> SubjectsEnvelope:
    return SubjectsEnvelope(subjects=await service.list_subjects(db))


@router.get(
    "/download/{note_id}",
    response_class=FileResponse,
    responses={
        200: {"description": "The PDF", "content": {ALLOWED_MEDIA_TYPE: {}}},
        404: {"description": "Note or file not found", "model": ErrorResponse},
        **_AUTH_ERRORS,
    },
    summary="Download a note",
    description="Increments the note's download counter, then streams the PDF.",
)
async def download_note(
    note_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> FileResponse:
    note = await service.download_note(db, note_id)
    return FileResponse(
        path=note.file_path,
        media_type=ALLOWED_MEDIA_TYPE,
        filename=note.filename,
    )


@router.get(
    "/{note_id}",
    response_model=NoteEnvelope,
    responses={404: {"description": "Note not found", "model": ErrorResponse}, **_AUTH_ERRORS},
    summary="Get a single note",
)
async def get_note(
    note_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteEnvelope:
    note = await service.get_note(db, note_id)
    return NoteEnvelope(message="Note fetched successfully", note=note)


@router.put(
    "/{note_id}",
    response_model=NoteEnvelope,
    responses={
        400: {"description": "Invalid metadata", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
        **_ADMIN_ERRORS,
    },
    summary="Update note metadata",
    description="Partial update of title, subject, semester, unit and description.",
)
async def update_note(
    note_id: str,
    changes: Dict[str, Any] = Body(..., examples=[{"title": "Graph Algorithms", "semester": 4}]),
    user: User = Depends(require_role(ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteEnvelope:
    note = await service.update_note(db, note_id, changes)
    return NoteEnvelope(message="Note updated successfully", note=note)


@router.delete(
    "/{note_id}",
    response_model=MessageEnvelope,
    responses={404: {"description": "Note not found", "model": ErrorResponse}, **_ADMIN_ERRORS},
    summary="Delete a note and its file",
)
async def delete_note(
    note_id: str,
    user: User = Depends(require_role(ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> MessageEnvelope:
    await service.delete_note(db, note_id)
    return MessageEnvelope(message="Note deleted successfully")
