"""
Notesy Backend - Pydantic Request/Response Schemas
===================================================

What:  Field rules for note metadata and the JSON shapes the API returns.
How:   NoteCreate / NoteUpdate hold the constraints (required, trimmed,
       semester range) and are applied by the record store before anything is
       persisted. Response models use camelCase aliases (filePath, fileSize,
       uploadedBy, createdAt).
Who:   NoteRepository (validation), NoteService and routes (responses).

Every response is an envelope with a `success` flag and a human-readable
`message`, plus the payload (`note`, `notes` + `count`, `subjects`) or the
error description.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from notesy.exceptions import ValidationError
from notesy.models.note import SEMESTER_MAX, SEMESTER_MIN

# ══════════════════════════════════════════════════════════════════════════
# Input Models - metadata accepted on upload and update
# ══════════════════════════════════════════════════════════════════════════

NOTE_FIELDS = ("title", "subject", "semester", "unit", "description")


class NoteCreate(BaseModel):
    """
    Metadata required to create a note.

    title/subject:      required, trimmed, non-empty
    semester:           integer 1-8 (form strings like "3" are coerced)
    unit/description:   optional, trimmed, blank stored as null
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: str = Field(min_length=1, max_length=255)
    subject: str = Field(min_length=1, max_length=255)
    semester: int = Field(ge=SEMESTER_MIN, le=SEMESTER_MAX)
    unit: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None

    @field_validator("unit", "description")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class NoteUpdate(BaseModel):
    """
    Partial metadata update. Only keys present in the payload are applied.

    Required fields may be omitted but not set to null. The file itself,
    filename, downloads and createdAt cannot be changed here; unknown keys
    are ignored.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    subject: Optional[str] = Field(default=None, min_length=1, max_length=255)
    semester: Optional[int] = Field(default=None, ge=SEMESTER_MIN, le=SEMESTER_MAX)
    unit: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None

    @field_validator("title", "subject", "semester")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("may not be null")
        return v

    @field_validator("unit", "description")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    def changes(self) -> Dict[str, Any]:
        """The fields the caller actually supplied."""
        return self.model_dump(exclude_unset=True)


_LABELS = {
    "title": "Title",
    "subject": "Subject",
    "semester": "Semester",
    "unit": "Unit",
    "description": "Description",
}

ModelT = TypeVar("ModelT", bound=BaseModel)


def _describe(error: Mapping[str, Any]) -> Dict[str, str]:
    loc = error.get("loc") or ()
    field = str(loc[0]) if loc else "body"
    label = _LABELS.get(field, field)
    kind = error.get("type", "")

    if field == "semester" and kind != "missing":
        message = f"Semester must be a whole number between {SEMESTER_MIN} and {SEMESTER_MAX}"
    elif kind in ("missing", "string_too_short", "value_error"):
        message = f"{label} is required"
    else:
        message = f"{label}: {error.get('msg', 'invalid value')}"
    return {"field": field, "message": message}


def validate_metadata(model: Type[ModelT], data: Mapping[str, Any]) -> ModelT:
    """
    Validate note metadata against `model`, raising the app's ValidationError.

    Keys whose value is None are treated as not supplied for NoteCreate, so
    an absent form field reports "<Field> is required".
    """
    payload = dict(data)
    if model is NoteCreate:
        payload = {k: v for k, v in payload.items() if v is not None}
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        problems = [_describe(err) for err in e.errors()]
        raise ValidationError(
            message=problems[0]["message"],
            field=problems[0]["field"],
            context={"errors": problems},
        )


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UploaderSummary(_CamelModel):
    """The uploading user as embedded in note responses: id, name and email only."""
    id: uuid.UUID
    name: str
    email: str


class NoteResponse(_CamelModel):
    id: uuid.UUID = Field(description="Unique note identifier (UUID)")
    title: str
    subject: str
    semester: int = Field(ge=SEMESTER_MIN, le=SEMESTER_MAX)
    unit: Optional[str] = None
    description: Optional[str] = None
    filename: str = Field(description="Generated storage filename of the PDF")
    file_path: str = Field(description="Location of the PDF in the blob store")
    file_size: Optional[int] = Field(default=None, description="PDF size in bytes")
    uploaded_by: Optional[UploaderSummary] = Field(
        default=None,
        description="Uploading user; null if the user no longer exists",
    )
    downloads: int = Field(ge=0)
    created_at: datetime = Field(description="When the note was uploaded (UTC)")


class NoteEnvelope(BaseModel):
    """Returned by upload (201), get-by-id and update."""
    success: bool = True
    message: str
    note: NoteResponse


class NoteListEnvelope(BaseModel):
    """Returned by GET /api/notes. No pagination: every matching note is included."""
    success: bool = True
    message: str = "Notes fetched successfully"
    count: int
    notes: List[NoteResponse]


class SubjectsEnvelope(BaseModel):
    success: bool = True
    message: str = "Subjects fetched successfully"
    subjects: List[str]


class MessageEnvelope(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """
    Standardized error response for all API errors.

    Example:
        {
            "success": false,
            "error": "not_found",
            "message": "Note not found",
            "details": {"resource": "note", "resource_id": "..."},
            "request_id": "3f2a9c1d"
        }
    """
    success: bool = False
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str
    database: str = Field(description="connected, disconnected")
    storage: str = Field(description="writable, unavailable")
    uptime_seconds: float
