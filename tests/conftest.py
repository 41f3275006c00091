"""
Notesy Backend - Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Each test gets its own SQLite database file (aiosqlite, NullPool) and
       its own upload directory under tmp_path. API tests talk to the real
       FastAPI app through httpx's ASGITransport with the session dependency
       pointed at the test database.

Fixture Hierarchy:
    engine ─▶ session_factory ─┬─▶ db_session
                               ├─▶ admin_user / student_user ─▶ *_headers
                               ├─▶ make_note
                               └─▶ client
    blob_store ─▶ service
    pdf_bytes, make_upload
"""

import os
import tempfile
from datetime import datetime, timezone
from io import BytesIO
from typing import AsyncGenerator

# Settings are read at import time, so the environment is prepared first
_TEST_ROOT = tempfile.mkdtemp(prefix="notesy_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_ROOT, 'app.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_ROOT, "uploads")
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["JWT_SECRET"] = "notesy-test-secret-with-enough-entropy"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from starlette.datastructures import Headers, UploadFile

from notesy.auth import create_access_token
from notesy.database import Base, get_db_session
from notesy.models.note import Note
from notesy.models.user import ROLE_ADMIN, ROLE_STUDENT, User
from notesy.services import blob_store as blob_store_module
from notesy.services.blob_store import BlobStore
from notesy.services.note_service import NoteService


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine(tmp_path):
    """
    A file-backed SQLite database with the schema created.

    File-backed (not :memory:) so that concurrent sessions each get their
    own connection to the same data.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'notes.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


async def _create_user(session_factory, name: str, email: str, role: str) -> User:
    user = User(name=name, email=email, role=role)
    async with session_factory() as session:
        session.add(user)
        await session.commit()
    return user


@pytest_asyncio.fixture
async def admin_user(session_factory) -> User:
    return await _create_user(session_factory, "Asha Admin", "admin@notesy.test", ROLE_ADMIN)


@pytest_asyncio.fixture
async def student_user(session_factory) -> User:
    return await _create_user(session_factory, "Sam Student", "student@notesy.test", ROLE_STUDENT)


@pytest.fixture
def make_note(session_factory, admin_user):
    """
    Insert a note record directly, bypassing the upload flow.

    Usage:
        note = await make_note(title="Graphs", subject="DSA", semester=3)
    """

    async def _make(**overrides) -> Note:
        fields = {
            "title": "Untitled",
            "subject": "General",
            "semester": 1,
            "unit": None,
            "description": None,
            "filename": "1700000000000-1.pdf",
            "file_path": "/nonexistent/1700000000000-1.pdf",
            "file_size": 100,
            "uploaded_by": admin_user.id,
            "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }
        fields.update(overrides)
        note = Note(**fields)
        async with session_factory() as session:
            session.add(note)
            await session.commit()
        return note

    return _make


# ══════════════════════════════════════════════════════════════════════════
# Storage & Uploads
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def blob_store(tmp_path) -> BlobStore:
    store = BlobStore(tmp_path / "uploads", max_bytes=1024 * 1024)
    store.initialize()
    return store


@pytest.fixture
def service(blob_store) -> NoteService:
    return NoteService(blob_store)


@pytest.fixture
def pdf_bytes() -> bytes:
    """A tiny PDF-looking payload. Only the declared media type is checked."""
    return (
        b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n"
        b"trailer\n<< /Root 1 0 R >>\n%%EOF\n"
    )


@pytest.fixture
def make_upload():
    """Build a starlette UploadFile as FastAPI would hand it to a route."""

    def _make(
        content: bytes,
        filename: str = "lecture.pdf",
        content_type: str = "application/pdf",
        size=None,
    ) -> UploadFile:
        return UploadFile(
            file=BytesIO(content),
            size=len(content) if size is None else size,
            filename=filename,
            headers=Headers({"content-type": content_type}),
        )

    return _make


# ══════════════════════════════════════════════════════════════════════════
# API Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient bound to the app, with requests using the test database.

    Uploads go to the process-wide blob store (UPLOAD_DIR from the
    environment above), which is also what /uploads serves.
    """
    from notesy.main import app

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    blob_store_module.blob_store.initialize()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {create_access_token(admin_user.id)}"}


@pytest.fixture
def student_headers(student_user):
    return {"Authorization": f"Bearer {create_access_token(student_user.id)}"}
