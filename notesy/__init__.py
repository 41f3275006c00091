"""
Notesy Backend - Application Package
=====================================

What: Notes-sharing API. Authenticated users browse and download PDF study
      notes; administrators upload, edit, and delete them.
Who:  Imported by uvicorn (notesy.main:app), Alembic, and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  <- HTTP concerns only
    ├─────────────────────────────────────┤
    │     Services (Note handlers)        │  <- Orchestration, compensation
    ├──────────────────┬──────────────────┤
    │  NoteRepository  │    BlobStore     │  <- Record store / file store
    ├──────────────────┴──────────────────┤
    │   Models & Schemas, Database        │  <- SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
