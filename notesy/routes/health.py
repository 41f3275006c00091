"""
Notesy Backend - Service Index & Health Check
==============================================

What:  GET / (service index) and GET /health (dependency probe).
Who:   Humans poking the API, Docker health checks, load balancers.

Status levels:
    - healthy:   database reachable and upload directory writable
    - unhealthy: either check failed (HTTP 503)
"""

import logging
import os
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from notesy import __version__
from notesy.schemas.note import HealthResponse
from notesy.services.blob_store import BlobStore, get_blob_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/", summary="Service index")
async def index() -> dict:
    return {
        "success": True,
        "message": "Notesy API Server is running!",
        "version": __version__,
        "endpoints": {
            "notes": "/api/notes",
            "uploads": "/uploads",
            "health": "/health",
        },
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "A dependency is down", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(blobs: BlobStore = Depends(get_blob_store)):
    """
    Check details:
        Database: SELECT 1 through the shared engine
        Storage:  upload directory exists and is writable
    """
    db_status = "connected"
    storage_status = "writable"

    try:
        from notesy.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        logger.warning("Health check: database unreachable: %s", str(e))

    if not (blobs.root.is_dir() and os.access(blobs.root, os.W_OK)):
        storage_status = "unavailable"
        logger.warning("Health check: upload directory not writable: %s", blobs.root)

    healthy = db_status == "connected" and storage_status == "writable"
    body = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=__version__,
        database=db_status,
        storage=storage_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if healthy:
        return body
    return JSONResponse(status_code=503, content=body.model_dump())
