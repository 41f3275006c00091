"""
Notesy Backend - Middleware Tests
==================================

What we test:
    ✅ Rate limit: 429 envelope with Retry-After and the request id
    ✅ Access log: one line per request, level by status, user and upload size
    ✅ Skipped paths are not logged but still get a request id
"""

import logging

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from notesy.config import settings
from notesy.middleware.rate_limit import RateLimitMiddleware
from notesy.middleware.request_context import RequestContextMiddleware


def _access_records(caplog):
    return [r for r in caplog.records if r.name == "notesy.access"]


def _limited_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestContextMiddleware)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return app


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_over_limit_returns_429_envelope(self, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 2)
        transport = ASGITransport(app=_limited_app())

        async with AsyncClient(transport=transport, base_url="http://test") as client:
            assert (await client.get("/ping")).status_code == 200
            assert (await client.get("/ping")).status_code == 200
            response = await client.get("/ping", headers={"X-Request-ID": "limit001"})

        assert response.status_code == 429
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "rate_limit_exceeded"
        assert body["request_id"] == "limit001"
        assert response.headers["X-Request-ID"] == "limit001"
        assert int(response.headers["Retry-After"]) > 0
        assert body["details"]["retry_after"] == int(response.headers["Retry-After"])

    @pytest.mark.asyncio
    async def test_excluded_paths_not_limited(self, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 1)
        app = _limited_app()

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            statuses = [(await client.get("/health")).status_code for _ in range(3)]

        assert statuses == [200, 200, 200]


class TestAccessLog:

    @pytest.mark.asyncio
    async def test_one_info_line_per_request(self, client, caplog):
        caplog.set_level(logging.INFO, logger="notesy.access")

        await client.get("/", headers={"X-Request-ID": "idx00001"})

        records = _access_records(caplog)
        assert len(records) == 1
        assert records[0].levelno == logging.INFO
        message = records[0].getMessage()
        assert message.startswith("GET / 200 ")
        assert "[idx00001]" in message
        assert "user=-" in message

    @pytest.mark.asyncio
    async def test_not_found_logged_as_warning(self, client, caplog):
        caplog.set_level(logging.INFO, logger="notesy.access")

        await client.get("/api/unknown")

        records = _access_records(caplog)
        assert len(records) == 1
        assert records[0].levelno == logging.WARNING
        assert " 404 " in records[0].getMessage()

    @pytest.mark.asyncio
    async def test_authenticated_user_is_logged(self, client, caplog, admin_headers, admin_user):
        caplog.set_level(logging.INFO, logger="notesy.access")

        await client.get("/api/notes", headers=admin_headers)

        records = _access_records(caplog)
        assert len(records) == 1
        assert f"user={admin_user.id}" in records[0].getMessage()

    @pytest.mark.asyncio
    async def test_upload_size_is_logged(self, client, caplog, admin_headers, pdf_bytes):
        caplog.set_level(logging.INFO, logger="notesy.access")

        await client.post(
            "/api/notes/upload",
            headers=admin_headers,
            files={"file": ("graphs.pdf", pdf_bytes, "application/pdf")},
            data={"title": "Graphs", "subject": "DSA", "semester": "3"},
        )

        message = _access_records(caplog)[0].getMessage()
        assert message.startswith("POST /api/notes/upload 201 ")
        assert "upload=" in message
        assert "upload=?B" not in message

    @pytest.mark.asyncio
    async def test_health_not_logged_but_tagged(self, client, caplog):
        caplog.set_level(logging.INFO, logger="notesy.access")

        response = await client.get("/health")

        assert _access_records(caplog) == []
        assert response.headers["X-Request-ID"]
