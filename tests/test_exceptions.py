"""
Notesy Backend - Exception Taxonomy Tests
==========================================

What we test:
    ✅ Messages built by the exception classes
    ✅ The caller's context dict is never modified
"""

import pytest

from notesy.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    SizeLimitError,
    ValidationError,
)


class TestContextIsCopied:

    @pytest.mark.parametrize(
        "build",
        [
            lambda ctx: ValidationError("Bad", field="title", context=ctx),
            lambda ctx: SizeLimitError(max_bytes=1024, context=ctx),
            lambda ctx: PermissionDeniedError(role="student", context=ctx),
            lambda ctx: NotFoundError(resource="note", resource_id="abc", context=ctx),
            lambda ctx: RateLimitExceededError(retry_after=5, context=ctx),
        ],
    )
    def test_caller_dict_untouched(self, build):
        shared = {"origin": "caller"}

        exc = build(shared)

        assert shared == {"origin": "caller"}
        assert exc.context["origin"] == "caller"
        assert exc.context is not shared


class TestMessages:

    def test_not_found(self):
        assert NotFoundError(resource="file").message == "File not found"

    def test_size_limit(self):
        exc = SizeLimitError(max_bytes=10 * 1024 * 1024)
        assert exc.message == "File size exceeds maximum of 10MB. Please upload a smaller PDF."
        assert exc.context["field"] == "file"
