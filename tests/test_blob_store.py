"""
Notesy Backend - Blob Store Unit Tests
=======================================

What we test:
    ✅ Media type check (PDF only, parameters and case ignored)
    ✅ Generated file names keep only the extension
    ✅ Streaming save with size cap, no partial file left behind
    ✅ Declared size rejected before writing
    ✅ Delete reports whether a file was removed
    ✅ Write failures surface as FilesystemError
"""

import re
from io import BytesIO

import pytest
from starlette.datastructures import UploadFile

from notesy.exceptions import FilesystemError, SizeLimitError, ValidationError
from notesy.services.blob_store import BlobStore


class TestMediaType:

    def setup_method(self):
        self.store = BlobStore("/tmp/notesy-unused", max_bytes=1024)

    @pytest.mark.parametrize(
        "content_type",
        ["application/pdf", "Application/PDF", "application/pdf; charset=binary"],
    )
    def test_pdf_accepted(self, content_type):
        self.store.validate_media_type(content_type)

    @pytest.mark.parametrize("content_type", ["image/png", "text/plain", "", None])
    def test_other_types_rejected(self, content_type):
        with pytest.raises(ValidationError) as exc_info:
            self.store.validate_media_type(content_type)
        assert exc_info.value.message == "Only PDF files are allowed"
        assert exc_info.value.context["field"] == "file"


class TestGenerateFilename:

    def setup_method(self):
        self.store = BlobStore("/tmp/notesy-unused", max_bytes=1024)

    def test_format(self):
        name = self.store.generate_filename("My Lecture Notes.pdf")
        assert re.fullmatch(r"\d{13}-\d{1,9}\.pdf", name)

    def test_client_name_not_used(self):
        name = self.store.generate_filename("../../etc/passwd.pdf")
        assert "passwd" not in name
        assert "/" not in name

    def test_extension_kept_as_sent(self):
        assert self.store.generate_filename("NOTES.PDF").endswith(".PDF")
        assert "." not in self.store.generate_filename("noextension")

    def test_names_differ(self):
        names = {self.store.generate_filename("a.pdf") for _ in range(50)}
        assert len(names) > 1


class TestSave:

    @pytest.mark.asyncio
    async def test_save_writes_all_bytes(self, blob_store, pdf_bytes):
        stored = await blob_store.save(UploadFile(BytesIO(pdf_bytes)), "lecture.pdf")

        assert stored.size == len(pdf_bytes)
        assert stored.filename.endswith(".pdf")
        with open(stored.path, "rb") as f:
            assert f.read() == pdf_bytes
        assert await blob_store.exists(stored.path)

    @pytest.mark.asyncio
    async def test_oversize_stream_leaves_nothing(self, tmp_path):
        store = BlobStore(tmp_path / "small", max_bytes=10)
        store.initialize()

        with pytest.raises(SizeLimitError):
            await store.save(UploadFile(BytesIO(b"x" * 11)), "big.pdf")

        assert list(store.root.iterdir()) == []

    @pytest.mark.asyncio
    async def test_exactly_at_cap_is_accepted(self, tmp_path):
        store = BlobStore(tmp_path / "small", max_bytes=10)
        store.initialize()

        stored = await store.save(UploadFile(BytesIO(b"x" * 10)), "fits.pdf")
        assert stored.size == 10

    @pytest.mark.asyncio
    async def test_declared_oversize_rejected_before_write(self, tmp_path):
        store = BlobStore(tmp_path / "small", max_bytes=10)
        store.initialize()

        with pytest.raises(SizeLimitError) as exc_info:
            await store.save(UploadFile(BytesIO(b"x")), "big.pdf", declared_size=11)

        assert exc_info.value.context["reported_size"] == 11
        assert list(store.root.iterdir()) == []

    def test_size_limit_message(self):
        store = BlobStore("/tmp/notesy-unused", max_bytes=10 * 1024 * 1024)
        with pytest.raises(SizeLimitError) as exc_info:
            store.check_declared_size(10 * 1024 * 1024 + 1)
        assert "10MB" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unwritable_root_raises_filesystem_error(self, tmp_path):
        store = BlobStore(tmp_path / "never-created", max_bytes=1024)

        with pytest.raises(FilesystemError):
            await store.save(UploadFile(BytesIO(b"%PDF")), "a.pdf")


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_existing_then_missing(self, blob_store, pdf_bytes):
        stored = await blob_store.save(UploadFile(BytesIO(pdf_bytes)), "lecture.pdf")

        assert await blob_store.delete(stored.path) is True
        assert not await blob_store.exists(stored.path)
        assert await blob_store.delete(stored.path) is False

    @pytest.mark.asyncio
    async def test_discard_missing_is_silent(self, blob_store):
        await blob_store.discard(blob_store.path_for("does-not-exist.pdf"))
