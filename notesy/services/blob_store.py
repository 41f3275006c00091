"""
Notesy Backend - Blob Store
============================

What:  Filesystem storage for uploaded PDF binaries.
How:   Checks the declared media type, streams the upload to disk in chunks
       with aiofiles while enforcing the byte cap, and names each file
       `<epoch-millis>-<random><original extension>`.
Who:   NoteService (upload, download, delete).
When:  Constructed at import with the configured directory; `initialize()`
       creates the directory once during app startup.

Upload Safety:
    1. Media type check:  before any byte is written
    2. Declared size:     rejected before writing when the client reports it
    3. Streaming cap:     the copy aborts as soon as the cap is passed and the
                          partial file is removed
    4. Generated names:   only the extension comes from the client
"""

import logging
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

import aiofiles
import aiofiles.os

from notesy.config import settings
from notesy.exceptions import FilesystemError, SizeLimitError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MEDIA_TYPE = "application/pdf"

# 1 MiB read/write chunks
CHUNK_SIZE = 1024 * 1024


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


@dataclass(frozen=True)
class StoredBlob:
    """A blob that has been written to the store."""
    filename: str
    path: str
    size: int


class BlobStore:
    """
    Manages the PDF files behind note records.

    Directory Structure:
        uploads/
        ├── 1718031112345-482913004.pdf
        └── 1718031187654-17734219.pdf
    """

    def __init__(self, root: Union[str, Path], max_bytes: Optional[int] = None):
        self.root = Path(root).resolve()
        self.max_bytes = max_bytes if max_bytes is not None else settings.max_file_size

    def initialize(self) -> None:
        """Create the storage directory. Idempotent."""
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info("BlobStore initialized at %s (cap %d bytes)", self.root, self.max_bytes)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_media_type(self, content_type: Optional[str]) -> None:
        """
        Accept only PDFs, judged by the declared media type.

        Parameters such as `; charset=binary` are ignored and the comparison
        is case-insensitive.
        """
        media_type = (content_type or "").split(";", 1)[0].strip().lower()
        if media_type != ALLOWED_MEDIA_TYPE:
            raise ValidationError(
                message="Only PDF files are allowed",
                field="file",
                context={"content_type": content_type, "allowed": [ALLOWED_MEDIA_TYPE]},
            )

    def check_declared_size(self, declared_size: Optional[int]) -> None:
        if declared_size is not None and declared_size > self.max_bytes:
            raise SizeLimitError(
                max_bytes=self.max_bytes,
                context={"reported_size": declared_size},
            )

    # ── Naming ────────────────────────────────────────────────────────────

    def generate_filename(self, original_filename: str) -> str:
        """
        `<epoch-millis>-<0..999999999><ext>`, e.g. `1718031112345-482913004.pdf`.

        The extension is kept exactly as the client sent it; no other part
        of the client's name is used.
        """
        extension = Path(original_filename or "").suffix
        stamp = int(time.time() * 1000)
        suffix = secrets.randbelow(1_000_000_000)
        return f"{stamp}-{suffix}{extension}"

    def path_for(self, filename: str) -> Path:
        return self.root / filename

    # ── Write ─────────────────────────────────────────────────────────────

    async def save(
        self,
        source: AsyncReadable,
        original_filename: str,
        declared_size: Optional[int] = None,
    ) -> StoredBlob:
        """
        Stream `source` into a new blob.

        Returns:
            StoredBlob with the generated filename, its path and byte size.

        Raises:
            SizeLimitError: declared or actual size is over the cap. No file
                is left behind.
            FilesystemError: the directory or file could not be written.
        """
        self.check_declared_size(declared_size)

        filename = self.generate_filename(original_filename)
        path = self.path_for(filename)
        written = 0

        try:
            async with aiofiles.open(path, "wb") as out:
                while True:
                    chunk = await source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise SizeLimitError(
                            max_bytes=self.max_bytes,
                            context={"received_at_least": written},
                        )
                    await out.write(chunk)
        except SizeLimitError:
            await self.discard(str(path))
            logger.warning("Rejected upload %s: over %d bytes", original_filename, self.max_bytes)
            raise
        except OSError as e:
            await self.discard(str(path))
            logger.error("Failed to store blob at %s: %s", path, str(e))
            raise FilesystemError(
                message="Failed to save uploaded file. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            )

        logger.info("Blob stored: %s (%d bytes)", filename, written)
        return StoredBlob(filename=filename, path=str(path), size=written)

    # ── Read / Delete ─────────────────────────────────────────────────────

    async def exists(self, path: Union[str, Path]) -> bool:
        return await aiofiles.os.path.isfile(path)

    async def delete(self, path: Union[str, Path]) -> bool:
        """
        Remove a blob.

        Returns:
            True if a file was removed, False if it was already gone.

        Raises:
            FilesystemError for any other OS failure.
        """
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.info("Blob already absent: %s", os.path.basename(str(path)))
            return False
        except OSError as e:
            logger.error("Failed to delete blob %s: %s", path, str(e))
            raise FilesystemError(
                message="Failed to delete the note file. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            )
        logger.info("Blob deleted: %s", os.path.basename(str(path)))
        return True

    async def discard(self, path: Union[str, Path]) -> None:
        """
        Best-effort removal used to undo a write.

        A failure is logged, not raised: the caller is already reporting the
        error that made the undo necessary.
        """
        try:
            await self.delete(path)
        except FilesystemError as e:
            logger.warning("Failed to clean up blob %s: %s", path, e.context.get("os_error"))


blob_store = BlobStore(settings.upload_dir)


def get_blob_store() -> BlobStore:
    """FastAPI dependency returning the process-wide blob store."""
    return blob_store
