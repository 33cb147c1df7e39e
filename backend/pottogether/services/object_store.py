"""
PotTogether Backend: Object Store
==================================

What:  Stores uploaded record photos and ingredient images and hands back a
       publicly fetchable URL.
How:   Files are written under `storage_root/<kind>/<hint>/<uuid><ext>` with
       aiofiles; transient OS errors are retried with tenacity. The database
       only ever holds the returned URL, never the bytes.
Who:   Called by the records and ingredients routes before the service call
       that stores the URL; files are served back by routes/files.py.

Upload checks (cheapest first):
    1. Extension in ALLOWED_EXTENSIONS
    2. Size against settings.max_file_size (Content-Length, then actual bytes)
    3. Content sniffed with libmagic must be one of ALLOWED_MIME_TYPES
    4. Write with a UUID filename, so no client input reaches the path
       except the sanitized hint directory
"""

import logging
import os
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
import magic
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from pottogether.config import settings
from pottogether.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}
ALLOWED_MIME_TYPES = {"image/png", "image/jpeg", "image/jpg"}
KINDS = {"records", "ingredients"}

_HINT_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")


@dataclass(frozen=True)
class StoredObject:
    key: str
    url: str


class ObjectStore:
    """
    Local-disk object store.

    Directory Structure:
        storage/
        ├── records/
        │   └── user-7/
        │       └── 9b2e...c1.jpg
        └── ingredients/
            └── tomato/
                └── 41f0...aa.png
    """

    def __init__(self, storage_root: Optional[str] = None, public_base_url: Optional[str] = None):
        """
        Args:
            storage_root: Override settings.storage_root (tests use tmp_path).
            public_base_url: Override settings.public_base_url.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")
        logger.info("ObjectStore initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────
    def validate_extension(self, filename: str) -> str:
        """Returns the lowercase extension, or raises ValidationError."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        max_mb = settings.max_file_size / (1024 * 1024)

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB.",
                field="image",
                context={"reported_size": content_length},
            )
        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=(
                    f"File size ({actual_size / (1024 * 1024):.1f}MB) "
                    f"exceeds maximum of {max_mb:.0f}MB."
                ),
                field="image",
                context={"actual_size": actual_size},
            )
        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty", field="image")

    def validate_content(self, content: bytes) -> str:
        """
        Returns the MIME type detected from the leading bytes.

        Raises:
            ValidationError: the bytes are not a PNG or JPEG image
            FileStorageError: libmagic could not inspect the buffer
        """
        try:
            mime_type = magic.from_buffer(content[:2048], mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    "The file must be a PNG or JPEG image."
                ),
                field="image",
                context={"detected_mime": mime_type},
            )
        return mime_type

    # ── Paths ─────────────────────────────────────────────────────────────
    def _new_key(self, kind: str, name_hint: str, extension: str) -> str:
        hint = _HINT_UNSAFE.sub("-", name_hint or "").strip("-") or "misc"
        return f"{kind}/{hint}/{uuid.uuid4()}{extension}"

    def resolve(self, key: str) -> Path:
        """
        Maps a key to its file, refusing anything outside storage_root.

        Raises:
            ValidationError: the key escapes the storage root
        """
        path = (self.storage_root / key).resolve()
        if not path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file key", field="key")
        return path

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url}/files/{key}"

    # ── Writes ────────────────────────────────────────────────────────────
    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            multiplier=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _write(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(content)

    async def put(
        self,
        kind: str,
        name_hint: str,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> StoredObject:
        """
        Validates and stores one upload.

        Args:
            kind: "records" or "ingredients"
            name_hint: Readable directory segment, e.g. "user-7"
            filename: Client filename; only its extension is used
            content: Raw bytes
            content_length: Content-Length header value, if any

        Returns:
            StoredObject with the storage key and public URL

        Raises:
            ValidationError: bad extension, empty or oversized file, or
                content that is not a PNG or JPEG image
            FileStorageError: the write kept failing after retries
        """
        if kind not in KINDS:
            raise ValueError(f"Unknown object kind '{kind}'")

        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_content(content)

        key = self._new_key(kind, name_hint, ext)
        path = self.storage_root / key
        try:
            await self._write(path, content)
        except OSError as e:
            logger.error("Failed to store object %s: %s", key, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"key": key, "os_error": str(e)},
            )

        logger.info("Object stored: %s (%d bytes)", key, len(content))
        return StoredObject(key=key, url=self.url_for(key))

    async def delete(self, key: str) -> None:
        """
        Removes a stored object. Best effort: used to drop an upload whose
        database update failed, so errors are logged and not raised.
        """
        try:
            path = self.resolve(key)
            if path.exists():
                os.remove(path)
                logger.info("Deleted object: %s", key)
        except (OSError, ValidationError) as e:
            logger.warning("Failed to delete object %s: %s", key, str(e))

    def is_writable(self) -> bool:
        return self.storage_root.is_dir() and os.access(self.storage_root, os.W_OK)


# ── Singleton Instance ────────────────────────────────────────────────────
object_store = ObjectStore()


def get_object_store() -> ObjectStore:
    """FastAPI dependency; tests swap it through app.dependency_overrides."""
    return object_store
