"""
Image Storage

Reads and writes school images in a flat local directory.

SECURITY: filenames are checked for path separators and parent-directory
segments before any filesystem call. This check is the only thing between
the image endpoint and the rest of the disk.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

from fastapi import Request

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"

CONTENT_TYPES_BY_EXTENSION = {
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
}

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.\-]")

MAX_NAME_ATTEMPTS = 100


class ImageStoreError(Exception):
    """Base exception for image storage errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnsafeFilenameError(ImageStoreError):
    """Raised when a filename could escape the storage directory."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__("Invalid filename")


class ImageNotFoundError(ImageStoreError):
    """Raised when no image exists under the requested filename."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__("Image not found")


class ImageStorageError(ImageStoreError):
    """Raised on any other disk failure."""


@dataclass(frozen=True)
class StoredImage:
    content: bytes
    content_type: str


@dataclass(frozen=True)
class ImageUpload:
    """An uploaded image file as received from the client."""

    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def is_safe_filename(filename: str | None) -> bool:
    """True if the filename is non-empty and has no separators or '..'."""
    if not filename:
        return False
    return ".." not in filename and "/" not in filename and "\\" not in filename


def content_type_for(filename: str) -> str:
    """Infer the MIME type from the filename extension (JPEG if unknown)."""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return CONTENT_TYPES_BY_EXTENSION.get(extension, DEFAULT_CONTENT_TYPE)


def sanitize_filename(filename: str) -> str:
    """Replace every character outside [A-Za-z0-9.-] with an underscore."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def build_stored_filename(original_name: str, now: datetime | None = None) -> str:
    """
    Build the on-disk name for an upload: "{unix_millis}_{sanitized_name}".

    Sanitizing removes "/" and "\\"; a leftover ".." is collapsed so the
    result always passes is_safe_filename.
    """
    moment = now or datetime.now(UTC)
    timestamp = int(moment.timestamp() * 1000)
    safe_name = sanitize_filename(original_name or "image")
    while ".." in safe_name:
        safe_name = safe_name.replace("..", ".")
    return f"{timestamp}_{safe_name}"


class ImageStore:
    """Flat directory of school images."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _read_file(self, path: Path) -> bytes:
        return path.read_bytes()

    def _write_file(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Exclusive create: an existing image is never overwritten
        with path.open("xb") as f:
            f.write(content)

    async def fetch(self, filename: str) -> StoredImage:
        """
        Read a stored image.

        Args:
            filename: Bare filename under the storage root

        Returns:
            StoredImage with the bytes and the inferred content type

        Raises:
            UnsafeFilenameError: Filename contains '..', '/' or '\\'
            ImageNotFoundError: No such file
            ImageStorageError: Any other I/O failure
        """
        if not is_safe_filename(filename):
            logger.warning(f"Rejected unsafe image filename: {filename!r}")
            raise UnsafeFilenameError(filename)

        path = self.root / filename
        try:
            content = await asyncio.to_thread(self._read_file, path)
        except FileNotFoundError as e:
            raise ImageNotFoundError(filename) from e
        except OSError as e:
            logger.error(f"Failed to read image {filename}: {e}")
            raise ImageStorageError("Internal server error") from e

        return StoredImage(content=content, content_type=content_type_for(filename))

    async def save(self, upload: ImageUpload, now: datetime | None = None) -> str:
        """
        Write an upload under a timestamped, sanitized name.

        If another upload already took the name, the timestamp is moved
        forward one millisecond and the write retried.

        Returns:
            The stored filename (what gets referenced by the school record)

        Raises:
            ImageStorageError: If the directory or file cannot be written
        """
        moment = now or datetime.now(UTC)
        for _ in range(MAX_NAME_ATTEMPTS):
            filename = build_stored_filename(upload.filename, moment)
            try:
                await asyncio.to_thread(self._write_file, self.root / filename, upload.content)
                break
            except FileExistsError:
                logger.debug(f"Image name {filename} taken, retrying")
                moment += timedelta(milliseconds=1)
            except OSError as e:
                logger.error(f"Failed to write image {filename}: {e}")
                raise ImageStorageError("Internal server error") from e
        else:
            logger.error(f"No free image name for {upload.filename!r}")
            raise ImageStorageError("Internal server error")

        logger.info(f"Stored image {filename} ({upload.size} bytes)")
        return filename


def get_image_store(request: Request) -> ImageStore:
    """FastAPI dependency returning the application's image store."""
    return request.app.state.images
