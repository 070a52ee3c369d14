"""
Unit tests for the image store.
"""

from datetime import UTC, datetime
from unittest.mock import patch

import pytest

from school_directory.core.storage import (
    ImageNotFoundError,
    ImageStorageError,
    ImageStore,
    ImageUpload,
    UnsafeFilenameError,
    build_stored_filename,
    content_type_for,
    is_safe_filename,
    sanitize_filename,
)


class TestIsSafeFilename:
    """Tests for the path-traversal check."""

    @pytest.mark.parametrize(
        "filename",
        ["../../etc/passwd", "a/b.png", "..\\win.ini", "a\\b.png", "..", "photo..png", ""],
    )
    def test_rejects_unsafe_names(self, filename):
        """Separators and parent segments are rejected."""
        assert is_safe_filename(filename) is False

    def test_rejects_none(self):
        """A missing filename is unsafe."""
        assert is_safe_filename(None) is False

    @pytest.mark.parametrize("filename", ["photo.png", "1700000000000_my-school.jpeg", "x"])
    def test_accepts_plain_names(self, filename):
        """Bare filenames pass."""
        assert is_safe_filename(filename) is True


class TestContentTypeFor:
    """Tests for extension-based content type inference."""

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("photo.png", "image/png"),
            ("photo.PNG", "image/png"),
            ("photo.webp", "image/webp"),
            ("photo.gif", "image/gif"),
            ("photo.jpg", "image/jpeg"),
            ("photo.jpeg", "image/jpeg"),
        ],
    )
    def test_known_extensions(self, filename, expected):
        """Known extensions map to their image type, case-insensitively."""
        assert content_type_for(filename) == expected

    def test_unknown_extension_defaults_to_jpeg(self):
        """Unrecognised extensions are served as JPEG."""
        assert content_type_for("photo.bmp") == "image/jpeg"

    def test_no_extension_defaults_to_jpeg(self):
        """Names without an extension are served as JPEG."""
        assert content_type_for("photo") == "image/jpeg"


class TestStoredFilename:
    """Tests for upload filename generation."""

    def test_sanitize_replaces_disallowed_characters(self):
        """Spaces and brackets become underscores."""
        assert sanitize_filename("my school (1).png") == "my_school__1_.png"

    def test_sanitize_keeps_dots_and_dashes(self):
        """Dots and dashes survive sanitizing."""
        assert sanitize_filename("oak-elementary.v2.jpg") == "oak-elementary.v2.jpg"

    def test_prefixes_millisecond_timestamp(self):
        """Stored names start with the upload time in milliseconds."""
        now = datetime(2026, 10, 19, 12, 0, 0, 123000, tzinfo=UTC)
        result = build_stored_filename("photo.png", now)
        assert result == f"{int(now.timestamp() * 1000)}_photo.png"

    def test_result_is_always_safe(self):
        """A hostile original name still yields a safe stored name."""
        result = build_stored_filename("../../etc/passwd")
        assert is_safe_filename(result)
        assert "/" not in result

    def test_empty_name_gets_placeholder(self):
        """An empty original name falls back to "image"."""
        now = datetime(2026, 1, 1, tzinfo=UTC)
        assert build_stored_filename("", now).endswith("_image")


class TestImageStoreFetch:
    """Tests for ImageStore.fetch."""

    @pytest.mark.asyncio
    async def test_returns_bytes_and_content_type(self, tmp_path):
        """Fetch returns the file bytes and the inferred type."""
        (tmp_path / "photo.png").write_bytes(b"png-bytes")
        store = ImageStore(tmp_path)

        image = await store.fetch("photo.png")

        assert image.content == b"png-bytes"
        assert image.content_type == "image/png"

    @pytest.mark.asyncio
    async def test_missing_file_is_not_found(self, tmp_path):
        """A missing file raises ImageNotFoundError."""
        store = ImageStore(tmp_path)

        with pytest.raises(ImageNotFoundError):
            await store.fetch("nonexistent.png")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filename", ["../../etc/passwd", "a/b.png"])
    async def test_traversal_rejected_before_filesystem_access(self, tmp_path, filename):
        """Unsafe names are refused without touching the disk."""
        store = ImageStore(tmp_path)

        with patch.object(ImageStore, "_read_file") as mock_read:
            with pytest.raises(UnsafeFilenameError):
                await store.fetch(filename)

        mock_read.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_io_errors_are_storage_errors(self, tmp_path):
        """Read failures other than a missing file are storage errors."""
        store = ImageStore(tmp_path)

        with patch.object(ImageStore, "_read_file", side_effect=PermissionError("denied")):
            with pytest.raises(ImageStorageError):
                await store.fetch("photo.png")

    @pytest.mark.asyncio
    async def test_directory_name_is_not_a_file(self, tmp_path):
        """A directory under the requested name is a storage error."""
        (tmp_path / "folder.png").mkdir()
        store = ImageStore(tmp_path)

        # Reading a directory is an I/O failure, not a missing file
        with pytest.raises(ImageStorageError) as exc_info:
            await store.fetch("folder.png")

        assert not isinstance(exc_info.value, ImageNotFoundError)


class TestImageStoreSave:
    """Tests for ImageStore.save."""

    @pytest.mark.asyncio
    async def test_creates_directory_and_writes_file(self, tmp_path):
        """Save creates the storage directory on first use."""
        root = tmp_path / "nested" / "schoolImages"
        store = ImageStore(root)
        upload = ImageUpload(filename="my photo.png", content_type="image/png", content=b"abc")
        now = datetime(2026, 10, 19, tzinfo=UTC)

        filename = await store.save(upload, now)

        assert filename == f"{int(now.timestamp() * 1000)}_my_photo.png"
        assert (root / filename).read_bytes() == b"abc"

    @pytest.mark.asyncio
    async def test_saved_file_can_be_fetched(self, tmp_path):
        """A saved image can be read back under its stored name."""
        store = ImageStore(tmp_path)
        upload = ImageUpload(filename="logo.webp", content_type="image/webp", content=b"webp")

        filename = await store.save(upload)
        image = await store.fetch(filename)

        assert image.content == b"webp"
        assert image.content_type == "image/webp"

    @pytest.mark.asyncio
    async def test_write_failure_is_storage_error(self, tmp_path):
        """Write failures surface as ImageStorageError."""
        store = ImageStore(tmp_path)
        upload = ImageUpload(filename="a.png", content_type="image/png", content=b"x")

        with patch.object(ImageStore, "_write_file", side_effect=OSError("disk full")):
            with pytest.raises(ImageStorageError):
                await store.save(upload)

    @pytest.mark.asyncio
    async def test_same_name_same_millisecond_does_not_overwrite(self, tmp_path):
        """Two uploads that collide on name both survive under distinct names."""
        store = ImageStore(tmp_path)
        now = datetime(2026, 10, 19, tzinfo=UTC)
        first = ImageUpload(filename="photo.png", content_type="image/png", content=b"first")
        second = ImageUpload(filename="photo.png", content_type="image/png", content=b"second")

        first_name = await store.save(first, now)
        second_name = await store.save(second, now)

        assert first_name != second_name
        assert second_name.endswith("_photo.png")
        assert (tmp_path / first_name).read_bytes() == b"first"
        assert (tmp_path / second_name).read_bytes() == b"second"

    @pytest.mark.asyncio
    async def test_gives_up_when_no_name_is_free(self, tmp_path):
        """Persistent collisions end in a storage error, not a loop."""
        store = ImageStore(tmp_path)
        upload = ImageUpload(filename="a.png", content_type="image/png", content=b"x")

        with patch.object(ImageStore, "_write_file", side_effect=FileExistsError("taken")):
            with pytest.raises(ImageStorageError):
                await store.save(upload)
