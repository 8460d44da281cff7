"""
Tests for local image storage.
"""

from pathlib import Path

import pytest
from PIL import Image

from shotkeeper.storage.images import ImageStorage, format_byte_count


@pytest.fixture
def storage(tmp_path: Path) -> ImageStorage:
    return ImageStorage(
        screenshots_dir=tmp_path / "Screenshots",
        thumbnails_dir=tmp_path / "Thumbnails",
        thumbnail_max_size=50,
    )


def _image(size=(200, 100), color=(255, 0, 0)) -> Image.Image:
    return Image.new("RGB", size, color)


class TestFilenames:
    """Test identifier to filename mapping."""

    def test_sanitized_filename(self):
        """Test that path separators and colons are replaced."""
        assert ImageStorage.sanitized_filename("ABC123/L0/001") == "ABC123_L0_001"
        assert ImageStorage.sanitized_filename("a:b") == "a_b"

    def test_image_and_thumbnail_names(self, storage: ImageStorage):
        """Test the stored file names."""
        assert storage.image_filename("ABC/L0/001") == "ABC_L0_001.jpg"
        assert storage.thumbnail_filename("ABC/L0/001") == "ABC_L0_001_thumb.jpg"


class TestSaveAndLoad:
    """Test saving and loading images."""

    def test_creates_directories(self, storage: ImageStorage):
        """Test that both directories exist after initialization."""
        assert storage.screenshots_dir.is_dir()
        assert storage.thumbnails_dir.is_dir()

    def test_save_image_round_trip(self, storage: ImageStorage):
        """Test saving an image and loading it back."""
        filename = storage.save_image(_image(), "ABC/1")

        assert filename == "ABC_1.jpg"
        assert storage.has_local_image("ABC/1")
        assert storage.local_image_path("ABC/1") == "ABC_1.jpg"
        assert storage.image_path(filename) == storage.screenshots_dir / "ABC_1.jpg"

        loaded = storage.load_image(filename)
        assert loaded is not None
        assert loaded.size == (200, 100)

    def test_save_flattens_alpha(self, storage: ImageStorage):
        """Test that RGBA images are stored as JPEG."""
        image = Image.new("RGBA", (20, 20), (0, 0, 255, 128))

        assert storage.save_image(image, "alpha") == "alpha.jpg"

    def test_thumbnail_is_downscaled(self, storage: ImageStorage):
        """Test that thumbnails fit the configured size and keep aspect ratio."""
        storage.save_thumbnail(_image(size=(200, 100)), "a")

        thumbnail = storage.load_thumbnail("a")

        assert thumbnail is not None
        assert thumbnail.size == (50, 25)

    def test_missing_files(self, storage: ImageStorage):
        """Test loading images that were never saved."""
        assert storage.load_image("missing.jpg") is None
        assert storage.load_thumbnail("missing") is None
        assert storage.local_image_path("missing") is None

    def test_save_raw_data(self, storage: ImageStorage):
        """Test writing raw bytes."""
        assert storage.save_image_data(b"abc", "raw.jpg") is True
        assert storage.save_thumbnail_data(b"abcd", "raw_thumb.jpg") is True
        assert storage.total_storage_used() == 7


class TestDeleteAndCleanup:
    """Test deletion and orphan cleanup."""

    def test_delete_removes_image_and_thumbnail(self, storage: ImageStorage):
        """Test that deleting an image also deletes its thumbnail."""
        storage.save_image(_image(), "a")
        storage.save_thumbnail(_image(), "a")

        storage.delete_image_for("a")

        assert not storage.has_local_image("a")
        assert storage.load_thumbnail("a") is None

    def test_delete_missing_image_is_ignored(self, storage: ImageStorage):
        """Test that deleting a missing file does not raise."""
        storage.delete_image("missing.jpg")

    def test_cleanup_orphaned_images(self, storage: ImageStorage):
        """Test that only images without a valid identifier are removed."""
        for identifier in ("keep", "orphan1", "orphan2"):
            storage.save_image(_image(), identifier)
            storage.save_thumbnail(_image(), identifier)

        removed = storage.cleanup_orphaned_images({"keep"})

        assert removed == 2
        assert storage.local_image_count() == 1
        assert storage.has_local_image("keep")
        assert storage.load_thumbnail("orphan1") is None

    def test_clear_all_images(self, storage: ImageStorage):
        """Test wiping storage."""
        storage.save_image(_image(), "a")

        storage.clear_all_images()

        assert storage.local_image_count() == 0
        assert storage.screenshots_dir.is_dir()


class TestFormatByteCount:
    """Test human-readable sizes."""

    @pytest.mark.parametrize(
        "num_bytes,expected",
        [
            (0, "0 bytes"),
            (999, "999 bytes"),
            (1500, "1.5 KB"),
            (2_500_000, "2.5 MB"),
            (3_000_000_000, "3.0 GB"),
        ],
    )
    def test_format(self, num_bytes: int, expected: str):
        """Test decimal unit formatting."""
        assert format_byte_count(num_bytes) == expected
