"""
Tests for directory import and perceptual deduplication.
"""

import os
from pathlib import Path
from unittest import mock

import pytest
from PIL import Image

from shotkeeper.capture.dedup import DuplicateIndex, compute_hamming_distance, compute_perceptual_hash
from shotkeeper.capture.importer import ScreenshotImporter, local_identifier_for
from shotkeeper.core.events import AppEvent, EventBus
from shotkeeper.db.store import ScreenshotStore
from shotkeeper.storage.images import ImageStorage


def _gradient(width: int = 170, height: int = 60) -> Image.Image:
    """Left-to-right brightness ramp."""
    image = Image.new("L", (width, height))
    image.putdata([int(x * 255 / (width - 1)) for _y in range(height) for x in range(width)])
    return image.convert("RGB")


def _solid() -> Image.Image:
    return Image.new("RGB", (170, 60), (40, 40, 40))


def _write(path: Path, image: Image.Image, mtime: float) -> Path:
    image.save(path)
    os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def store(tmp_path: Path) -> ScreenshotStore:
    return ScreenshotStore(tmp_path / "test.sqlite")


@pytest.fixture
def storage(tmp_path: Path) -> ImageStorage:
    return ImageStorage(tmp_path / "Screenshots", tmp_path / "Thumbnails")


class TestDuplicateIndex:
    """Test perceptual hash deduplication."""

    def test_identical_images_have_zero_distance(self):
        """Test that the same pixels hash identically."""
        assert compute_hamming_distance(compute_perceptual_hash(_gradient()), compute_perceptual_hash(_gradient())) == 0

    def test_different_images_are_far_apart(self):
        """Test that a ramp and a flat image differ in every bit."""
        distance = compute_hamming_distance(compute_perceptual_hash(_gradient()), compute_perceptual_hash(_solid()))

        assert distance > 5

    def test_hex_hashes_accepted(self):
        """Test distance between hex-encoded hashes."""
        image_hash = compute_perceptual_hash(_gradient())

        assert compute_hamming_distance(str(image_hash), image_hash) == 0

    def test_check_and_add(self):
        """Test that only the first of two identical images is recorded."""
        index = DuplicateIndex(threshold=5)

        assert index.check_and_add("a", _gradient()) is None
        assert index.check_and_add("b", _solid()) is None
        assert index.check_and_add("c", _gradient()) == "a"
        assert len(index) == 2

        index.clear()
        assert len(index) == 0


class TestLocalIdentifier:
    """Test identifiers derived from files."""

    def test_identifier_combines_stem_and_content_hash(self, tmp_path: Path):
        """Test that equal content in different files keeps distinct stems."""
        first = _write(tmp_path / "shot.png", _gradient(), 1_000)
        second = _write(tmp_path / "copy.png", _gradient(), 1_000)

        first_id = local_identifier_for(first)
        second_id = local_identifier_for(second)

        assert first_id.startswith("shot-")
        assert len(first_id) == len("shot-") + 12
        assert first_id.split("-")[1] == second_id.split("-")[1]


class TestScreenshotImporter:
    """Test importing a directory of images."""

    def test_import_directory(self, tmp_path: Path, store: ScreenshotStore, storage: ImageStorage):
        """Test that new images are stored, registered and announced."""
        source = tmp_path / "inbox"
        source.mkdir()
        _write(source / "first.png", _gradient(), 1_000)
        _write(source / "second.png", _solid(), 2_000)
        _write(source / "dupe.png", _gradient(), 3_000)
        (source / "notes.txt").write_text("not an image")
        _write(source / ".hidden.png", _solid(), 4_000)

        bus = EventBus()
        callback = mock.Mock()
        bus.subscribe(AppEvent.NEW_SCREENSHOTS_DETECTED, callback)

        stats = ScreenshotImporter(store, storage, bus=bus).import_directory(source)

        assert stats.found == 3
        assert stats.imported == 2
        assert stats.duplicates == 1
        assert stats.failed == 0

        first_id = local_identifier_for(source / "first.png")
        assert stats.identifiers[0] == first_id

        screenshot = store.get_screenshot(first_id)
        assert screenshot.ocr_processed is False
        assert screenshot.local_image_path == storage.image_filename(first_id)
        assert storage.has_local_image(first_id)
        assert storage.load_thumbnail(first_id) is not None

        callback.assert_called_once_with(
            AppEvent.NEW_SCREENSHOTS_DETECTED, {"identifiers": stats.identifiers}
        )

    def test_reimport_skips_known_files(self, tmp_path: Path, store: ScreenshotStore, storage: ImageStorage):
        """Test that a second run only counts already-known images."""
        source = tmp_path / "inbox"
        source.mkdir()
        _write(source / "first.png", _gradient(), 1_000)

        importer = ScreenshotImporter(store, storage)
        importer.import_directory(source)
        stats = importer.import_directory(source)

        assert stats.imported == 0
        assert stats.already_known == 1

    def test_unreadable_image_counts_as_failed(self, tmp_path: Path, store: ScreenshotStore, storage: ImageStorage):
        """Test that a corrupt file is logged and skipped."""
        source = tmp_path / "inbox"
        source.mkdir()
        (source / "broken.png").write_bytes(b"not really a png")

        stats = ScreenshotImporter(store, storage).import_directory(source)

        assert stats.failed == 1
        assert store.fetch_all_screenshots() == []

    def test_recursive_and_extension_filter(self, tmp_path: Path, store: ScreenshotStore, storage: ImageStorage):
        """Test recursive scanning with a restricted extension list."""
        source = tmp_path / "inbox"
        (source / "nested").mkdir(parents=True)
        _write(source / "top.png", _gradient(), 1_000)
        _write(source / "nested" / "deep.jpg", _solid(), 2_000)

        importer = ScreenshotImporter(store, storage, extensions=[".jpg"])

        assert importer.find_images(source) == []
        assert importer.find_images(source, recursive=True) == [source / "nested" / "deep.jpg"]

    def test_missing_directory(self, tmp_path: Path, store: ScreenshotStore, storage: ImageStorage):
        """Test that a missing directory raises."""
        with pytest.raises(NotADirectoryError):
            ScreenshotImporter(store, storage).import_directory(tmp_path / "missing")
