"""
Screenshot Importer for Shotkeeper

Registers image files from a directory (e.g. ~/Desktop or an exported
Photos album) as screenshots:

1. Skip files already known to the store
2. Skip perceptual near-duplicates of images imported in the same run
3. Save a JPEG copy and a thumbnail via ImageStorage
4. Create the store row (unprocessed) and record the local image path
5. Post NEW_SCREENSHOTS_DETECTED with the new identifiers
"""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from shotkeeper.capture.dedup import DEFAULT_SIMILARITY_THRESHOLD, DuplicateIndex
from shotkeeper.core.config import VALID_IMAGE_EXTENSIONS
from shotkeeper.core.events import AppEvent, EventBus
from shotkeeper.db.store import ScreenshotStore
from shotkeeper.storage.images import ImageStorage

logger = logging.getLogger(__name__)


@dataclass
class ImportStats:
    """Outcome of one import run."""

    found: int = 0
    imported: int = 0
    already_known: int = 0
    duplicates: int = 0
    failed: int = 0
    identifiers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "found": self.found,
            "imported": self.imported,
            "already_known": self.already_known,
            "duplicates": self.duplicates,
            "failed": self.failed,
            "identifiers": self.identifiers,
        }


def local_identifier_for(path: Path) -> str:
    """
    Stable identifier for an image file: its name stem plus a content hash.

    Moving or renaming the file's directory doesn't change the identifier;
    editing the image does.
    """
    sha256 = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256.update(chunk)
    return f"{path.stem}-{sha256.hexdigest()[:12]}"


class ScreenshotImporter:
    """Imports image files into storage and the store."""

    def __init__(
        self,
        store: ScreenshotStore,
        storage: ImageStorage,
        bus: EventBus | None = None,
        extensions: list[str] | None = None,
        dedup_threshold: int = DEFAULT_SIMILARITY_THRESHOLD,
    ):
        """
        Initialize the importer.

        Args:
            store: Screenshot store to register rows in
            storage: Image storage for copies and thumbnails
            bus: Event bus notified about new screenshots
            extensions: File extensions to import (lower-case, with dot)
            dedup_threshold: Perceptual hash distance treated as duplicate
        """
        self.store = store
        self.storage = storage
        self.bus = bus
        self.extensions = {ext.lower() for ext in (extensions or VALID_IMAGE_EXTENSIONS)}
        self.dedup_threshold = dedup_threshold

    def find_images(self, directory: Path, recursive: bool = False) -> list[Path]:
        """Image files in a directory, oldest first."""
        pattern = "**/*" if recursive else "*"
        paths = [
            p for p in directory.glob(pattern)
            if p.is_file() and p.suffix.lower() in self.extensions and not p.name.startswith(".")
        ]
        return sorted(paths, key=lambda p: (p.stat().st_mtime, p.name))

    def import_directory(self, directory: Path | str, recursive: bool = False) -> ImportStats:
        """
        Import every image in a directory.

        Args:
            directory: Directory to scan
            recursive: Also scan subdirectories

        Returns:
            ImportStats for the run

        Raises:
            NotADirectoryError: If directory doesn't exist or isn't a directory
        """
        directory = Path(directory).expanduser()
        if not directory.is_dir():
            raise NotADirectoryError(f"Not a directory: {directory}")

        stats = ImportStats()
        index = DuplicateIndex(threshold=self.dedup_threshold)

        for path in self.find_images(directory, recursive=recursive):
            stats.found += 1
            self._import_file(path, index, stats)

        logger.info(
            f"Imported {stats.imported}/{stats.found} image(s) from {directory} "
            f"({stats.already_known} known, {stats.duplicates} duplicates, {stats.failed} failed)"
        )

        if stats.identifiers and self.bus:
            self.bus.post(AppEvent.NEW_SCREENSHOTS_DETECTED, {"identifiers": list(stats.identifiers)})

        return stats

    def _import_file(self, path: Path, index: DuplicateIndex, stats: ImportStats) -> None:
        try:
            identifier = local_identifier_for(path)
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            stats.failed += 1
            return

        if self.store.get_screenshot(identifier) is not None:
            stats.already_known += 1
            return

        try:
            with Image.open(path) as image:
                image.load()
                if index.check_and_add(identifier, image) is not None:
                    stats.duplicates += 1
                    return

                filename = self.storage.save_image(image, identifier)
                if filename is None:
                    stats.failed += 1
                    return
                self.storage.save_thumbnail(image, identifier)
        except (OSError, UnidentifiedImageError) as e:
            logger.error(f"Failed to import {path}: {e}")
            stats.failed += 1
            return

        created = datetime.fromtimestamp(path.stat().st_mtime)
        self.store.fetch_or_create_screenshot(identifier, created)
        self.store.update_local_image_path(identifier, filename)

        stats.imported += 1
        stats.identifiers.append(identifier)
        logger.debug(f"Imported {path.name} as {identifier}")
