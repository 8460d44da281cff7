"""
Local Image Storage for Shotkeeper

Keeps JPEG copies of screenshots and their thumbnails on disk, named after
the screenshot's local identifier.

Layout:
    Screenshots/<sanitized id>.jpg
    Thumbnails/<sanitized id>_thumb.jpg
"""

import logging
import shutil
from pathlib import Path

from PIL import Image

from shotkeeper.core.paths import SCREENSHOTS_DIR, THUMBNAILS_DIR

logger = logging.getLogger(__name__)

IMAGE_SUFFIX = ".jpg"
THUMBNAIL_SUFFIX = "_thumb.jpg"

DEFAULT_JPEG_QUALITY = 85
DEFAULT_THUMBNAIL_QUALITY = 70
DEFAULT_THUMBNAIL_MAX_SIZE = 400


def _to_rgb(image: Image.Image) -> Image.Image:
    """JPEG has no alpha channel; flatten anything that isn't RGB/L."""
    if image.mode in ("RGB", "L"):
        return image
    return image.convert("RGB")


def format_byte_count(num_bytes: int) -> str:
    """Human-readable file size using decimal units, e.g. '1.2 MB'."""
    if num_bytes < 1000:
        return f"{num_bytes} bytes"

    size = float(num_bytes)
    for unit in ("KB", "MB", "GB", "TB"):
        size /= 1000
        if size < 1000 or unit == "TB":
            return f"{size:.1f} {unit}"
    return f"{size:.1f} TB"


class ImageStorage:
    """
    Saves, loads and cleans up screenshot images and thumbnails.

    Both directories are created on initialization.
    """

    def __init__(
        self,
        screenshots_dir: Path | str | None = None,
        thumbnails_dir: Path | str | None = None,
        jpeg_quality: int = DEFAULT_JPEG_QUALITY,
        thumbnail_quality: int = DEFAULT_THUMBNAIL_QUALITY,
        thumbnail_max_size: int = DEFAULT_THUMBNAIL_MAX_SIZE,
    ):
        """
        Initialize storage.

        Args:
            screenshots_dir: Directory for full-size images
            thumbnails_dir: Directory for thumbnails
            jpeg_quality: JPEG quality for full-size images (1-100)
            thumbnail_quality: JPEG quality for thumbnails (1-100)
            thumbnail_max_size: Longest thumbnail edge in pixels
        """
        self.screenshots_dir = Path(screenshots_dir) if screenshots_dir else SCREENSHOTS_DIR
        self.thumbnails_dir = Path(thumbnails_dir) if thumbnails_dir else THUMBNAILS_DIR
        self.jpeg_quality = jpeg_quality
        self.thumbnail_quality = thumbnail_quality
        self.thumbnail_max_size = thumbnail_max_size

        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        self.thumbnails_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_config(cls, config: dict) -> "ImageStorage":
        storage = config.get("storage", {})
        return cls(
            jpeg_quality=storage.get("jpeg_quality", DEFAULT_JPEG_QUALITY),
            thumbnail_quality=storage.get("thumbnail_quality", DEFAULT_THUMBNAIL_QUALITY),
            thumbnail_max_size=storage.get("thumbnail_max_size", DEFAULT_THUMBNAIL_MAX_SIZE),
        )

    @staticmethod
    def sanitized_filename(local_identifier: str) -> str:
        """Make an identifier safe to use as a file name ('/' and ':' become '_')."""
        return local_identifier.replace("/", "_").replace(":", "_")

    def image_filename(self, local_identifier: str) -> str:
        return self.sanitized_filename(local_identifier) + IMAGE_SUFFIX

    def thumbnail_filename(self, local_identifier: str) -> str:
        return self.sanitized_filename(local_identifier) + THUMBNAIL_SUFFIX

    # Save

    def save_image_data(self, data: bytes, filename: str) -> bool:
        """Write raw image bytes into the screenshots directory."""
        try:
            (self.screenshots_dir / filename).write_bytes(data)
            return True
        except OSError as e:
            logger.error(f"Failed to save image {filename}: {e}")
            return False

    def save_thumbnail_data(self, data: bytes, filename: str) -> bool:
        """Write raw thumbnail bytes into the thumbnails directory."""
        try:
            (self.thumbnails_dir / filename).write_bytes(data)
            return True
        except OSError as e:
            logger.error(f"Failed to save thumbnail {filename}: {e}")
            return False

    def save_image(
        self, image: Image.Image, local_identifier: str, quality: int | None = None
    ) -> str | None:
        """
        Save an image as JPEG.

        Returns:
            The stored filename (relative to the screenshots directory), or
            None on failure
        """
        filename = self.image_filename(local_identifier)
        try:
            _to_rgb(image).save(
                self.screenshots_dir / filename, "JPEG", quality=quality or self.jpeg_quality
            )
        except OSError as e:
            logger.error(f"Failed to save image for {local_identifier}: {e}")
            return None

        logger.debug(f"Saved image {filename}")
        return filename

    def save_thumbnail(
        self, image: Image.Image, local_identifier: str, quality: int | None = None
    ) -> str | None:
        """
        Save a downscaled JPEG thumbnail.

        Returns:
            The thumbnail filename, or None on failure
        """
        filename = self.thumbnail_filename(local_identifier)
        thumbnail = _to_rgb(image).copy()
        thumbnail.thumbnail(
            (self.thumbnail_max_size, self.thumbnail_max_size), Image.Resampling.LANCZOS
        )
        try:
            thumbnail.save(
                self.thumbnails_dir / filename, "JPEG", quality=quality or self.thumbnail_quality
            )
        except OSError as e:
            logger.error(f"Failed to save thumbnail for {local_identifier}: {e}")
            return None
        return filename

    # Load

    def _open(self, path: Path) -> Image.Image | None:
        if not path.exists():
            return None
        try:
            with Image.open(path) as image:
                image.load()
                return image
        except OSError as e:
            logger.warning(f"Failed to load image {path}: {e}")
            return None

    def load_image(self, relative_path: str) -> Image.Image | None:
        return self._open(self.screenshots_dir / relative_path)

    def load_thumbnail(self, local_identifier: str) -> Image.Image | None:
        return self._open(self.thumbnails_dir / self.thumbnail_filename(local_identifier))

    def image_path(self, relative_path: str) -> Path:
        """Full path for a stored image."""
        return self.screenshots_dir / relative_path

    def has_local_image(self, local_identifier: str) -> bool:
        return (self.screenshots_dir / self.image_filename(local_identifier)).exists()

    def local_image_path(self, local_identifier: str) -> str | None:
        """Stored filename for an identifier, or None if there is no copy."""
        filename = self.image_filename(local_identifier)
        return filename if (self.screenshots_dir / filename).exists() else None

    # Delete

    def delete_image(self, relative_path: str) -> None:
        """Delete a stored image and its thumbnail (missing files are ignored)."""
        (self.screenshots_dir / relative_path).unlink(missing_ok=True)

        thumb_name = relative_path.replace(IMAGE_SUFFIX, THUMBNAIL_SUFFIX)
        (self.thumbnails_dir / thumb_name).unlink(missing_ok=True)

    def delete_image_for(self, local_identifier: str) -> None:
        self.delete_image(self.image_filename(local_identifier))

    # Storage info

    def total_storage_used(self) -> int:
        """Bytes used by images and thumbnails."""
        total = 0
        for directory in (self.screenshots_dir, self.thumbnails_dir):
            if not directory.exists():
                continue
            for path in directory.rglob("*"):
                if path.is_file():
                    total += path.stat().st_size
        return total

    def formatted_storage_used(self) -> str:
        return format_byte_count(self.total_storage_used())

    def local_image_count(self) -> int:
        if not self.screenshots_dir.exists():
            return 0
        return sum(1 for path in self.screenshots_dir.iterdir() if path.suffix == IMAGE_SUFFIX)

    # Cleanup

    def clear_all_images(self) -> None:
        """Delete every stored image and thumbnail."""
        shutil.rmtree(self.screenshots_dir, ignore_errors=True)
        shutil.rmtree(self.thumbnails_dir, ignore_errors=True)

        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        self.thumbnails_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Cleared all stored images")

    def cleanup_orphaned_images(self, valid_identifiers: set[str]) -> int:
        """
        Delete stored images whose identifier is no longer valid.

        Returns:
            Number of images deleted
        """
        if not self.screenshots_dir.exists():
            return 0

        valid_filenames = {self.image_filename(identifier) for identifier in valid_identifiers}
        removed = 0

        for path in self.screenshots_dir.iterdir():
            if path.suffix != IMAGE_SUFFIX or "_thumb" in path.name:
                continue
            if path.name not in valid_filenames:
                self.delete_image(path.name)
                removed += 1

        if removed:
            logger.info(f"Removed {removed} orphaned image(s)")
        return removed
