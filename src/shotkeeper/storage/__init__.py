"""On-disk storage for screenshot images and thumbnails."""

from shotkeeper.storage.images import ImageStorage, format_byte_count

__all__ = ["ImageStorage", "format_byte_count"]
