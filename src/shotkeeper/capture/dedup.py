"""
Screenshot Deduplication for Shotkeeper

Uses perceptual hashing to detect near-duplicate screenshots at import
time, so that the same screen saved twice (or re-saved as PNG and JPEG)
is only stored and recognized once.
"""

import logging
from pathlib import Path

import imagehash
from PIL import Image

logger = logging.getLogger(__name__)

# Maximum hamming distance for two images to count as duplicates.
# 0 = identical hash, 1-5 = visually the same, 10+ = different images
DEFAULT_SIMILARITY_THRESHOLD = 5

DEFAULT_HASH_SIZE = 16


def compute_perceptual_hash(
    image_or_path: Image.Image | Path | str,
    hash_size: int = DEFAULT_HASH_SIZE,
) -> imagehash.ImageHash:
    """
    Compute a difference hash (dHash) for an image.

    dHash is robust to small color adjustments, scaling and recompression.

    Args:
        image_or_path: PIL Image object or path to image file
        hash_size: Size of the hash (larger = more precise but slower)
    """
    if isinstance(image_or_path, (str, Path)):
        with Image.open(image_or_path) as image:
            return imagehash.dhash(image, hash_size=hash_size)
    return imagehash.dhash(image_or_path, hash_size=hash_size)


def compute_hamming_distance(
    hash1: str | imagehash.ImageHash,
    hash2: str | imagehash.ImageHash,
) -> int:
    """Number of differing bits between two hashes (0 means identical)."""
    if isinstance(hash1, str):
        hash1 = imagehash.hex_to_hash(hash1)
    if isinstance(hash2, str):
        hash2 = imagehash.hex_to_hash(hash2)

    return hash1 - hash2


class DuplicateIndex:
    """
    Remembers the hashes of imported images.

    check_and_add() reports whether an image is within the threshold of any
    image seen before, and records it if not.
    """

    def __init__(self, threshold: int = DEFAULT_SIMILARITY_THRESHOLD):
        self.threshold = threshold
        self._hashes: dict[str, imagehash.ImageHash] = {}

    def __len__(self) -> int:
        return len(self._hashes)

    def find_duplicate(self, image_hash: imagehash.ImageHash) -> str | None:
        """Identifier of a previously added near-duplicate, if any."""
        for identifier, known in self._hashes.items():
            if compute_hamming_distance(image_hash, known) <= self.threshold:
                return identifier
        return None

    def add(self, identifier: str, image_hash: imagehash.ImageHash) -> None:
        self._hashes[identifier] = image_hash

    def check_and_add(self, identifier: str, image: Image.Image | Path | str) -> str | None:
        """
        Check an image against the index.

        Returns:
            Identifier of the earlier near-duplicate, or None if the image is
            new (in which case it is added)
        """
        image_hash = compute_perceptual_hash(image)
        duplicate_of = self.find_duplicate(image_hash)
        if duplicate_of is None:
            self.add(identifier, image_hash)
        else:
            logger.debug(f"{identifier} duplicates {duplicate_of}")
        return duplicate_of

    def clear(self) -> None:
        self._hashes.clear()
