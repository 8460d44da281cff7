"""
Screenshot intake for Shotkeeper

- Directory import into storage and the store
- Perceptual-hash deduplication
"""

from shotkeeper.capture.dedup import DuplicateIndex, compute_perceptual_hash
from shotkeeper.capture.importer import ImportStats, ScreenshotImporter

__all__ = [
    "DuplicateIndex",
    "ImportStats",
    "ScreenshotImporter",
    "compute_perceptual_hash",
]
