"""
Data Directory Structure Management for Shotkeeper

This module defines and manages the data directory structure for Shotkeeper.
All paths are relative to the DATA_ROOT (~/ScreenShotManager by default).

Directory structure:
    ScreenShotManager/
    ├── ScreenShotManager.sqlite   # SQLite database (source of truth)
    ├── config.json                # User configuration
    ├── Screenshots/               # Full-size JPEG copies
    ├── Thumbnails/                # <identifier>_thumb.jpg
    ├── logs/                      # Rotating text and JSON logs
    └── cache/ocr/                 # Recognition results keyed by image hash
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# Allow override via environment variable for testing
_data_root_override = os.environ.get("SHOTKEEPER_DATA_ROOT")
DATA_ROOT: Path = (
    Path(_data_root_override) if _data_root_override else Path.home() / "ScreenShotManager"
)

# Database file path
DB_PATH: Path = DATA_ROOT / "ScreenShotManager.sqlite"

# Configuration file
CONFIG_PATH: Path = DATA_ROOT / "config.json"

# Image directories
SCREENSHOTS_DIR: Path = DATA_ROOT / "Screenshots"
THUMBNAILS_DIR: Path = DATA_ROOT / "Thumbnails"

# Logs and caches
LOG_DIR: Path = DATA_ROOT / "logs"
CACHE_DIR: Path = DATA_ROOT / "cache"
OCR_CACHE_DIR: Path = CACHE_DIR / "ocr"

# All directories that should exist
_REQUIRED_DIRS: tuple[Path, ...] = (
    SCREENSHOTS_DIR,
    THUMBNAILS_DIR,
    LOG_DIR,
    CACHE_DIR,
    OCR_CACHE_DIR,
)


def ensure_data_directories() -> dict[str, bool]:
    """
    Ensure all required data directories exist.

    This function is idempotent and safe to call multiple times.

    Returns:
        Dictionary mapping directory names (relative to DATA_ROOT) to whether
        they were created (True) or already existed (False).
    """
    results: dict[str, bool] = {}

    for dir_path in _REQUIRED_DIRS:
        try:
            created = not dir_path.exists()
            dir_path.mkdir(parents=True, exist_ok=True)
            results[dir_path.relative_to(DATA_ROOT).as_posix()] = created
            if created:
                logger.info(f"Created directory: {dir_path}")
        except OSError as e:
            logger.error(f"Failed to create directory {dir_path}: {e}")
            raise

    return results


def get_ocr_cache_path(image_hash: str) -> Path:
    """
    Get the cache file path for a recognition result.

    Args:
        image_hash: Hash prefix of the image contents

    Returns:
        Path to the JSON cache file (parent directory is created)
    """
    OCR_CACHE_DIR.mkdir(parents=True, exist_ok=True)
    return OCR_CACHE_DIR / f"{image_hash}.json"


if __name__ == "__main__":
    import fire

    def init():
        """Create the data directory structure."""
        return ensure_data_directories()

    def info():
        """Show data directory locations."""
        return {
            "data_root": str(DATA_ROOT),
            "db_path": str(DB_PATH),
            "config_path": str(CONFIG_PATH),
            "screenshots_dir": str(SCREENSHOTS_DIR),
            "thumbnails_dir": str(THUMBNAILS_DIR),
        }

    def verify():
        """Verify all required directories exist."""
        missing = [str(d) for d in _REQUIRED_DIRS if not d.exists()]
        return {"valid": len(missing) == 0, "missing": missing}

    fire.Fire({"init": init, "info": info, "verify": verify})
