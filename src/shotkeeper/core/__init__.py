"""
Shotkeeper Core Module

This module provides core utilities including path management,
configuration, logging, retry and the in-process event bus.
"""

from .events import AppEvent, EventBus
from .paths import (
    CACHE_DIR,
    CONFIG_PATH,
    DATA_ROOT,
    DB_PATH,
    LOG_DIR,
    OCR_CACHE_DIR,
    SCREENSHOTS_DIR,
    THUMBNAILS_DIR,
    ensure_data_directories,
)

__all__ = [
    # Directory paths
    "DATA_ROOT",
    "DB_PATH",
    "CONFIG_PATH",
    "SCREENSHOTS_DIR",
    "THUMBNAILS_DIR",
    "LOG_DIR",
    "CACHE_DIR",
    "OCR_CACHE_DIR",
    # Functions
    "ensure_data_directories",
    # Events
    "AppEvent",
    "EventBus",
]
