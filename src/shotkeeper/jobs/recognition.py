"""
Text Recognition Job for Shotkeeper

Works through screenshots that haven't been recognized yet:

1. Fetch unprocessed screenshots from the store (newest first)
2. Recognize the text of each stored image
3. Write the text back and mark the screenshot processed
4. Post OCR_TEXT_UPDATED once for the batch so smart folders can refresh
"""

import logging
from dataclasses import dataclass, field

from shotkeeper.core.events import AppEvent, EventBus
from shotkeeper.core.logging import OperationTimer
from shotkeeper.db.store import Screenshot, ScreenshotStore
from shotkeeper.ocr.recognizer import TextRecognizer
from shotkeeper.storage.images import ImageStorage

logger = logging.getLogger(__name__)


@dataclass
class RecognitionStats:
    """Outcome of one recognition run."""

    processed: int = 0
    failed: int = 0
    skipped: int = 0
    cached: int = 0
    total_tokens: int = 0
    updated_identifiers: list[str] = field(default_factory=list)
    failed_identifiers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "skipped": self.skipped,
            "cached": self.cached,
            "total_tokens": self.total_tokens,
            "updated_identifiers": self.updated_identifiers,
            "failed_identifiers": self.failed_identifiers,
        }


class RecognitionJob:
    """Recognizes text for every unprocessed screenshot with a local image."""

    def __init__(
        self,
        store: ScreenshotStore,
        storage: ImageStorage,
        recognizer: TextRecognizer,
        bus: EventBus | None = None,
    ):
        self.store = store
        self.storage = storage
        self.recognizer = recognizer
        self.bus = bus

    def run(self, limit: int | None = None) -> RecognitionStats:
        """
        Process the backlog.

        Screenshots without a local image are skipped and stay unprocessed.
        Failed screenshots also stay unprocessed so the next run retries them.

        Args:
            limit: Maximum number of screenshots to process

        Returns:
            RecognitionStats for the run
        """
        pending = self.store.fetch_unprocessed_screenshots()
        if limit is not None:
            pending = pending[:limit]

        stats = RecognitionStats()
        if not pending:
            logger.debug("No screenshots waiting for recognition")
            return stats

        with OperationTimer(logger, "recognition_job", logging.INFO, pending=len(pending)):
            for screenshot in pending:
                self._process(screenshot, stats)

        logger.info(
            f"Recognition finished: {stats.processed} processed, {stats.failed} failed, "
            f"{stats.skipped} skipped"
        )

        if stats.updated_identifiers and self.bus:
            self.bus.post(
                AppEvent.OCR_TEXT_UPDATED, {"identifiers": list(stats.updated_identifiers)}
            )
        return stats

    def _process(self, screenshot: Screenshot, stats: RecognitionStats) -> None:
        identifier = screenshot.local_identifier

        if not screenshot.local_image_path:
            logger.debug(f"Skipping {identifier}: no local image")
            stats.skipped += 1
            return

        result = self.recognizer.recognize(self.storage.image_path(screenshot.local_image_path))
        if result is None:
            stats.failed += 1
            stats.failed_identifiers.append(identifier)
            return

        if not self.store.update_ocr_text(identifier, result.text):
            stats.failed += 1
            stats.failed_identifiers.append(identifier)
            return

        stats.processed += 1
        stats.updated_identifiers.append(identifier)
        stats.total_tokens += result.token_count
        if result.cached:
            stats.cached += 1
