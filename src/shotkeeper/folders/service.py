"""
Smart Folder Engine facade

Connects the pure classification functions to an item source (normally a
ScreenshotStore) and keeps the latest results for display.

The same classify() call backs both refresh modes: refresh() runs it on the
calling thread, refresh_async() runs it in a worker thread and hands the
immutable results back.
"""

import asyncio
import logging
import threading
from typing import Any, Protocol

from shotkeeper.core.events import AppEvent, EventBus
from shotkeeper.core.logging import OperationTimer
from shotkeeper.folders import engine
from shotkeeper.folders.kinds import FolderKind, built_in_definitions
from shotkeeper.folders.models import ClassifiableItem, FolderDefinition, FolderResult, HighlightSpan

logger = logging.getLogger(__name__)

# Events after which the folder contents may have changed
REFRESH_EVENTS = (
    AppEvent.NEW_SCREENSHOTS_DETECTED,
    AppEvent.OCR_TEXT_UPDATED,
    AppEvent.SYNC_COMPLETED,
)


class FolderSource(Protocol):
    """What the engine needs from a store."""

    def fetch_classifiable_items(self) -> list[ClassifiableItem]: ...

    def fetch_custom_definitions(self) -> list[FolderDefinition]: ...

    def get_ocr_text(self, local_identifier: str) -> str | None: ...


class SmartFolderEngine:
    """
    Computes and holds smart folder results for a store.

    Results are replaced wholesale on every refresh; nothing is carried over
    between passes.
    """

    def __init__(self, source: FolderSource):
        self.source = source
        self._results: list[FolderResult] = []
        self._lock = threading.Lock()
        self._bus: EventBus | None = None

    @property
    def results(self) -> list[FolderResult]:
        """Results of the latest refresh."""
        with self._lock:
            return list(self._results)

    def _compute(self) -> list[FolderResult]:
        items = self.source.fetch_classifiable_items()
        custom = self.source.fetch_custom_definitions()

        with OperationTimer(logger, "classify", items=len(items), custom_folders=len(custom)):
            return engine.classify(items, built_in_definitions(), custom)

    def _publish(self, results: list[FolderResult]) -> list[FolderResult]:
        with self._lock:
            self._results = results
        counts = ", ".join(f"{r.name}={r.match_count}" for r in results)
        logger.info(f"Smart folders refreshed: {counts}")
        return list(results)

    def refresh(self) -> list[FolderResult]:
        """Reclassify everything on the calling thread."""
        return self._publish(self._compute())

    async def refresh_async(self) -> list[FolderResult]:
        """Reclassify in a worker thread and publish the results."""
        results = await asyncio.to_thread(self._compute)
        return self._publish(results)

    def result_named(self, name: str) -> FolderResult | None:
        for result in self.results:
            if result.name == name:
                return result
        return None

    def smart_folders_for(self, local_identifier: str) -> list[FolderKind]:
        """Built-in folders one screenshot belongs to (empty if it has no text)."""
        return engine.folders_containing(self.source.get_ocr_text(local_identifier))

    def identifiers_for(self, kind: FolderKind) -> list[str]:
        """Identifiers matching one built-in folder, computed fresh."""
        return engine.find_matching_identifiers(
            self.source.fetch_classifiable_items(),
            keywords=kind.keywords,
            patterns=kind.patterns,
            minimum_matches=kind.minimum_matches,
        )

    def snippets_for(self, local_identifier: str, kind: FolderKind) -> list[str]:
        return engine.matched_snippets(
            self.source.get_ocr_text(local_identifier), kind.keywords, kind.patterns
        )

    def highlights_for(self, local_identifier: str, kind: FolderKind) -> list[HighlightSpan]:
        return engine.highlight_ranges(self.source.get_ocr_text(local_identifier), kind)

    def statistics(self) -> list[tuple[str, int, str]]:
        """Refresh, then (name, match count, icon) for every folder."""
        return [(r.name, r.match_count, r.icon_name) for r in self.refresh()]

    # Event wiring

    def _on_event(self, event: AppEvent, payload: dict[str, Any]) -> None:
        logger.debug(f"Refreshing smart folders after {event.value}")
        self.refresh()

    def attach(self, bus: EventBus) -> None:
        """Refresh automatically whenever the bus reports new or changed items."""
        self.detach()
        for event in REFRESH_EVENTS:
            bus.subscribe(event, self._on_event)
        self._bus = bus

    def detach(self) -> None:
        if self._bus is None:
            return
        for event in REFRESH_EVENTS:
            self._bus.unsubscribe(event, self._on_event)
        self._bus = None
