"""
In-process event bus for Shotkeeper.

Components post app events ("new screenshots detected", "OCR text updated",
"sync completed") and interested parties, typically the smart folder engine,
subscribe to re-run their work.
"""

import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class AppEvent(str, Enum):
    """Events posted between Shotkeeper components."""

    OCR_TEXT_UPDATED = "ocrTextUpdated"
    NEW_SCREENSHOTS_DETECTED = "newScreenshotsDetected"
    SYNC_COMPLETED = "cloudKitSyncCompleted"


# Callbacks receive the event and an optional payload dict
EventCallback = Callable[[AppEvent, dict[str, Any]], None]


class EventBus:
    """
    Thread-safe publish/subscribe registry.

    Callbacks run synchronously on the posting thread. A failing callback is
    logged and does not prevent delivery to the others.
    """

    def __init__(self):
        self._subscribers: dict[AppEvent, list[EventCallback]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event: AppEvent, callback: EventCallback) -> None:
        with self._lock:
            self._subscribers.setdefault(event, []).append(callback)

    def unsubscribe(self, event: AppEvent, callback: EventCallback) -> bool:
        """
        Remove a callback.

        Returns:
            True if the callback was registered for the event
        """
        with self._lock:
            callbacks = self._subscribers.get(event, [])
            if callback in callbacks:
                callbacks.remove(callback)
                return True
        return False

    def post(self, event: AppEvent, payload: dict[str, Any] | None = None) -> int:
        """
        Deliver an event to all subscribers.

        Args:
            event: Event to post
            payload: Optional data for the subscribers

        Returns:
            Number of callbacks that ran without raising
        """
        with self._lock:
            callbacks = list(self._subscribers.get(event, []))

        payload = payload or {}
        delivered = 0
        for callback in callbacks:
            try:
                callback(event, payload)
                delivered += 1
            except Exception as e:
                logger.error(f"Error in {event.value} callback: {e}")

        logger.debug(f"Posted {event.value} to {delivered}/{len(callbacks)} subscriber(s)")
        return delivered

    def subscriber_count(self, event: AppEvent) -> int:
        with self._lock:
            return len(self._subscribers.get(event, []))
