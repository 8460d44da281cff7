"""
Tests for the in-process event bus.
"""

from shotkeeper.core.events import AppEvent, EventBus


class TestEventBus:
    """Test subscribe, post and unsubscribe."""

    def test_post_delivers_event_and_payload(self):
        """Test that subscribers receive the event and its payload."""
        bus = EventBus()
        received = []
        bus.subscribe(AppEvent.OCR_TEXT_UPDATED, lambda event, payload: received.append((event, payload)))

        delivered = bus.post(AppEvent.OCR_TEXT_UPDATED, {"identifiers": ["a"]})

        assert delivered == 1
        assert received == [(AppEvent.OCR_TEXT_UPDATED, {"identifiers": ["a"]})]

    def test_post_without_payload_sends_empty_dict(self):
        """Test the default payload."""
        bus = EventBus()
        received = []
        bus.subscribe(AppEvent.SYNC_COMPLETED, lambda event, payload: received.append(payload))

        bus.post(AppEvent.SYNC_COMPLETED)

        assert received == [{}]

    def test_other_events_not_delivered(self):
        """Test that subscribers only hear their own event."""
        bus = EventBus()
        received = []
        bus.subscribe(AppEvent.SYNC_COMPLETED, lambda event, payload: received.append(event))

        assert bus.post(AppEvent.NEW_SCREENSHOTS_DETECTED) == 0
        assert received == []

    def test_failing_callback_does_not_block_others(self):
        """Test that one raising callback is logged and skipped."""
        bus = EventBus()
        received = []

        def broken(event, payload):
            raise RuntimeError("boom")

        bus.subscribe(AppEvent.OCR_TEXT_UPDATED, broken)
        bus.subscribe(AppEvent.OCR_TEXT_UPDATED, lambda event, payload: received.append(event))

        assert bus.post(AppEvent.OCR_TEXT_UPDATED) == 1
        assert received == [AppEvent.OCR_TEXT_UPDATED]

    def test_unsubscribe(self):
        """Test removing a callback."""
        bus = EventBus()

        def callback(event, payload):
            pass

        bus.subscribe(AppEvent.OCR_TEXT_UPDATED, callback)

        assert bus.unsubscribe(AppEvent.OCR_TEXT_UPDATED, callback) is True
        assert bus.unsubscribe(AppEvent.OCR_TEXT_UPDATED, callback) is False
        assert bus.subscriber_count(AppEvent.OCR_TEXT_UPDATED) == 0

    def test_event_names(self):
        """Test the wire names of the events."""
        assert AppEvent.OCR_TEXT_UPDATED.value == "ocrTextUpdated"
        assert AppEvent.NEW_SCREENSHOTS_DETECTED.value == "newScreenshotsDetected"
        assert AppEvent.SYNC_COMPLETED.value == "cloudKitSyncCompleted"
