"""
Tests for the SQLite screenshot store.
"""

from datetime import datetime
from pathlib import Path

import pytest

from shotkeeper.db.migrations import MigrationRunner, get_connection, verify_schema
from shotkeeper.db.store import ScreenshotStore, StoreError
from shotkeeper.folders.kinds import DEFAULT_CUSTOM_FOLDERS


@pytest.fixture
def store(tmp_path: Path) -> ScreenshotStore:
    return ScreenshotStore(tmp_path / "test.sqlite")


class TestMigrations:
    """Test schema setup."""

    def test_schema_created(self, store: ScreenshotStore):
        """Test that all expected tables exist after opening the store."""
        conn = get_connection(store.db_path)
        try:
            result = verify_schema(conn)
        finally:
            conn.close()

        assert result["valid"] is True
        assert result["missing"] == []

    def test_no_pending_migrations_after_init(self, store: ScreenshotStore):
        """Test that reopening the store applies nothing new."""
        status = MigrationRunner(store.db_path).get_status()

        assert status["current_version"] == 1
        assert status["pending_migrations"] == 0

    def test_unopenable_database_raises_store_error(self, tmp_path: Path):
        """Test that a database path that is a directory fails cleanly."""
        with pytest.raises(StoreError):
            ScreenshotStore(tmp_path)


class TestScreenshots:
    """Test screenshot rows."""

    def test_fetch_or_create_is_idempotent(self, store: ScreenshotStore):
        """Test that an existing screenshot is returned unchanged."""
        created = store.fetch_or_create_screenshot("a", datetime(2024, 3, 15, 9, 30))
        store.update_ocr_text("a", "hello")

        again = store.fetch_or_create_screenshot("a", datetime(2025, 1, 1))

        assert created.ocr_processed is False
        assert again.creation_date == datetime(2024, 3, 15, 9, 30)
        assert again.ocr_text == "hello"

    def test_update_ocr_text_marks_processed(self, store: ScreenshotStore):
        """Test that storing text marks the screenshot processed."""
        store.fetch_or_create_screenshot("a")

        assert store.update_ocr_text("a", "Total: $5") is True

        screenshot = store.get_screenshot("a")
        assert screenshot.ocr_processed is True
        assert store.get_ocr_text("a") == "Total: $5"
        assert store.fetch_unprocessed_screenshots() == []

    def test_update_unknown_screenshot(self, store: ScreenshotStore):
        """Test that updating a missing row reports False."""
        assert store.update_ocr_text("missing", "text") is False
        assert store.update_local_image_path("missing", "missing.jpg") is False
        assert store.get_ocr_text("missing") is None

    def test_newest_first_with_undated_last(self, store: ScreenshotStore):
        """Test the display order of fetch_all_screenshots."""
        store.fetch_or_create_screenshot("old", datetime(2024, 1, 1))
        store.fetch_or_create_screenshot("undated")
        store.fetch_or_create_screenshot("new", datetime(2024, 6, 1))

        identifiers = [s.local_identifier for s in store.fetch_all_screenshots()]

        assert identifiers == ["new", "old", "undated"]

    def test_cleanup_keeps_rows_with_local_images(self, store: ScreenshotStore):
        """Test that only source-less rows without local copies are removed."""
        store.fetch_or_create_screenshot("kept")
        store.fetch_or_create_screenshot("gone")
        store.fetch_or_create_screenshot("local")
        store.update_local_image_path("local", "local.jpg")

        removed = store.cleanup_deleted_screenshots({"kept"})

        assert removed == 1
        assert store.get_screenshot("gone") is None
        assert store.get_screenshot("local") is not None

    def test_delete_screenshot(self, store: ScreenshotStore):
        """Test deleting a row."""
        store.fetch_or_create_screenshot("a")

        assert store.delete_screenshot("a") is True
        assert store.delete_screenshot("a") is False


class TestSearch:
    """Test text and tag search."""

    def test_search_ignores_case_and_diacritics(self, store: ScreenshotStore):
        """Test that search folds case and accents."""
        store.fetch_or_create_screenshot("a")
        store.update_ocr_text("a", "Receipt from Café Zoë")
        store.fetch_or_create_screenshot("b")
        store.update_ocr_text("b", "nothing")

        assert [s.local_identifier for s in store.search_screenshots("CAFE")] == ["a"]
        assert [s.local_identifier for s in store.search_screenshots("zoë")] == ["a"]

    def test_search_matches_tag_names(self, store: ScreenshotStore):
        """Test that tag names are searched too."""
        store.fetch_or_create_screenshot("a")
        tag = store.create_tag("Travel", "#FF0000")
        store.add_tag("a", tag.tag_id)

        assert [s.local_identifier for s in store.search_screenshots("trav")] == ["a"]

    def test_empty_query_matches_nothing(self, store: ScreenshotStore):
        """Test that an empty query returns no results."""
        store.fetch_or_create_screenshot("a")
        store.update_ocr_text("a", "anything")

        assert store.search_screenshots("") == []


class TestTags:
    """Test tag management."""

    def test_tag_lifecycle(self, store: ScreenshotStore):
        """Test creating, attaching, listing and removing tags."""
        store.fetch_or_create_screenshot("a")
        work = store.create_tag("Work", "#0000FF")
        home = store.create_tag("Home", "#00FF00")
        store.add_tag("a", work.tag_id)
        store.add_tag("a", home.tag_id)
        store.add_tag("a", home.tag_id)

        assert [t.name for t in store.tags_for("a")] == ["Home", "Work"]
        assert [s.local_identifier for s in store.fetch_screenshots_with_tag(work.tag_id)] == ["a"]

        store.remove_tag("a", work.tag_id)
        assert [t.name for t in store.tags_for("a")] == ["Home"]

    def test_deleting_tag_detaches_it(self, store: ScreenshotStore):
        """Test that deleting a tag removes its screenshot links."""
        store.fetch_or_create_screenshot("a")
        tag = store.create_tag("Temp", "#123456")
        store.add_tag("a", tag.tag_id)

        assert store.delete_tag(tag.tag_id) is True
        assert store.tags_for("a") == []
        assert store.fetch_all_tags() == []


class TestSmartFolders:
    """Test custom smart folder records."""

    def test_create_and_fetch(self, store: ScreenshotStore):
        """Test that keywords round-trip through JSON."""
        folder = store.create_smart_folder("Work", ["meeting", "agenda"], "briefcase")

        fetched = store.get_smart_folder(folder.folder_id)

        assert fetched == folder
        assert fetched.keywords == ["meeting", "agenda"]

    def test_update_and_delete(self, store: ScreenshotStore):
        """Test updating and deleting a folder."""
        folder = store.create_smart_folder("Work", ["meeting"])

        assert store.update_smart_folder(folder.folder_id, "Job", ["standup"], "briefcase") is True
        assert store.get_smart_folder(folder.folder_id).name == "Job"
        assert store.update_smart_folder("missing", "X", [], "folder") is False

        assert store.delete_smart_folder(folder.folder_id) is True
        assert store.fetch_all_smart_folders() == []

    def test_malformed_keywords_skipped_by_engine_adapter(self, store: ScreenshotStore):
        """Test that a folder with non-list keywords yields no definition."""
        store.create_smart_folder("Good", ["ok"])
        conn = get_connection(store.db_path)
        try:
            conn.execute(
                "INSERT INTO smart_folders (folder_id, name, icon_name, keywords) VALUES (?, ?, ?, ?)",
                ("bad-1", "Bad", "folder", "not json"),
            )
            conn.execute(
                "INSERT INTO smart_folders (folder_id, name, icon_name, keywords) VALUES (?, ?, ?, ?)",
                ("bad-2", "Worse", None, '{"a": 1}'),
            )
            conn.commit()
        finally:
            conn.close()

        definitions = store.fetch_custom_definitions()

        assert [d.name for d in definitions] == ["Good"]
        assert store.get_smart_folder("bad-1").keywords is None

    def test_missing_name_and_icon_defaults(self, store: ScreenshotStore):
        """Test that a nameless folder becomes 'Unknown' with the default icon."""
        conn = get_connection(store.db_path)
        try:
            conn.execute(
                "INSERT INTO smart_folders (folder_id, name, icon_name, keywords) VALUES (?, ?, ?, ?)",
                ("legacy", None, None, '["x"]'),
            )
            conn.commit()
        finally:
            conn.close()

        definition = store.fetch_custom_definitions()[0]

        assert definition.name == "Unknown"
        assert definition.icon_name == "folder"
        assert definition.keywords == ("x",)

    def test_fetch_screenshots_for_smart_folder(self, store: ScreenshotStore):
        """Test keyword lookup for one custom folder."""
        store.fetch_or_create_screenshot("a", datetime(2024, 1, 1))
        store.update_ocr_text("a", "Team MEETING at 3")
        store.fetch_or_create_screenshot("b", datetime(2024, 1, 2))
        store.update_ocr_text("b", "shopping list")
        folder = store.create_smart_folder("Work", ["meeting", ""])

        assert [s.local_identifier for s in store.fetch_screenshots_for_smart_folder(folder)] == ["a"]

    def test_default_folders_seeded_once(self, store: ScreenshotStore):
        """Test that defaults are only created in an empty store."""
        assert store.setup_default_smart_folders_if_needed() is True
        assert store.setup_default_smart_folders_if_needed() is False

        assert len(store.fetch_all_smart_folders()) == len(DEFAULT_CUSTOM_FOLDERS)


class TestEngineAdapters:
    """Test the item source used by the smart folder engine."""

    def test_classifiable_items(self, store: ScreenshotStore):
        """Test that every screenshot becomes an item, newest first."""
        store.fetch_or_create_screenshot("a", datetime(2024, 1, 1))
        store.fetch_or_create_screenshot("b", datetime(2024, 1, 2))
        store.update_ocr_text("b", "text")

        items = store.fetch_classifiable_items()

        assert [(i.identifier, i.text) for i in items] == [("b", "text"), ("a", None)]

    def test_get_stats(self, store: ScreenshotStore):
        """Test counts."""
        store.fetch_or_create_screenshot("a")
        store.fetch_or_create_screenshot("b")
        store.update_ocr_text("a", "text")

        stats = store.get_stats()

        assert stats["screenshots"] == 2
        assert stats["ocr_processed"] == 1
        assert stats["ocr_pending"] == 1
