"""
Screenshot Store for Shotkeeper

SQLite-backed persistence for screenshot metadata, tags and custom smart
folders. It is also the item source and custom folder source for the smart
folder engine.

Every operation opens its own connection, so the store can be used from
worker threads without sharing connections.
"""

import json
import logging
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from shotkeeper.core.logging import log_exception
from shotkeeper.db.migrations import get_connection, init_database
from shotkeeper.folders.kinds import DEFAULT_CUSTOM_FOLDERS
from shotkeeper.folders.models import ClassifiableItem, FolderDefinition

logger = logging.getLogger(__name__)

_SCREENSHOT_COLUMNS = "local_identifier, creation_date, local_image_path, ocr_processed, ocr_text"

# Newest first; rows without a creation date sort last
_NEWEST_FIRST = "ORDER BY creation_date IS NULL, creation_date DESC, rowid DESC"


class StoreError(Exception):
    """Raised when a store operation fails at the database level."""


@dataclass
class Screenshot:
    """A screenshot record."""

    local_identifier: str
    creation_date: datetime | None
    local_image_path: str | None
    ocr_processed: bool
    ocr_text: str | None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Screenshot":
        return cls(
            local_identifier=row["local_identifier"],
            creation_date=datetime.fromisoformat(row["creation_date"]) if row["creation_date"] else None,
            local_image_path=row["local_image_path"],
            ocr_processed=bool(row["ocr_processed"]),
            ocr_text=row["ocr_text"],
        )

    def to_item(self) -> ClassifiableItem:
        return ClassifiableItem(identifier=self.local_identifier, text=self.ocr_text)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "local_identifier": self.local_identifier,
            "creation_date": self.creation_date.isoformat() if self.creation_date else None,
            "local_image_path": self.local_image_path,
            "ocr_processed": self.ocr_processed,
            "ocr_text": self.ocr_text,
        }


@dataclass
class Tag:
    """A user tag."""

    tag_id: str
    name: str
    color_hex: str | None

    def to_dict(self) -> dict:
        return {"tag_id": self.tag_id, "name": self.name, "color_hex": self.color_hex}


@dataclass
class SmartFolder:
    """
    A stored custom smart folder.

    keywords is None when the stored value is missing or not a JSON list of
    strings; such folders are skipped by the engine.
    """

    folder_id: str
    name: str | None
    icon_name: str | None
    keywords: list[str] | None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "SmartFolder":
        return cls(
            folder_id=row["folder_id"],
            name=row["name"],
            icon_name=row["icon_name"],
            keywords=_decode_keywords(row["keywords"]),
        )

    def to_definition(self) -> FolderDefinition | None:
        """Engine definition for this folder, or None if the record is malformed."""
        if self.keywords is None:
            return None

        try:
            folder_id = uuid.UUID(self.folder_id)
        except ValueError:
            folder_id = uuid.uuid4()

        return FolderDefinition.custom(
            name=self.name or "Unknown",
            keywords=self.keywords,
            icon_name=self.icon_name or "folder",
            folder_id=folder_id,
        )

    def to_dict(self) -> dict:
        return {
            "folder_id": self.folder_id,
            "name": self.name,
            "icon_name": self.icon_name,
            "keywords": self.keywords,
        }


def _decode_keywords(raw: str | None) -> list[str] | None:
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        logger.warning(f"Malformed smart folder keywords: {raw!r}")
        return None
    if not isinstance(value, list) or not all(isinstance(k, str) for k in value):
        logger.warning(f"Smart folder keywords are not a list of strings: {raw!r}")
        return None
    return value


def _format_date(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class ScreenshotStore:
    """
    Persistence for screenshots, tags and custom smart folders.

    Provides methods to:
    - Register screenshots and record OCR results
    - Search screenshots by recognized text or tag name
    - Manage tags and custom smart folders
    - Feed the smart folder engine (items + custom definitions)
    """

    def __init__(self, db_path: Path | str | None = None, migrate: bool = True):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database (uses default if None)
            migrate: Run pending schema migrations on open
        """
        self.db_path = Path(db_path) if db_path else None
        if migrate:
            try:
                init_database(self.db_path)
            except sqlite3.Error as e:
                raise StoreError(f"Failed to initialize database: {e}") from e

    @contextmanager
    def _connect(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and wrap database errors."""
        try:
            conn = get_connection(self.db_path)
        except sqlite3.Error as e:
            log_exception(logger, f"Failed to open database for {operation}", e)
            raise StoreError(f"{operation} failed: {e}") from e

        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            log_exception(logger, f"Error during {operation}", e)
            raise StoreError(f"{operation} failed: {e}") from e
        finally:
            conn.close()

    # Screenshots

    def fetch_or_create_screenshot(
        self, local_identifier: str, creation_date: datetime | None = None
    ) -> Screenshot:
        """
        Get the screenshot with this identifier, creating it if unknown.

        New screenshots start unprocessed.
        """
        with self._connect("fetch_or_create_screenshot") as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO screenshots (local_identifier, creation_date, ocr_processed)
                VALUES (?, ?, 0)
                """,
                (local_identifier, _format_date(creation_date)),
            )
            row = conn.execute(
                f"SELECT {_SCREENSHOT_COLUMNS} FROM screenshots WHERE local_identifier = ?",
                (local_identifier,),
            ).fetchone()

        return Screenshot.from_row(row)

    def get_screenshot(self, local_identifier: str) -> Screenshot | None:
        with self._connect("get_screenshot") as conn:
            row = conn.execute(
                f"SELECT {_SCREENSHOT_COLUMNS} FROM screenshots WHERE local_identifier = ?",
                (local_identifier,),
            ).fetchone()
        return Screenshot.from_row(row) if row else None

    def get_ocr_text(self, local_identifier: str) -> str | None:
        screenshot = self.get_screenshot(local_identifier)
        return screenshot.ocr_text if screenshot else None

    def _fetch_screenshots(self, operation: str, where: str = "", params: tuple = ()) -> list[Screenshot]:
        with self._connect(operation) as conn:
            rows = conn.execute(
                f"SELECT {_SCREENSHOT_COLUMNS} FROM screenshots {where} {_NEWEST_FIRST}",
                params,
            ).fetchall()
        return [Screenshot.from_row(row) for row in rows]

    def fetch_all_screenshots(self) -> list[Screenshot]:
        """All screenshots, newest first."""
        return self._fetch_screenshots("fetch_all_screenshots")

    def fetch_unprocessed_screenshots(self) -> list[Screenshot]:
        """Screenshots that haven't been through text recognition, newest first."""
        return self._fetch_screenshots("fetch_unprocessed_screenshots", "WHERE ocr_processed = 0")

    def search_screenshots(self, query: str) -> list[Screenshot]:
        """
        Screenshots whose OCR text or any tag name contains the query.

        Matching ignores case and diacritics. An empty query matches nothing.
        """
        if not query:
            return []

        return self._fetch_screenshots(
            "search_screenshots",
            """
            WHERE contains_folded(ocr_text, ?)
               OR local_identifier IN (
                    SELECT st.local_identifier
                    FROM screenshot_tags st JOIN tags t ON t.tag_id = st.tag_id
                    WHERE contains_folded(t.name, ?)
               )
            """,
            (query, query),
        )

    def fetch_screenshots_with_tag(self, tag_id: str) -> list[Screenshot]:
        return self._fetch_screenshots(
            "fetch_screenshots_with_tag",
            "WHERE local_identifier IN (SELECT local_identifier FROM screenshot_tags WHERE tag_id = ?)",
            (tag_id,),
        )

    def update_ocr_text(self, local_identifier: str, text: str) -> bool:
        """
        Store recognized text and mark the screenshot processed.

        Returns:
            True if the screenshot exists
        """
        with self._connect("update_ocr_text") as conn:
            cursor = conn.execute(
                "UPDATE screenshots SET ocr_text = ?, ocr_processed = 1 WHERE local_identifier = ?",
                (text, local_identifier),
            )
            updated = cursor.rowcount > 0

        if not updated:
            logger.warning(f"update_ocr_text: unknown screenshot {local_identifier}")
        return updated

    def update_local_image_path(self, local_identifier: str, path: str) -> bool:
        with self._connect("update_local_image_path") as conn:
            cursor = conn.execute(
                "UPDATE screenshots SET local_image_path = ? WHERE local_identifier = ?",
                (path, local_identifier),
            )
            updated = cursor.rowcount > 0

        if not updated:
            logger.warning(f"update_local_image_path: unknown screenshot {local_identifier}")
        return updated

    def cleanup_deleted_screenshots(self, existing_identifiers: set[str]) -> int:
        """
        Delete screenshots that no longer exist at the source.

        Rows with a local image copy are kept even when the source is gone.

        Args:
            existing_identifiers: Identifiers still present at the source

        Returns:
            Number of rows deleted
        """
        with self._connect("cleanup_deleted_screenshots") as conn:
            rows = conn.execute(
                "SELECT local_identifier FROM screenshots WHERE local_image_path IS NULL"
            ).fetchall()
            stale = [(row[0],) for row in rows if row[0] not in existing_identifiers]
            conn.executemany("DELETE FROM screenshots WHERE local_identifier = ?", stale)

        if stale:
            logger.info(f"Removed {len(stale)} deleted screenshot(s)")
        return len(stale)

    def delete_screenshot(self, local_identifier: str) -> bool:
        with self._connect("delete_screenshot") as conn:
            cursor = conn.execute(
                "DELETE FROM screenshots WHERE local_identifier = ?", (local_identifier,)
            )
            return cursor.rowcount > 0

    # Tags

    def fetch_all_tags(self) -> list[Tag]:
        """All tags sorted by name."""
        with self._connect("fetch_all_tags") as conn:
            rows = conn.execute("SELECT tag_id, name, color_hex FROM tags ORDER BY name").fetchall()
        return [Tag(tag_id=row[0], name=row[1], color_hex=row[2]) for row in rows]

    def create_tag(self, name: str, color_hex: str) -> Tag:
        tag = Tag(tag_id=str(uuid.uuid4()), name=name, color_hex=color_hex)
        with self._connect("create_tag") as conn:
            conn.execute(
                "INSERT INTO tags (tag_id, name, color_hex) VALUES (?, ?, ?)",
                (tag.tag_id, tag.name, tag.color_hex),
            )
        logger.debug(f"Created tag {name!r}")
        return tag

    def delete_tag(self, tag_id: str) -> bool:
        with self._connect("delete_tag") as conn:
            cursor = conn.execute("DELETE FROM tags WHERE tag_id = ?", (tag_id,))
            return cursor.rowcount > 0

    def add_tag(self, local_identifier: str, tag_id: str) -> None:
        with self._connect("add_tag") as conn:
            conn.execute(
                "INSERT OR IGNORE INTO screenshot_tags (local_identifier, tag_id) VALUES (?, ?)",
                (local_identifier, tag_id),
            )

    def remove_tag(self, local_identifier: str, tag_id: str) -> None:
        with self._connect("remove_tag") as conn:
            conn.execute(
                "DELETE FROM screenshot_tags WHERE local_identifier = ? AND tag_id = ?",
                (local_identifier, tag_id),
            )

    def tags_for(self, local_identifier: str) -> list[Tag]:
        """Tags on a screenshot, sorted by name."""
        with self._connect("tags_for") as conn:
            rows = conn.execute(
                """
                SELECT t.tag_id, t.name, t.color_hex
                FROM tags t JOIN screenshot_tags st ON st.tag_id = t.tag_id
                WHERE st.local_identifier = ?
                ORDER BY t.name
                """,
                (local_identifier,),
            ).fetchall()
        return [Tag(tag_id=row[0], name=row[1], color_hex=row[2]) for row in rows]

    # Smart folders

    def fetch_all_smart_folders(self) -> list[SmartFolder]:
        """All custom smart folders sorted by name."""
        with self._connect("fetch_all_smart_folders") as conn:
            rows = conn.execute(
                "SELECT folder_id, name, icon_name, keywords FROM smart_folders ORDER BY name"
            ).fetchall()
        return [SmartFolder.from_row(row) for row in rows]

    def get_smart_folder(self, folder_id: str) -> SmartFolder | None:
        with self._connect("get_smart_folder") as conn:
            row = conn.execute(
                "SELECT folder_id, name, icon_name, keywords FROM smart_folders WHERE folder_id = ?",
                (folder_id,),
            ).fetchone()
        return SmartFolder.from_row(row) if row else None

    def create_smart_folder(self, name: str, keywords: list[str], icon_name: str = "folder") -> SmartFolder:
        folder = SmartFolder(
            folder_id=str(uuid.uuid4()),
            name=name,
            icon_name=icon_name,
            keywords=list(keywords),
        )
        with self._connect("create_smart_folder") as conn:
            conn.execute(
                "INSERT INTO smart_folders (folder_id, name, icon_name, keywords) VALUES (?, ?, ?, ?)",
                (folder.folder_id, folder.name, folder.icon_name, json.dumps(folder.keywords)),
            )
        logger.debug(f"Created smart folder {name!r} with {len(keywords)} keyword(s)")
        return folder

    def update_smart_folder(
        self, folder_id: str, name: str, keywords: list[str], icon_name: str
    ) -> bool:
        with self._connect("update_smart_folder") as conn:
            cursor = conn.execute(
                "UPDATE smart_folders SET name = ?, icon_name = ?, keywords = ? WHERE folder_id = ?",
                (name, icon_name, json.dumps(list(keywords)), folder_id),
            )
            updated = cursor.rowcount > 0

        if not updated:
            logger.warning(f"update_smart_folder: unknown folder {folder_id}")
        return updated

    def delete_smart_folder(self, folder_id: str) -> bool:
        with self._connect("delete_smart_folder") as conn:
            cursor = conn.execute("DELETE FROM smart_folders WHERE folder_id = ?", (folder_id,))
            return cursor.rowcount > 0

    def fetch_screenshots_for_smart_folder(self, folder: SmartFolder) -> list[Screenshot]:
        """
        Screenshots whose OCR text contains any of the folder's keywords.

        Matching ignores case and diacritics. Folders without keywords match
        nothing.
        """
        keywords = [k for k in folder.keywords or [] if k]
        if not keywords:
            return []

        clauses = " OR ".join("contains_folded(ocr_text, ?)" for _ in keywords)
        return self._fetch_screenshots(
            "fetch_screenshots_for_smart_folder", f"WHERE {clauses}", tuple(keywords)
        )

    def setup_default_smart_folders_if_needed(self) -> bool:
        """
        Seed the default keyword folders into an empty store.

        Returns:
            True if the defaults were created
        """
        with self._connect("setup_default_smart_folders") as conn:
            count = conn.execute("SELECT COUNT(*) FROM smart_folders").fetchone()[0]
            if count:
                return False

            conn.executemany(
                "INSERT INTO smart_folders (folder_id, name, icon_name, keywords) VALUES (?, ?, ?, ?)",
                [
                    (str(uuid.uuid4()), name, icon, json.dumps(list(keywords)))
                    for name, keywords, icon in DEFAULT_CUSTOM_FOLDERS
                ],
            )

        logger.info(f"Created {len(DEFAULT_CUSTOM_FOLDERS)} default smart folders")
        return True

    # Engine adapters

    def fetch_classifiable_items(self) -> list[ClassifiableItem]:
        """All screenshots as engine items, newest first."""
        return [screenshot.to_item() for screenshot in self.fetch_all_screenshots()]

    def fetch_custom_definitions(self) -> list[FolderDefinition]:
        """Custom folder definitions sorted by name; malformed records are skipped."""
        definitions = []
        for folder in self.fetch_all_smart_folders():
            definition = folder.to_definition()
            if definition is None:
                logger.debug(f"Skipping smart folder {folder.folder_id}: no keyword list")
                continue
            definitions.append(definition)
        return definitions

    def get_stats(self) -> dict:
        with self._connect("get_stats") as conn:
            total = conn.execute("SELECT COUNT(*) FROM screenshots").fetchone()[0]
            processed = conn.execute(
                "SELECT COUNT(*) FROM screenshots WHERE ocr_processed = 1"
            ).fetchone()[0]
            tags = conn.execute("SELECT COUNT(*) FROM tags").fetchone()[0]
            folders = conn.execute("SELECT COUNT(*) FROM smart_folders").fetchone()[0]

        return {
            "screenshots": total,
            "ocr_processed": processed,
            "ocr_pending": total - processed,
            "tags": tags,
            "smart_folders": folders,
        }
