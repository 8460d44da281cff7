"""Command-line interface for Shotkeeper."""

import asyncio
import logging
import os
from pathlib import Path

import fire
from dotenv import load_dotenv

from shotkeeper.capture.importer import ScreenshotImporter
from shotkeeper.core.config import load_config, validate_config
from shotkeeper.core.logging import setup_logging
from shotkeeper.core.paths import DATA_ROOT, DB_PATH, ensure_data_directories
from shotkeeper.db.store import ScreenshotStore
from shotkeeper.folders.kinds import FolderKind
from shotkeeper.folders.service import SmartFolderEngine
from shotkeeper.jobs.recognition import RecognitionJob
from shotkeeper.ocr.recognizer import TextRecognizer
from shotkeeper.storage.images import ImageStorage

logger = logging.getLogger(__name__)


class ShotkeeperCLI:
    """Shotkeeper CLI commands."""

    def __init__(self, db_path: str | None = None, verbose: bool = False):
        """
        Args:
            db_path: SQLite database path (defaults to the data directory)
            verbose: Log debug output to the console
        """
        setup_logging(console_level=logging.DEBUG if verbose else logging.WARNING)
        self._db_path = Path(db_path) if db_path else DB_PATH
        self._store: ScreenshotStore | None = None
        self._config = load_config()

    @property
    def store(self) -> ScreenshotStore:
        if self._store is None:
            self._store = ScreenshotStore(self._db_path)
        return self._store

    def _storage(self) -> ImageStorage:
        return ImageStorage.from_config(self._config)

    def _engine(self) -> SmartFolderEngine:
        return SmartFolderEngine(self.store)

    def init(self) -> dict:
        """Create data directories, the database and (optionally) default folders."""
        directories = ensure_data_directories()
        seeded = False
        if validate_config(self._config).seed_default_folders:
            seeded = self.store.setup_default_smart_folders_if_needed()
        return {
            "data_root": str(DATA_ROOT),
            "database": str(self._db_path),
            "directories": directories,
            "seeded_default_folders": seeded,
        }

    def import_dir(self, directory: str, recursive: bool = False, recognize: bool = False) -> dict:
        """Import the images in a directory.

        Args:
            directory: Directory to scan
            recursive: Include subdirectories
            recognize: Run text recognition on the new screenshots afterwards
        """
        imports = self._config["imports"]
        storage = self._storage()
        importer = ScreenshotImporter(
            self.store,
            storage,
            extensions=imports["extensions"],
            dedup_threshold=imports["dedup_threshold"],
        )
        result = importer.import_directory(directory, recursive=recursive).to_dict()

        if recognize and result["imported"]:
            result["recognition"] = self.recognize()
        return result

    def recognize(self, limit: int | None = None) -> dict:
        """Run text recognition on unprocessed screenshots.

        Args:
            limit: Maximum number of screenshots to process
        """
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            logger.warning("OPENAI_API_KEY is not set; uncached recognition requests will fail")
        recognizer = TextRecognizer.from_config(self._config, api_key=api_key)
        job = RecognitionJob(self.store, self._storage(), recognizer)
        return job.run(limit=limit).to_dict()

    def folders(self, offload: bool = False) -> list[dict]:
        """Classify all screenshots and list every smart folder with its count.

        Args:
            offload: Classify in a worker thread
        """
        engine = self._engine()
        results = asyncio.run(engine.refresh_async()) if offload else engine.refresh()
        return [
            {"name": r.name, "icon": r.icon_name, "count": r.match_count, "built_in": r.definition.built_in}
            for r in results
        ]

    def folder(self, name: str) -> dict:
        """Show the screenshots in one smart folder (built-in or custom)."""
        result = self._engine().refresh()
        for folder_result in result:
            if folder_result.name.lower() == name.lower():
                return folder_result.to_dict()
        raise ValueError(f"No smart folder named {name!r}")

    def classify(self, local_identifier: str) -> list[str]:
        """List the built-in folders one screenshot belongs to."""
        return [kind.value for kind in self._engine().smart_folders_for(local_identifier)]

    def snippets(self, local_identifier: str, folder: str) -> list[str]:
        """Show the lines of a screenshot's text that matched a built-in folder."""
        return self._engine().snippets_for(local_identifier, FolderKind.from_name(folder))

    def highlights(self, local_identifier: str, folder: str) -> list[dict]:
        """Show the matched text ranges of a screenshot for a built-in folder, sorted by start."""
        engine = self._engine()
        kind = FolderKind.from_name(folder)
        text = self.store.get_ocr_text(local_identifier) or ""
        spans = sorted(engine.highlights_for(local_identifier, kind))
        return [{"start": s.start, "end": s.end, "text": s.extract(text)} for s in spans]

    def search(self, query: str) -> list[dict]:
        """Search screenshots by recognized text or tag name."""
        return [s.to_dict() for s in self.store.search_screenshots(query)]

    def storage(self) -> dict:
        """Show store and storage statistics."""
        storage = self._storage()
        return {
            **self.store.get_stats(),
            "local_images": storage.local_image_count(),
            "storage_used": storage.formatted_storage_used(),
        }

    def cleanup(self) -> dict:
        """Remove stored images that no screenshot row refers to."""
        valid = {s.local_identifier for s in self.store.fetch_all_screenshots() if s.local_image_path}
        removed = self._storage().cleanup_orphaned_images(valid)
        return {"orphaned_images_removed": removed}

    def create_folder(self, name: str, keywords: str, icon: str = "folder") -> dict:
        """Create a custom keyword folder.

        Args:
            name: Folder name
            keywords: Comma-separated keywords
            icon: Icon name
        """
        keyword_list = [k.strip() for k in keywords.split(",") if k.strip()]
        return self.store.create_smart_folder(name, keyword_list, icon).to_dict()

    def delete_folder(self, folder_id: str) -> dict:
        """Delete a custom folder by id."""
        return {"deleted": self.store.delete_smart_folder(folder_id)}

    def custom_folders(self) -> list[dict]:
        """List custom folders."""
        return [f.to_dict() for f in self.store.fetch_all_smart_folders()]

    def tags(self) -> list[dict]:
        """List tags."""
        return [t.to_dict() for t in self.store.fetch_all_tags()]

    def create_tag(self, name: str, color: str = "#007AFF") -> dict:
        """Create a tag."""
        return self.store.create_tag(name, color).to_dict()

    def tag(self, local_identifier: str, tag_id: str) -> dict:
        """Attach a tag to a screenshot."""
        self.store.add_tag(local_identifier, tag_id)
        return {"local_identifier": local_identifier, "tags": [t.name for t in self.store.tags_for(local_identifier)]}


def main() -> None:
    """Main entry point for the Shotkeeper CLI."""
    load_dotenv()
    fire.Fire(ShotkeeperCLI)


if __name__ == "__main__":
    main()
