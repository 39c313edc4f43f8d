"""File-system entry store with one JSON document per collection."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from body_tracker.domain.errors import PersistenceFailure
from body_tracker.services.entries import EntryStore

logger = logging.getLogger(__name__)

ENTRIES_FILE = "entries.json"
SETTINGS_FILE = "settings.json"
IMAGES_DIR = "images"


@dataclass
class FileEntryStore(EntryStore):
    """Store entries and settings as JSON files and images one file each."""

    data_dir: Path

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir)

    @property
    def entries_path(self) -> Path:
        return self.data_dir / ENTRIES_FILE

    @property
    def settings_path(self) -> Path:
        return self.data_dir / SETTINGS_FILE

    @property
    def images_dir(self) -> Path:
        return self.data_dir / IMAGES_DIR

    def open(self) -> None:
        """Create the data and image directories."""
        try:
            self.images_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceFailure(f"Cannot create {self.data_dir}: {exc}") from exc
        logger.info("File store ready at %s", self.data_dir)

    def close(self) -> None:
        """Nothing to release; every write is already on disk."""

    def get_entries(self) -> list[dict[str, object]]:
        """Return stored entry records, empty when the file is absent."""
        data = _read_json(self.entries_path, default=[])
        if not isinstance(data, list):
            raise PersistenceFailure(f"{self.entries_path} does not hold a list")
        return data

    def save_entries(self, entries: list[dict[str, object]]) -> None:
        """Rewrite the entries file."""
        _write_json(self.entries_path, entries, indent=2)

    def get_settings(self) -> dict[str, object]:
        """Return the settings record, empty when the file is absent."""
        data = _read_json(self.settings_path, default={})
        if not isinstance(data, dict):
            raise PersistenceFailure(f"{self.settings_path} does not hold an object")
        return data

    def save_settings(self, settings: dict[str, object]) -> None:
        """Rewrite the settings file."""
        _write_json(self.settings_path, settings, indent=2)

    def save_image(self, image_id: str, payload: dict[str, object]) -> None:
        """Write an image payload to its own file."""
        _write_json(self._image_path(image_id), payload)

    def get_image(self, image_id: str) -> dict[str, object] | None:
        """Return an image payload, or None when no file exists."""
        path = self._image_path(image_id)
        data = _read_json(path, default=None)
        if data is not None and not isinstance(data, dict):
            raise PersistenceFailure(f"{path} does not hold an object")
        return data

    def delete_image(self, image_id: str) -> None:
        """Remove an image file if present."""
        try:
            self._image_path(image_id).unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceFailure(f"Cannot delete image {image_id}: {exc}") from exc

    def clear_all(self) -> None:
        """Remove the entries and settings files and every image file."""
        try:
            self.entries_path.unlink(missing_ok=True)
            self.settings_path.unlink(missing_ok=True)
            if self.images_dir.exists():
                for path in self.images_dir.iterdir():
                    if path.is_file():
                        path.unlink()
        except OSError as exc:
            raise PersistenceFailure(f"Cannot clear {self.data_dir}: {exc}") from exc

    def _image_path(self, image_id: str) -> Path:
        name = Path(image_id).name
        if not name or name != image_id:
            raise PersistenceFailure(f"Invalid image id: {image_id!r}")
        return self.images_dir / f"{name}.json"


def _read_json(path: Path, default: object) -> object:
    try:
        with path.open(encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError:
        return default
    except (OSError, ValueError) as exc:
        logger.exception("Failed to read %s", path)
        raise PersistenceFailure(f"Cannot read {path}: {exc}") from exc


def _write_json(path: Path, data: object, indent: int | None = None) -> None:
    """Write JSON to a temp file in the same directory, then swap it in."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=indent)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except (OSError, TypeError, ValueError) as exc:
        raise PersistenceFailure(f"Cannot write {path}: {exc}") from exc
