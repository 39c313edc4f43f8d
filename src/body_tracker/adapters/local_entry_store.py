"""SQLite entry store laid out like the browser's local storage."""

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path

from body_tracker.domain.errors import PersistenceFailure
from body_tracker.services.entries import EntryStore

logger = logging.getLogger(__name__)

ENTRIES_KEY = "bodytracker_entries"
SETTINGS_KEY = "bodytracker_settings"
SCHEMA_VERSION = 1


@dataclass
class LocalEntryStore(EntryStore):
    """Key-value blobs for entries/settings plus an image object store."""

    path: Path | str
    _connection: sqlite3.Connection | None = field(
        default=None, init=False, repr=False
    )

    def open(self) -> None:
        """Open the database and upgrade its schema when needed."""
        if self._connection is not None:
            return
        try:
            if str(self.path) != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(str(self.path))
            _upgrade(connection)
        except (OSError, sqlite3.Error) as exc:
            raise PersistenceFailure(f"Cannot open local store: {exc}") from exc
        self._connection = connection
        logger.info("Local store ready at %s", self.path)

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def get_entries(self) -> list[dict[str, object]]:
        """Return the entries blob, empty when unset."""
        data = self._get_item(ENTRIES_KEY, default=[])
        if not isinstance(data, list):
            raise PersistenceFailure(f"{ENTRIES_KEY} does not hold a list")
        return data

    def save_entries(self, entries: list[dict[str, object]]) -> None:
        """Replace the entries blob."""
        self._set_item(ENTRIES_KEY, entries)

    def get_settings(self) -> dict[str, object]:
        """Return the settings blob, empty when unset."""
        data = self._get_item(SETTINGS_KEY, default={})
        if not isinstance(data, dict):
            raise PersistenceFailure(f"{SETTINGS_KEY} does not hold an object")
        return data

    def save_settings(self, settings: dict[str, object]) -> None:
        """Replace the settings blob."""
        self._set_item(SETTINGS_KEY, settings)

    def save_image(self, image_id: str, payload: dict[str, object]) -> None:
        """Put an image record into the image store."""
        self._execute(
            "INSERT OR REPLACE INTO images (id, record) VALUES (?, ?)",
            (image_id, _dumps({"id": image_id, **payload})),
        )

    def get_image(self, image_id: str) -> dict[str, object] | None:
        """Return an image record without its key, if stored."""
        row = self._execute(
            "SELECT record FROM images WHERE id = ?", (image_id,)
        ).fetchone()
        if row is None:
            return None
        record = _loads(row[0])
        if not isinstance(record, dict):
            raise PersistenceFailure(f"Image {image_id} does not hold an object")
        record.pop("id", None)
        return record

    def delete_image(self, image_id: str) -> None:
        """Delete an image record; a store that was never opened is a no-op."""
        if self._connection is None:
            return
        self._execute("DELETE FROM images WHERE id = ?", (image_id,))

    def clear_all(self) -> None:
        """Remove both blobs and every image record."""
        connection = self._require_connection()
        try:
            with connection:
                connection.execute(
                    "DELETE FROM local_storage WHERE key IN (?, ?)",
                    (ENTRIES_KEY, SETTINGS_KEY),
                )
                connection.execute("DELETE FROM images")
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Local store clear failed: {exc}") from exc

    def _get_item(self, key: str, default: object) -> object:
        row = self._execute(
            "SELECT value FROM local_storage WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return default
        return _loads(row[0])

    def _set_item(self, key: str, value: object) -> None:
        self._execute(
            "INSERT OR REPLACE INTO local_storage (key, value) VALUES (?, ?)",
            (key, _dumps(value)),
        )

    def _execute(self, sql: str, params: tuple[object, ...]) -> sqlite3.Cursor:
        connection = self._require_connection()
        try:
            with connection:
                return connection.execute(sql, params)
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Local store query failed: {exc}") from exc

    def _require_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise PersistenceFailure("Local store not initialized")
        return self._connection


def _upgrade(connection: sqlite3.Connection) -> None:
    version = connection.execute("PRAGMA user_version").fetchone()[0]
    with connection:
        connection.execute(
            "CREATE TABLE IF NOT EXISTS local_storage "
            "(key TEXT PRIMARY KEY, value TEXT NOT NULL)"
        )
        if version < SCHEMA_VERSION:
            connection.execute(
                "CREATE TABLE IF NOT EXISTS images "
                "(id TEXT PRIMARY KEY, record TEXT NOT NULL)"
            )
            connection.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")


def _dumps(value: object) -> str:
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise PersistenceFailure(f"Value is not serializable: {exc}") from exc


def _loads(raw: str) -> object:
    try:
        return json.loads(raw)
    except ValueError as exc:
        logger.exception("Corrupt local store value")
        raise PersistenceFailure(f"Corrupt local store value: {exc}") from exc
