"""JSON and CSV import/export of the full dataset."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from uuid import uuid4

from body_tracker.domain.entries import (
    FEMALE,
    MALE,
    Entry,
    entry_from_record,
    entry_to_record,
    image_from_record,
    image_to_record,
    settings_changes_from_record,
    settings_to_record,
)
from body_tracker.domain.errors import InvalidImportFormat
from body_tracker.services.entries import MeasurementRepository

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0.0"
CSV_BOM = "\ufeff"
CSV_DELIMITER = ";"
CSV_HEADERS = (
    "Datum",
    "Gewicht (kg)",
    "Körperfett (%)",
    "Geschlecht",
    "Alter",
    "Brust (mm)",
    "Bauch (mm)",
    "Trizeps (mm)",
    "Hüfte (mm)",
    "Oberschenkel (mm)",
    "Notizen",
)
GENDER_LABELS = {MALE: "Männlich", FEMALE: "Weiblich"}


@dataclass
class TransferService:
    """Backup and migration codec for entries, settings and images."""

    repository: MeasurementRepository

    def export_data(self) -> dict[str, object]:
        """Return the export document with images inlined per entry."""
        entries: list[dict[str, object]] = []
        for entry in self.repository.get_entries():
            record = entry_to_record(entry)
            if entry.images:
                record["imageData"] = self._inline_images(entry)
            entries.append(record)
        return {
            "version": EXPORT_VERSION,
            "exportDate": datetime.now(tz=UTC).isoformat(),
            "entries": entries,
            "settings": settings_to_record(self.repository.get_settings()),
        }

    def export_csv(self) -> str:
        """Return the entries as a semicolon-delimited table."""
        lines = [CSV_DELIMITER.join(CSV_HEADERS)]
        for entry in self.repository.get_entries():
            lines.append(CSV_DELIMITER.join(_csv_row(entry)))
        return "\n".join(lines)

    def export_csv_bytes(self) -> bytes:
        """Return the CSV document as UTF-8 with a byte-order mark."""
        return (CSV_BOM + self.export_csv()).encode("utf-8")

    async def import_data(self, document: object) -> int:
        """Replace all stored data with the document contents.

        Entries keep their ids when present; inline images are stored under
        fresh ids. Returns the number of imported entries.
        """
        raw_entries = document.get("entries") if isinstance(document, Mapping) else None
        if not isinstance(raw_entries, list):
            raise InvalidImportFormat("Invalid data format: entries must be a list")
        raw_images = document.get("images")
        image_map = raw_images if isinstance(raw_images, Mapping) else {}
        parsed = _with_unique_ids(
            [_parse_import_entry(raw, image_map) for raw in raw_entries]
        )

        await self.repository.clear_all_data()
        restored: list[Entry] = []
        for entry, payloads in parsed:
            image_ids = [
                self.repository.save_image(image_from_record(payload))
                for payload in payloads
            ]
            restored.append(replace(entry, images=tuple(image_ids)))
        self.repository.restore_entries(restored)

        settings = document.get("settings")
        if isinstance(settings, Mapping):
            self.repository.save_settings(settings_changes_from_record(settings))
        logger.info("Imported %d entries", len(restored))
        return len(restored)

    def _inline_images(self, entry: Entry) -> list[dict[str, object]]:
        payloads: list[dict[str, object]] = []
        for image_id in entry.images:
            image = self.repository.get_image(image_id)
            if image is None:
                logger.warning("Image %s of entry %s is missing", image_id, entry.id)
                continue
            payloads.append(image_to_record(image))
        return payloads


def _parse_import_entry(
    raw: object, image_map: Mapping
) -> tuple[Entry, list[Mapping[str, object]]]:
    if not isinstance(raw, Mapping):
        raise InvalidImportFormat("Invalid data format: entry must be an object")
    inline = raw.get("imageData")
    if isinstance(inline, list):
        payloads = [payload for payload in inline if isinstance(payload, Mapping)]
    else:
        payloads = [
            image_map[image_id]
            for image_id in raw.get("images") or []
            if isinstance(image_map.get(image_id), Mapping)
        ]
    record = {
        **raw,
        "id": raw.get("id") or str(uuid4()),
        "images": [],
        "createdAt": raw.get("createdAt") or datetime.now(tz=UTC).isoformat(),
    }
    try:
        entry = entry_from_record(record)
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidImportFormat(f"Invalid entry {raw.get('id')!r}: {exc}") from exc
    return entry, payloads


def _with_unique_ids(
    parsed: list[tuple[Entry, list[Mapping[str, object]]]],
) -> list[tuple[Entry, list[Mapping[str, object]]]]:
    """Give every repeat of an already used id a fresh one."""
    seen: set[str] = set()
    unique: list[tuple[Entry, list[Mapping[str, object]]]] = []
    for entry, payloads in parsed:
        if entry.id in seen:
            fresh_id = str(uuid4())
            logger.warning("Duplicate entry id %s imported as %s", entry.id, fresh_id)
            entry = replace(entry, id=fresh_id)
        seen.add(entry.id)
        unique.append((entry, payloads))
    return unique


def _csv_row(entry: Entry) -> list[str]:
    sites = {}
    if entry.skinfolds is not None:
        sites = {site: getattr(entry.skinfolds, site) for site in entry.skinfolds.sites}
    notes = entry.notes.replace('"', '""')
    return [
        _format_local_datetime(entry.date),
        _format_number(entry.weight),
        _format_number(entry.body_fat),
        GENDER_LABELS.get(entry.gender or "", ""),
        "" if entry.age is None else str(entry.age),
        _format_number(sites.get("chest")),
        _format_number(sites.get("abdomen")),
        _format_number(sites.get("triceps")),
        _format_number(sites.get("suprailiac")),
        _format_number(sites.get("thigh")),
        f'"{notes}"',
    ]


def _format_local_datetime(value: datetime) -> str:
    local = value.astimezone()
    return f"{local.day}.{local.month}.{local.year}, {local:%H:%M:%S}"


def _format_number(value: float | None) -> str:
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return str(value)
