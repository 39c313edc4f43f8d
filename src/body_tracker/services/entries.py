"""Measurement repository backed by a pluggable entry store."""

import asyncio
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Protocol
from uuid import uuid4

from body_tracker.domain.entries import (
    GENDERS,
    Entry,
    EntryDraft,
    ImageAsset,
    ImageUpload,
    TrackerSettings,
    entry_from_record,
    entry_to_record,
    image_from_record,
    image_to_record,
    merge_settings,
    parse_skinfolds,
    parse_timestamp,
    settings_from_record,
    settings_to_record,
    to_float,
    to_int,
)
from body_tracker.domain.errors import EntryNotFound, PersistenceFailure
from body_tracker.domain.stats import HistoryPage
from body_tracker.services.body_composition import calculate_body_fat
from body_tracker.services.images import ImageEncoder

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class EntryStore(Protocol):
    """Persistence interface for entries, settings and image payloads."""

    def open(self) -> None:
        """Prepare the store for use."""

    def close(self) -> None:
        """Release any resources held by the store."""

    def get_entries(self) -> list[dict[str, object]]:
        """Return all stored entry records."""

    def save_entries(self, entries: list[dict[str, object]]) -> None:
        """Replace the stored entry collection."""

    def get_settings(self) -> dict[str, object]:
        """Return the stored settings record, empty when unset."""

    def save_settings(self, settings: dict[str, object]) -> None:
        """Replace the stored settings record."""

    def save_image(self, image_id: str, payload: dict[str, object]) -> None:
        """Store an image payload under an identifier."""

    def get_image(self, image_id: str) -> dict[str, object] | None:
        """Return an image payload by identifier, if present."""

    def delete_image(self, image_id: str) -> None:
        """Delete an image payload; unknown identifiers are ignored."""

    def clear_all(self) -> None:
        """Delete every entry, setting and image."""


@dataclass
class MeasurementRepository:
    """Owns the entry and settings snapshot and writes through to the store."""

    store: EntryStore
    image_encoder: ImageEncoder
    _entries: list[Entry] = field(default_factory=list, init=False, repr=False)
    _settings: TrackerSettings = field(
        default_factory=TrackerSettings, init=False, repr=False
    )

    def init(self) -> None:
        """Open the store and load the snapshot."""
        self.store.open()
        records = self.store.get_entries()
        try:
            entries = [entry_from_record(record) for record in records]
        except (KeyError, TypeError, ValueError) as exc:
            raise PersistenceFailure(f"Stored entries are malformed: {exc}") from exc
        self._entries = _sorted_desc(entries)
        self._settings = settings_from_record(self.store.get_settings())
        logger.info("Loaded %d entries", len(self._entries))

    async def add_entry(self, draft: EntryDraft) -> Entry:
        """Create an entry, deriving body fat from skinfolds when possible."""
        skinfolds = parse_skinfolds(draft.gender, draft.skinfolds)
        body_fat = to_float(draft.body_fat)
        if skinfolds is not None and draft.gender and draft.age:
            calculated = calculate_body_fat(draft.gender, draft.age, skinfolds)
            if calculated is not None:
                body_fat = calculated
        image_ids = await self._store_images(draft.image_files)
        entry = Entry(
            id=str(uuid4()),
            date=parse_timestamp(draft.date),
            weight=float(draft.weight),
            body_fat=body_fat,
            gender=draft.gender if draft.gender in GENDERS else None,
            age=to_int(draft.age),
            skinfolds=skinfolds,
            notes=draft.notes or "",
            images=tuple(image_ids),
            created_at=datetime.now().astimezone(),
        )
        self._commit([*self._entries, entry])
        logger.info("Added entry %s with %d images", entry.id, len(image_ids))
        return entry

    async def update_entry(self, entry_id: str, changes: Mapping[str, object]) -> Entry:
        """Merge partial changes into an entry and recompute body fat."""
        current = self.get_entry_by_id(entry_id)
        if current is None:
            raise EntryNotFound(entry_id)
        gender = changes["gender"] if "gender" in changes else current.gender
        gender = gender if gender in GENDERS else None
        age = to_int(changes["age"]) if "age" in changes else current.age
        skinfolds = parse_skinfolds(
            gender,
            changes["skinfolds"] if "skinfolds" in changes else current.skinfolds,
        )
        body_fat = to_float(changes.get("body_fat")) or current.body_fat
        if skinfolds is not None and gender and age:
            calculated = calculate_body_fat(gender, age, skinfolds)
            if calculated is not None:
                body_fat = calculated
        updated = Entry(
            id=current.id,
            date=(
                parse_timestamp(changes["date"]) if changes.get("date") else current.date
            ),
            weight=to_float(changes.get("weight")) or current.weight,
            body_fat=body_fat,
            gender=gender,
            age=age,
            skinfolds=skinfolds,
            notes=(
                str(changes["notes"] or "") if "notes" in changes else current.notes
            ),
            images=(
                tuple(str(image_id) for image_id in changes["images"] or [])
                if "images" in changes
                else current.images
            ),
            created_at=current.created_at,
        )
        self._commit(
            [updated if entry.id == entry_id else entry for entry in self._entries]
        )
        logger.info("Updated entry %s", entry_id)
        return updated

    async def delete_entry(self, entry_id: str) -> list[str]:
        """Delete an entry and its images, returning image ids left behind."""
        entry = self.get_entry_by_id(entry_id)
        if entry is None:
            return []
        orphaned: list[str] = []
        for image_id in entry.images:
            try:
                self.store.delete_image(image_id)
            except PersistenceFailure:
                logger.warning(
                    "Failed to delete image %s of entry %s", image_id, entry_id
                )
                orphaned.append(image_id)
        self._commit([item for item in self._entries if item.id != entry_id])
        logger.info("Deleted entry %s", entry_id)
        return orphaned

    def restore_entries(self, entries: Iterable[Entry]) -> None:
        """Persist a complete entry collection in place of the snapshot."""
        self._commit(list(entries))

    def get_entries(self) -> list[Entry]:
        """Return all entries, newest first."""
        return list(self._entries)

    def get_entry_by_id(self, entry_id: str) -> Entry | None:
        """Return an entry by id, if present."""
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def get_entries_by_date_range(
        self, start: datetime, end: datetime
    ) -> list[Entry]:
        """Return entries dated within the inclusive range."""
        lower = parse_timestamp(start)
        upper = parse_timestamp(end)
        return [entry for entry in self._entries if lower <= entry.date <= upper]

    def search_entries(self, query: str) -> list[Entry]:
        """Return entries whose notes contain the query, ignoring case."""
        lowered = query.lower()
        return [
            entry
            for entry in self._entries
            if entry.notes and lowered in entry.notes.lower()
        ]

    def list_history(
        self,
        query: str | None = None,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> HistoryPage:
        """Filter entries like the history view and return one page."""
        entries = self.search_entries(query) if query else self.get_entries()
        if date_from is not None:
            lower = _day_bound(date_from, time.min)
            entries = [entry for entry in entries if entry.date >= lower]
        if date_to is not None:
            upper = _day_bound(date_to, time.max)
            entries = [entry for entry in entries if entry.date <= upper]
        per_page = max(per_page, 1)
        total_pages = math.ceil(len(entries) / per_page)
        current = max(1, min(page, total_pages or 1))
        start = (current - 1) * per_page
        return HistoryPage(
            entries=entries[start : start + per_page],
            page=current,
            total_pages=total_pages,
            total_entries=len(entries),
        )

    def get_settings(self) -> TrackerSettings:
        """Return the current settings."""
        return self._settings

    def save_settings(self, changes: Mapping[str, object]) -> TrackerSettings:
        """Merge partial changes into settings and persist them."""
        self._settings = merge_settings(self._settings, changes)
        self.store.save_settings(settings_to_record(self._settings))
        return self._settings

    def get_image(self, image_id: str) -> ImageAsset | None:
        """Return an image asset by id, if stored."""
        record = self.store.get_image(image_id)
        if record is None:
            return None
        return image_from_record(record)

    def save_image(self, asset: ImageAsset) -> str:
        """Store an image asset under a fresh id and return the id."""
        image_id = str(uuid4())
        self.store.save_image(image_id, image_to_record(asset))
        return image_id

    async def clear_all_data(self) -> None:
        """Remove every entry and image and reset settings."""
        self.store.clear_all()
        self._entries = []
        self._settings = TrackerSettings()
        logger.info("Cleared all data")

    async def _store_images(self, uploads: Iterable[ImageUpload]) -> list[str]:
        assets = await asyncio.gather(
            *(asyncio.to_thread(self.image_encoder.encode, upload) for upload in uploads)
        )
        return [self.save_image(asset) for asset in assets]

    def _commit(self, entries: list[Entry]) -> None:
        self._entries = _sorted_desc(entries)
        self.store.save_entries([entry_to_record(entry) for entry in self._entries])


def _sorted_desc(entries: list[Entry]) -> list[Entry]:
    return sorted(entries, key=lambda entry: entry.date, reverse=True)


def _day_bound(value: date | datetime, bound: time) -> datetime:
    if isinstance(value, datetime):
        return parse_timestamp(value)
    return datetime.combine(value, bound).astimezone()
