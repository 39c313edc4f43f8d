"""Domain models for measurement entries, settings and image assets."""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar

MALE = "male"
FEMALE = "female"
GENDERS = (MALE, FEMALE)

LIGHT_THEME = "light"
DARK_THEME = "dark"


@dataclass(frozen=True)
class MaleSkinfolds:
    """Jackson/Pollock male sites, in millimetres."""

    gender: ClassVar[str] = MALE
    sites: ClassVar[tuple[str, ...]] = ("chest", "abdomen", "thigh")

    chest: float | None
    abdomen: float | None
    thigh: float | None


@dataclass(frozen=True)
class FemaleSkinfolds:
    """Jackson/Pollock female sites, in millimetres."""

    gender: ClassVar[str] = FEMALE
    sites: ClassVar[tuple[str, ...]] = ("triceps", "suprailiac", "thigh")

    triceps: float | None
    suprailiac: float | None
    thigh: float | None


SkinfoldSet = MaleSkinfolds | FemaleSkinfolds


@dataclass(frozen=True)
class ImageAsset:
    """Encoded image payload stored out-of-line from its entry."""

    full: str
    thumbnail: str
    original_name: str


@dataclass(frozen=True)
class ImageUpload:
    """Raw image file handed to the repository for encoding."""

    name: str
    content: bytes
    content_type: str | None = None


@dataclass(frozen=True)
class Entry:
    """A single measurement event."""

    id: str
    date: datetime
    weight: float
    body_fat: float | None
    gender: str | None
    age: int | None
    skinfolds: SkinfoldSet | None
    notes: str
    images: tuple[str, ...]
    created_at: datetime


@dataclass(frozen=True)
class EntryDraft:
    """User-supplied fields for a new entry."""

    date: datetime
    weight: float
    body_fat: float | None = None
    gender: str | None = None
    age: int | None = None
    skinfolds: SkinfoldSet | None = None
    notes: str = ""
    image_files: tuple[ImageUpload, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TrackerSettings:
    """Singleton user preferences."""

    goal_weight: float | None = None
    goal_body_fat: float | None = None
    theme: str = LIGHT_THEME
    default_gender: str | None = None
    default_age: int | None = None


_SETTINGS_KEYS = {
    "goalWeight": "goal_weight",
    "goalBodyFat": "goal_body_fat",
    "theme": "theme",
    "defaultGender": "default_gender",
    "defaultAge": "default_age",
}


def parse_timestamp(value: object) -> datetime:
    """Parse an ISO-8601 timestamp, reading naive values as local time."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value)
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")
    if parsed.tzinfo is None:
        return parsed.astimezone()
    return parsed


def to_float(value: object) -> float | None:
    """Coerce a finite number or numeric string, returning None otherwise."""
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, int | float):
            number = float(value)
        elif isinstance(value, str):
            number = float(value.strip().replace(",", "."))
        else:
            return None
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def to_int(value: object) -> int | None:
    """Coerce a stored integer or numeric string, returning None otherwise."""
    number = to_float(value)
    if number is None:
        return None
    return int(number)


def parse_skinfolds(gender: str | None, raw: object) -> SkinfoldSet | None:
    """Build the skinfold variant matching ``gender`` from a raw mapping."""
    if raw is None:
        return None
    if isinstance(raw, MaleSkinfolds | FemaleSkinfolds):
        if gender is not None and raw.gender != gender:
            return None
        return raw
    if not isinstance(raw, Mapping):
        return None
    resolved = gender or _infer_gender(raw)
    if resolved == MALE:
        return MaleSkinfolds(
            chest=to_float(raw.get("chest")),
            abdomen=to_float(raw.get("abdomen")),
            thigh=to_float(raw.get("thigh")),
        )
    if resolved == FEMALE:
        return FemaleSkinfolds(
            triceps=to_float(raw.get("triceps")),
            suprailiac=to_float(raw.get("suprailiac")),
            thigh=to_float(raw.get("thigh")),
        )
    return None


def _infer_gender(raw: Mapping) -> str | None:
    if "chest" in raw or "abdomen" in raw:
        return MALE
    if "triceps" in raw or "suprailiac" in raw:
        return FEMALE
    return None


def skinfolds_to_record(skinfolds: SkinfoldSet | None) -> dict[str, object] | None:
    """Serialize a skinfold set to its wire mapping."""
    if skinfolds is None:
        return None
    return {site: getattr(skinfolds, site) for site in skinfolds.sites}


def entry_to_record(entry: Entry) -> dict[str, object]:
    """Serialize an entry to the camelCase wire format."""
    return {
        "id": entry.id,
        "date": entry.date.isoformat(),
        "weight": entry.weight,
        "bodyFat": entry.body_fat,
        "gender": entry.gender,
        "age": entry.age,
        "skinfolds": skinfolds_to_record(entry.skinfolds),
        "notes": entry.notes,
        "images": list(entry.images),
        "createdAt": entry.created_at.isoformat(),
    }


def entry_from_record(record: Mapping[str, object]) -> Entry:
    """Parse a wire record into an entry."""
    gender = record.get("gender")
    gender = gender if gender in GENDERS else None
    weight = to_float(record.get("weight"))
    if weight is None:
        raise ValueError(f"Entry {record.get('id')!r} has no weight")
    images = record.get("images") or []
    return Entry(
        id=str(record["id"]),
        date=parse_timestamp(record.get("date")),
        weight=weight,
        body_fat=to_float(record.get("bodyFat")),
        gender=gender,
        age=to_int(record.get("age")),
        skinfolds=parse_skinfolds(gender, record.get("skinfolds")),
        notes=str(record.get("notes") or ""),
        images=tuple(str(image_id) for image_id in images),
        created_at=parse_timestamp(record.get("createdAt")),
    )


def settings_to_record(settings: TrackerSettings) -> dict[str, object]:
    """Serialize settings to the camelCase wire format."""
    return {
        wire_key: getattr(settings, field_name)
        for wire_key, field_name in _SETTINGS_KEYS.items()
    }


def settings_changes_from_record(record: Mapping[str, object]) -> dict[str, object]:
    """Map the known camelCase keys present in ``record`` to field names."""
    changes: dict[str, object] = {}
    for wire_key, field_name in _SETTINGS_KEYS.items():
        if wire_key in record:
            changes[field_name] = record[wire_key]
    return changes


def merge_settings(
    current: TrackerSettings, changes: Mapping[str, object]
) -> TrackerSettings:
    """Merge partial changes over current settings."""
    merged = {
        "goal_weight": current.goal_weight,
        "goal_body_fat": current.goal_body_fat,
        "theme": current.theme,
        "default_gender": current.default_gender,
        "default_age": current.default_age,
    }
    for key, value in changes.items():
        if key in merged:
            merged[key] = value
    theme = merged["theme"]
    default_gender = merged["default_gender"]
    return TrackerSettings(
        goal_weight=to_float(merged["goal_weight"]),
        goal_body_fat=to_float(merged["goal_body_fat"]),
        theme=theme if theme in (LIGHT_THEME, DARK_THEME) else LIGHT_THEME,
        default_gender=default_gender if default_gender in GENDERS else None,
        default_age=to_int(merged["default_age"]),
    )


def settings_from_record(record: Mapping[str, object]) -> TrackerSettings:
    """Parse a stored settings record, filling absent fields with defaults."""
    return merge_settings(TrackerSettings(), settings_changes_from_record(record))


def image_to_record(image: ImageAsset) -> dict[str, object]:
    """Serialize an image asset to its wire mapping."""
    return {
        "full": image.full,
        "thumbnail": image.thumbnail,
        "originalName": image.original_name,
    }


def image_from_record(record: Mapping[str, object]) -> ImageAsset:
    """Parse a stored image payload."""
    return ImageAsset(
        full=str(record.get("full") or ""),
        thumbnail=str(record.get("thumbnail") or ""),
        original_name=str(record.get("originalName") or ""),
    )
