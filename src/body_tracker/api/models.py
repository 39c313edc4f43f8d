"""Pydantic models for the HTTP bridge payloads."""

import base64
import binascii
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from body_tracker.domain.entries import EntryDraft, ImageUpload, parse_skinfolds
from body_tracker.domain.errors import ValidationFailure


class ImagePayload(BaseModel):
    """Base64-encoded image file."""

    name: str
    data: str
    content_type: str | None = Field(default=None, alias="contentType")

    model_config = ConfigDict(populate_by_name=True)

    def to_upload(self) -> ImageUpload:
        """Decode the payload into an upload."""
        raw = self.data.split(",", 1)[1] if self.data.startswith("data:") else self.data
        try:
            content = base64.b64decode(raw, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationFailure(f"Image {self.name} is not valid base64") from exc
        return ImageUpload(
            name=self.name, content=content, content_type=self.content_type
        )


class SkinfoldPayload(BaseModel):
    """Skinfold sites in millimetres; which ones apply depends on gender."""

    chest: float | None = None
    abdomen: float | None = None
    triceps: float | None = None
    suprailiac: float | None = None
    thigh: float | None = None


class EntryCreateRequest(BaseModel):
    """Payload for a new measurement."""

    date: datetime
    weight: float
    body_fat: float | None = Field(default=None, alias="bodyFat")
    use_caliper: bool = Field(default=False, alias="useCaliper")
    gender: Literal["male", "female"] | None = None
    age: int | None = None
    skinfolds: SkinfoldPayload | None = None
    notes: str = ""
    images: list[ImagePayload] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    def to_draft(self) -> EntryDraft:
        """Convert to a draft; manual body fat is dropped for caliper input."""
        uploads = tuple(image.to_upload() for image in self.images)
        if self.use_caliper:
            return EntryDraft(
                date=self.date,
                weight=self.weight,
                gender=self.gender,
                age=self.age,
                skinfolds=_skinfolds(self.gender, self.skinfolds),
                notes=self.notes,
                image_files=uploads,
            )
        return EntryDraft(
            date=self.date,
            weight=self.weight,
            body_fat=self.body_fat,
            notes=self.notes,
            image_files=uploads,
        )


class EntryUpdateRequest(BaseModel):
    """Partial changes to a measurement."""

    date: datetime | None = None
    weight: float | None = None
    body_fat: float | None = Field(default=None, alias="bodyFat")
    gender: Literal["male", "female"] | None = None
    age: int | None = None
    skinfolds: SkinfoldPayload | None = None
    notes: str | None = None
    images: list[str] | None = None

    model_config = ConfigDict(populate_by_name=True)

    def to_changes(self) -> dict[str, object]:
        """Return only the supplied fields, keyed by entry field name."""
        changes: dict[str, object] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if name == "skinfolds":
                gender = self.gender if "gender" in self.model_fields_set else None
                value = _skinfolds(gender, value)
            changes[name] = value
        return changes


class SettingsUpdateRequest(BaseModel):
    """Partial settings changes."""

    goal_weight: float | None = Field(default=None, alias="goalWeight")
    goal_body_fat: float | None = Field(default=None, alias="goalBodyFat")
    theme: Literal["light", "dark"] | None = None
    default_gender: Literal["male", "female"] | None = Field(
        default=None, alias="defaultGender"
    )
    default_age: int | None = Field(default=None, alias="defaultAge")

    model_config = ConfigDict(populate_by_name=True)

    def to_changes(self) -> dict[str, object]:
        """Return only the supplied fields."""
        return {name: getattr(self, name) for name in self.model_fields_set}


def _skinfolds(gender: str | None, payload: SkinfoldPayload | None) -> object:
    if payload is None:
        return None
    raw = payload.model_dump(exclude_none=True)
    if gender is None:
        return raw
    return parse_skinfolds(gender, raw)
