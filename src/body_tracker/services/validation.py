"""Boundary validation for entry input."""

from body_tracker.domain.entries import GENDERS, EntryDraft, to_float
from body_tracker.domain.errors import ValidationFailure

MIN_WEIGHT = 20.0
MAX_WEIGHT = 300.0
MIN_AGE = 10
MAX_AGE = 100
MIN_BODY_FAT = 3.0
MAX_BODY_FAT = 60.0
MAX_IMAGES = 5


def validate_draft(draft: EntryDraft, use_caliper: bool) -> None:
    """Raise ValidationFailure when a draft is out of domain."""
    validate_weight(draft.weight)
    if draft.date is None:
        raise ValidationFailure("A measurement date is required")
    if len(draft.image_files) > MAX_IMAGES:
        raise ValidationFailure(f"At most {MAX_IMAGES} images are allowed")
    if use_caliper:
        validate_caliper(draft.gender, draft.age, draft.skinfolds)
    elif draft.body_fat is not None:
        validate_body_fat(draft.body_fat)


def validate_weight(weight: object) -> None:
    """Raise unless weight lies within 20-300 kg."""
    value = to_float(weight)
    if value is None or not MIN_WEIGHT <= value <= MAX_WEIGHT:
        raise ValidationFailure("Weight must be between 20 and 300 kg")


def validate_body_fat(body_fat: object) -> None:
    """Raise unless body fat lies within 3-60 percent."""
    value = to_float(body_fat)
    if value is None or not MIN_BODY_FAT <= value <= MAX_BODY_FAT:
        raise ValidationFailure("Body fat must be between 3 and 60 %")


def validate_caliper(gender: object, age: object, skinfolds: object) -> None:
    """Raise unless gender, age and all three skinfold sites are usable."""
    if gender not in GENDERS:
        raise ValidationFailure("Please select a gender")
    value = to_float(age)
    if value is None or not MIN_AGE <= value <= MAX_AGE:
        raise ValidationFailure("Please enter a valid age (10-100)")
    sites = getattr(skinfolds, "sites", ())
    if getattr(skinfolds, "gender", None) != gender or not all(
        (to_float(getattr(skinfolds, site)) or 0) > 0 for site in sites
    ):
        raise ValidationFailure("Please enter all three skinfold measurements")
