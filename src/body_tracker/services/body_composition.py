"""Jackson/Pollock 3-site body-fat estimation."""

from collections.abc import Mapping

from body_tracker.domain.entries import (
    FEMALE,
    MALE,
    FemaleSkinfolds,
    MaleSkinfolds,
    SkinfoldSet,
    to_float,
)

MIN_BODY_FAT = 3.0
MAX_BODY_FAT = 60.0


def calculate_body_fat(
    gender: str | None,
    age: int | float | None,
    skinfolds: SkinfoldSet | Mapping[str, object] | None,
) -> float | None:
    """Estimate body-fat percent from three skinfolds, age and gender.

    Returns None when any input is missing or not a positive number. The
    Siri result is rounded to one decimal and clipped to [3, 60].
    """
    age_value = to_float(age)
    if gender not in (MALE, FEMALE) or not age_value or age_value <= 0:
        return None
    sites = _site_values(gender, skinfolds)
    if sites is None:
        return None
    total = sum(sites)
    if gender == MALE:
        density = (
            1.10938 - 0.0008267 * total + 0.0000016 * total**2 - 0.0002574 * age_value
        )
    else:
        density = (
            1.0994921
            - 0.0009929 * total
            + 0.0000023 * total**2
            - 0.0001392 * age_value
        )
    percent = round(495 / density - 450, 1)
    return max(MIN_BODY_FAT, min(MAX_BODY_FAT, percent))


def _site_values(
    gender: str, skinfolds: SkinfoldSet | Mapping[str, object] | None
) -> list[float] | None:
    if skinfolds is None:
        return None
    if isinstance(skinfolds, MaleSkinfolds | FemaleSkinfolds):
        if skinfolds.gender != gender:
            return None
        raw = [getattr(skinfolds, site) for site in skinfolds.sites]
    elif isinstance(skinfolds, Mapping):
        sites = MaleSkinfolds.sites if gender == MALE else FemaleSkinfolds.sites
        raw = [skinfolds.get(site) for site in sites]
    else:
        return None
    values = [to_float(value) for value in raw]
    if any(value is None or value <= 0 for value in values):
        return None
    return values
