"""Sample data for trying out the tracker."""

import logging
import random
from datetime import datetime, timedelta

from body_tracker.domain.entries import MALE, EntryDraft, MaleSkinfolds
from body_tracker.services.entries import MeasurementRepository

logger = logging.getLogger(__name__)

DEMO_AGE = 35
DEMO_SETTINGS: dict[str, object] = {
    "goal_weight": 75.0,
    "goal_body_fat": 15.0,
    "theme": "light",
    "default_gender": MALE,
    "default_age": DEMO_AGE,
}
DEMO_NOTES = (
    "",
    "",
    "",
    "Fasted measurement",
    "After training",
    "Drank a lot of water",
    "Little sleep",
    "Cheat day yesterday",
    "Feeling good today",
    "Slightly tired",
    "After breakfast",
    "Before the gym",
    "Measured 3x, averaged",
    "Before cardio",
)


def build_demo_drafts(
    now: datetime | None = None, days: int = 60, rng: random.Random | None = None
) -> list[EntryDraft]:
    """Return morning caliper measurements with a gentle downward trend."""
    rng = rng or random.Random()
    today = (now or datetime.now().astimezone()).replace(
        hour=7, minute=30, second=0, microsecond=0
    )
    weight, chest, abdomen, thigh = 82.5, 15.0, 25.0, 18.0
    drafts: list[EntryDraft] = []
    for offset in range(days, -1, -1):
        weight = max(70.0, weight - 0.05 + (rng.random() - 0.5) * 0.8)
        chest = max(5.0, chest - 0.02 + (rng.random() - 0.5) * 1.0)
        abdomen = max(8.0, abdomen - 0.03 + (rng.random() - 0.5) * 1.5)
        thigh = max(5.0, thigh - 0.02 + (rng.random() - 0.5) * 1.0)
        # roughly seven measurements in ten days
        if rng.random() > 0.7:
            continue
        drafts.append(
            EntryDraft(
                date=today - timedelta(days=offset),
                weight=round(weight, 1),
                gender=MALE,
                age=DEMO_AGE,
                skinfolds=MaleSkinfolds(
                    chest=round(chest, 1),
                    abdomen=round(abdomen, 1),
                    thigh=round(thigh, 1),
                ),
                notes=rng.choice(DEMO_NOTES),
            )
        )
    return drafts


async def seed_demo_data(
    repository: MeasurementRepository,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> int:
    """Add the demo series and goals to the repository."""
    drafts = build_demo_drafts(now=now, rng=rng)
    for draft in drafts:
        await repository.add_entry(draft)
    repository.save_settings(DEMO_SETTINGS)
    logger.info("Seeded %d demo entries", len(drafts))
    return len(drafts)
