"""Statistics over measurement entries."""

import calendar
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from body_tracker.domain.entries import Entry
from body_tracker.domain.stats import StatisticsSummary, StatsRange

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class EntrySource(Protocol):
    """Read interface for the current entry snapshot."""

    def get_entries(self) -> list[Entry]:
        """Return all entries."""


@dataclass
class StatisticsService:
    """Service computing summary metrics for a time window."""

    repository: EntrySource

    def get_statistics(
        self, range_: StatsRange | str = StatsRange.ALL, now: datetime | None = None
    ) -> StatisticsSummary | None:
        """Return the summary for the window, or None when it is empty."""
        entries = self.repository.get_entries()
        if not entries:
            return None
        cutoff = window_start(StatsRange(range_), now or datetime.now().astimezone())
        in_window = sorted(
            (entry for entry in entries if entry.date >= cutoff),
            key=lambda entry: entry.date,
        )
        if not in_window:
            return None
        return _summarize(in_window)


def window_start(range_: StatsRange, now: datetime) -> datetime:
    """Return the inclusive start of a statistics window."""
    if now.tzinfo is None:
        now = now.astimezone()
    if range_ is StatsRange.WEEK:
        return now - timedelta(days=7)
    if range_ is StatsRange.MONTH:
        year, month = (now.year - 1, 12) if now.month == 1 else (now.year, now.month - 1)
        return _midnight(now, year, month)
    if range_ is StatsRange.YEAR:
        return _midnight(now, now.year - 1, now.month)
    return EPOCH


def _midnight(now: datetime, year: int, month: int) -> datetime:
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(
        year=year, month=month, day=day, hour=0, minute=0, second=0, microsecond=0
    )


def _summarize(entries: list[Entry]) -> StatisticsSummary:
    earliest = entries[0]
    latest = entries[-1]
    weights = [entry.weight for entry in entries]
    body_fats = [entry.body_fat for entry in entries if entry.body_fat is not None]
    body_fat_change = None
    if latest.body_fat is not None and earliest.body_fat is not None:
        body_fat_change = latest.body_fat - earliest.body_fat
    return StatisticsSummary(
        current_weight=latest.weight,
        current_body_fat=latest.body_fat,
        weight_change=latest.weight - earliest.weight,
        body_fat_change=body_fat_change,
        min_weight=min(weights),
        max_weight=max(weights),
        avg_weight=sum(weights) / len(weights),
        min_body_fat=min(body_fats) if body_fats else None,
        max_body_fat=max(body_fats) if body_fats else None,
        avg_body_fat=sum(body_fats) / len(body_fats) if body_fats else None,
        total_entries=len(entries),
        last_entry_date=latest.date,
        entries=entries,
    )
