"""Domain models for statistics."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from body_tracker.domain.entries import Entry


class StatsRange(Enum):
    """Time windows available for summary statistics."""

    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"


@dataclass(frozen=True)
class StatisticsSummary:
    """Summary metrics over the entries of a time window."""

    current_weight: float
    current_body_fat: float | None
    weight_change: float
    body_fat_change: float | None
    min_weight: float
    max_weight: float
    avg_weight: float
    min_body_fat: float | None
    max_body_fat: float | None
    avg_body_fat: float | None
    total_entries: int
    last_entry_date: datetime
    entries: list[Entry]


@dataclass(frozen=True)
class HistoryPage:
    """One page of the filtered entry history."""

    entries: list[Entry]
    page: int
    total_pages: int
    total_entries: int
