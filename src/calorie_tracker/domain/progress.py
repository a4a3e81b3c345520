"""Derived progress and history statistics."""

from dataclasses import dataclass

from calorie_tracker.domain.entries import FoodEntry, NutritionTotals


@dataclass(frozen=True)
class DailyProgress:
    """Entries and totals for one calendar date."""

    date: str
    entries: list[FoodEntry]
    totals: NutritionTotals

    @property
    def has_entries(self) -> bool:
        """Return True when anything was logged on the date."""
        return bool(self.entries)


@dataclass(frozen=True)
class TargetPercentages:
    """Consumed amounts as a percentage of the daily target."""

    calories: float
    protein: float
    carbs: float
    fat: float
    sugar: float


@dataclass(frozen=True)
class DayDeviation:
    """A day's calories and distance from the calorie target."""

    date: str
    calories: float
    deviation: float


@dataclass(frozen=True)
class HistoryStatistics:
    """Summary statistics over a history series."""

    weekly_average_calories: float
    monthly_average_calories: float
    weekly_average_protein: float
    weekly_average_carbs: float
    weekly_average_fat: float
    weekly_adherence: float
    monthly_adherence: float
    streak: int
    best_day: DayDeviation | None
    worst_day: DayDeviation | None
