"""Multi-day history series and summary statistics."""

from dataclasses import dataclass
from datetime import timedelta

from calorie_tracker.domain.profile import DailyTarget
from calorie_tracker.domain.progress import (
    DailyProgress,
    DayDeviation,
    HistoryStatistics,
)
from calorie_tracker.services.clock import parse_date_key
from calorie_tracker.services.daily import DailyAggregator

WEEK_DAYS = 7
MONTH_DAYS = 30
ADHERENCE_TOLERANCE = 0.1


@dataclass
class HistoryService:
    """Builds day-by-day history from the ledgers."""

    aggregator: DailyAggregator

    def get_history(self, days: int) -> list[DailyProgress]:
        """Return one progress value per date for the trailing days, oldest first."""
        today = parse_date_key(self.aggregator.today_key())
        return [
            self.aggregator.compute_progress(
                (today - timedelta(days=offset)).isoformat()
            )
            for offset in reversed(range(max(days, 0)))
        ]


def compute_statistics(
    history: list[DailyProgress], target: DailyTarget | None
) -> HistoryStatistics:
    """Summarise a history series; target-relative values need a target."""
    week = history[-WEEK_DAYS:]
    month = history[-MONTH_DAYS:]
    best_day, worst_day = best_and_worst_days(month, target)
    return HistoryStatistics(
        weekly_average_calories=_mean([day.totals.calories for day in week]),
        monthly_average_calories=_mean([day.totals.calories for day in month]),
        weekly_average_protein=_mean([day.totals.protein for day in week]),
        weekly_average_carbs=_mean([day.totals.carbs for day in week]),
        weekly_average_fat=_mean([day.totals.fat for day in week]),
        weekly_adherence=adherence(week, target),
        monthly_adherence=adherence(month, target),
        streak=streak(history),
        best_day=best_day,
        worst_day=worst_day,
    )


def adherence(days: list[DailyProgress], target: DailyTarget | None) -> float:
    """Return the percentage of days within 10% of the calorie target."""
    if not days or target is None or target.calories <= 0:
        return 0.0
    band = target.calories * ADHERENCE_TOLERANCE
    within = sum(
        1 for day in days if abs(day.totals.calories - target.calories) <= band
    )
    return within / len(days) * 100


def streak(history: list[DailyProgress]) -> int:
    """Count consecutive days with entries, walking back from the latest."""
    count = 0
    for day in sorted(history, key=lambda item: item.date, reverse=True):
        if not day.has_entries:
            break
        count += 1
    return count


def best_and_worst_days(
    days: list[DailyProgress], target: DailyTarget | None
) -> tuple[DayDeviation | None, DayDeviation | None]:
    """Return the days closest to and farthest from the calorie target."""
    if not days or target is None:
        return None, None
    deviations = [
        DayDeviation(
            date=day.date,
            calories=day.totals.calories,
            deviation=abs(day.totals.calories - target.calories),
        )
        for day in days
    ]
    best = min(deviations, key=lambda item: item.deviation)
    worst = max(deviations, key=lambda item: item.deviation)
    return best, worst


def rolling_average(
    history: list[DailyProgress], window: int = WEEK_DAYS
) -> list[float]:
    """Return the trailing mean of calories ending at each day."""
    if window <= 0:
        raise ValueError(f"Window must be positive, got {window}")
    calories = [day.totals.calories for day in history]
    return [
        _mean(calories[max(0, index - window + 1) : index + 1])
        for index in range(len(calories))
    ]


def _mean(values: list[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)
