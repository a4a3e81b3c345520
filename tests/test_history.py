"""Tests for history series and statistics."""

import pytest

from calorie_tracker.domain.profile import DailyTarget
from calorie_tracker.services.daily import DailyAggregator
from calorie_tracker.services.history import (
    HistoryService,
    adherence,
    best_and_worst_days,
    compute_statistics,
    rolling_average,
    streak,
)
from tests.conftest import local_time, make_entry


def _log(aggregator: DailyAggregator, day: int, calories: float) -> None:
    aggregator.append_entry(
        make_entry(f"Meal {day}", calories, local_time(2024, 3, day, 12), protein=10)
    )


def test_history_has_one_record_per_day_oldest_first(
    history_service: HistoryService, aggregator: DailyAggregator
) -> None:
    _log(aggregator, 15, 1800)
    _log(aggregator, 10, 2100)

    history = history_service.get_history(30)

    assert len(history) == 30
    assert history[0].date == "2024-02-15"
    assert history[-1].date == "2024-03-15"
    assert history[-1].totals.calories == 1800
    assert history[-6].totals.calories == 2100
    assert sum(1 for day in history if day.has_entries) == 2


def test_history_zero_days_is_empty(history_service: HistoryService) -> None:
    assert history_service.get_history(0) == []


def test_adherence_boundary_is_inclusive(
    history_service: HistoryService, aggregator: DailyAggregator
) -> None:
    _log(aggregator, 14, 2200)
    _log(aggregator, 15, 2201)
    target = DailyTarget(calories=2000)

    history = history_service.get_history(2)

    assert adherence(history[:1], target) == 100
    assert adherence(history[1:], target) == 0
    assert adherence(history, target) == 50


def test_adherence_without_target_is_zero(history_service: HistoryService) -> None:
    history = history_service.get_history(7)

    assert adherence(history, None) == 0
    assert adherence(history, DailyTarget(calories=0)) == 0
    assert adherence([], DailyTarget(calories=2000)) == 0


def test_streak_stops_at_first_empty_day(
    history_service: HistoryService, aggregator: DailyAggregator
) -> None:
    for day in (15, 14, 13, 11):
        _log(aggregator, day, 1500)

    assert streak(history_service.get_history(10)) == 3


def test_streak_zero_when_today_empty(
    history_service: HistoryService, aggregator: DailyAggregator
) -> None:
    _log(aggregator, 14, 1500)

    assert streak(history_service.get_history(10)) == 0


def test_best_and_worst_days(
    history_service: HistoryService, aggregator: DailyAggregator
) -> None:
    _log(aggregator, 13, 1950)
    _log(aggregator, 14, 2050)
    _log(aggregator, 15, 2600)

    best, worst = best_and_worst_days(
        history_service.get_history(3), DailyTarget(calories=2000)
    )

    assert best is not None and worst is not None
    assert best.date == "2024-03-13"
    assert best.deviation == 50
    assert worst.date == "2024-03-15"
    assert worst.calories == 2600


def test_best_and_worst_need_target(history_service: HistoryService) -> None:
    assert best_and_worst_days(history_service.get_history(3), None) == (None, None)
    assert best_and_worst_days([], DailyTarget(calories=2000)) == (None, None)


def test_compute_statistics(
    history_service: HistoryService, aggregator: DailyAggregator
) -> None:
    for day in range(1, 16):
        _log(aggregator, day, 2000 if day > 8 else 1000)

    stats = compute_statistics(
        history_service.get_history(30), DailyTarget(calories=2000)
    )

    assert stats.weekly_average_calories == 2000
    assert stats.monthly_average_calories == pytest.approx((8 * 1000 + 7 * 2000) / 30)
    assert stats.weekly_average_protein == 10
    assert stats.weekly_adherence == 100
    assert stats.monthly_adherence == pytest.approx(7 / 30 * 100)
    assert stats.streak == 15
    assert stats.best_day is not None
    assert stats.best_day.date == "2024-03-09"


def test_compute_statistics_on_empty_history() -> None:
    stats = compute_statistics([], None)

    assert stats.weekly_average_calories == 0
    assert stats.monthly_adherence == 0
    assert stats.streak == 0
    assert stats.best_day is None
    assert stats.worst_day is None


def test_rolling_average(
    history_service: HistoryService, aggregator: DailyAggregator
) -> None:
    _log(aggregator, 13, 900)
    _log(aggregator, 15, 300)

    averages = rolling_average(history_service.get_history(3), window=2)

    assert averages == [900, 450, 150]


def test_rolling_average_rejects_bad_window() -> None:
    with pytest.raises(ValueError):
        rolling_average([], window=0)
