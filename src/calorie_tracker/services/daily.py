"""Daily ledger aggregation and entry lifecycle."""

import bisect
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from calorie_tracker.domain.entries import (
    FoodEntry,
    MealType,
    NutritionTotals,
    infer_meal_type,
    new_entry_id,
)
from calorie_tracker.domain.estimates import NutritionEstimate
from calorie_tracker.domain.profile import DailyTarget
from calorie_tracker.domain.progress import DailyProgress, TargetPercentages
from calorie_tracker.services.clock import Clock, date_key, localize, today_key
from calorie_tracker.services.ledger import LedgerStore
from calorie_tracker.services.quick_log import QuickLogService

DEFAULT_UNDO_WINDOW_SECONDS = 5.0
_IMMUTABLE_FIELDS = frozenset({"id", "timestamp"})

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _RemovedEntry:
    entry: FoodEntry
    removed_at: datetime


@dataclass
class DailyAggregator:
    """Reads and mutates per-day ledgers and computes their totals."""

    store: LedgerStore
    clock: Clock
    quick_log: QuickLogService
    undo_window_seconds: float = DEFAULT_UNDO_WINDOW_SECONDS
    _removed: dict[str, _RemovedEntry] = field(
        default_factory=dict, init=False, repr=False
    )

    def today_key(self) -> str:
        """Return today's local date key."""
        return today_key(self.clock)

    def compute_progress(self, day: str | None = None) -> DailyProgress:
        """Return entries and full-precision totals for a date (default today)."""
        key = day or self.today_key()
        entries = self.store.get(key)
        return DailyProgress(date=key, entries=entries, totals=sum_entries(entries))

    def append_entry(self, entry: FoodEntry) -> FoodEntry:
        """Append an entry to the ledger of its own local date."""
        key = date_key(entry.timestamp, self.clock.tz)
        entries = self.store.get(key)
        entries.append(entry)
        self.store.put(key, entries)
        self.quick_log.record_entry(entry)
        _logger.info("Logged %s (%.0f kcal) on %s", entry.name, entry.calories, key)
        return entry

    def create_entry(
        self,
        estimate: NutritionEstimate,
        *,
        meal_type: MealType | None = None,
        image_url: str | None = None,
    ) -> FoodEntry:
        """Create an unsaved entry from a validated estimate."""
        now = self.clock.now()
        return FoodEntry(
            name=estimate.name,
            calories=estimate.calories,
            protein=estimate.protein,
            carbs=estimate.carbs,
            fat=estimate.fat,
            sugar=estimate.sugar,
            portion=estimate.portion,
            confidence=estimate.confidence,
            timestamp=now,
            meal_type=meal_type or infer_meal_type(now),
            image_url=image_url,
        )

    def update_entry(
        self, entry_id: str, changes: Mapping[str, object]
    ) -> FoodEntry | None:
        """Apply field changes to an entry in today's ledger.

        Returns None when the id is not in today's ledger. Raises ValueError
        for immutable fields and pydantic ValidationError for bad values.
        """
        blocked = _IMMUTABLE_FIELDS.intersection(changes)
        if blocked:
            raise ValueError(f"Fields cannot be changed: {', '.join(sorted(blocked))}")
        key = self.today_key()
        entries = self.store.get(key)
        for index, entry in enumerate(entries):
            if entry.id == entry_id:
                updated = FoodEntry.model_validate({**entry.model_dump(), **changes})
                entries[index] = updated
                self.store.put(key, entries)
                return updated
        return None

    def remove_entry(self, entry_id: str) -> FoodEntry | None:
        """Remove an entry from today's ledger, keeping it for undo."""
        key = self.today_key()
        entries = self.store.get(key)
        remaining = [entry for entry in entries if entry.id != entry_id]
        if len(remaining) == len(entries):
            return None
        removed = next(entry for entry in entries if entry.id == entry_id)
        self.store.put(key, remaining)
        self._prune_removed()
        self._removed[entry_id] = _RemovedEntry(
            entry=removed, removed_at=self.clock.now()
        )
        return removed

    def undo_remove(self, entry_id: str) -> FoodEntry | None:
        """Restore a removed entry if the undo window is still open."""
        self._prune_removed()
        pending = self._removed.pop(entry_id, None)
        if pending is None:
            return None
        entry = pending.entry
        key = date_key(entry.timestamp, self.clock.tz)
        entries = self.store.get(key)
        stamps = [localize(item.timestamp, self.clock.tz) for item in entries]
        restored_at = localize(entry.timestamp, self.clock.tz)
        entries.insert(bisect.bisect_right(stamps, restored_at), entry)
        self.store.put(key, entries)
        return entry

    def duplicate_entry(self, entry_id: str) -> FoodEntry | None:
        """Log a copy of one of today's entries at the current instant."""
        for entry in self.store.get(self.today_key()):
            if entry.id == entry_id:
                copy = entry.model_copy(
                    update={"id": new_entry_id(), "timestamp": self.clock.now()}
                )
                return self.append_entry(copy)
        return None

    def log_quick_item(self, item_id: str, multiplier: float = 1.0) -> FoodEntry | None:
        """Log a quick-log item scaled by a portion multiplier."""
        if multiplier <= 0:
            raise ValueError(f"Multiplier must be positive, got {multiplier}")
        item = self.quick_log.get(item_id)
        if item is None:
            return None
        now = self.clock.now()
        entry = FoodEntry(
            name=item.name,
            calories=item.calories * multiplier,
            protein=item.protein * multiplier,
            carbs=item.carbs * multiplier,
            fat=item.fat * multiplier,
            sugar=item.sugar * multiplier,
            timestamp=now,
            image_url=item.image_url,
            meal_type=infer_meal_type(now),
        )
        return self.append_entry(entry)

    def on_day_changed(self, new_day: str) -> None:
        """Drop expired undo state after the day rolls over."""
        self._prune_removed()
        _logger.info("Day rolled over to %s", new_day)

    def _prune_removed(self) -> None:
        cutoff = self.clock.now() - timedelta(seconds=self.undo_window_seconds)
        for entry_id, pending in list(self._removed.items()):
            if pending.removed_at < cutoff:
                del self._removed[entry_id]


def sum_entries(entries: list[FoodEntry]) -> NutritionTotals:
    """Sum entry nutrition field by field without rounding."""
    total = NutritionTotals()
    for entry in entries:
        total = NutritionTotals(
            calories=total.calories + entry.calories,
            protein=total.protein + entry.protein,
            carbs=total.carbs + entry.carbs,
            fat=total.fat + entry.fat,
            sugar=total.sugar + entry.sugar,
        )
    return total


def compute_percentages(
    totals: NutritionTotals, target: DailyTarget
) -> TargetPercentages:
    """Return consumption as a percentage of target; zero targets give 0."""
    return TargetPercentages(
        calories=_percent(totals.calories, target.calories),
        protein=_percent(totals.protein, target.protein),
        carbs=_percent(totals.carbs, target.carbs),
        fat=_percent(totals.fat, target.fat),
        sugar=_percent(totals.sugar, target.sugar),
    )


def _percent(value: float, goal: float) -> float:
    if goal <= 0:
        return 0.0
    return value / goal * 100
