"""CSV and JSON snapshot export and import."""

import csv
import io
import json
import logging
from collections import defaultdict
from dataclasses import dataclass

from pydantic import Field, ValidationError

from calorie_tracker.domain.entries import FoodEntry
from calorie_tracker.domain.profile import AppSettings, DailyTarget, UserProfile
from calorie_tracker.domain.progress import DailyProgress
from calorie_tracker.domain.quick_log import QuickLogItem
from calorie_tracker.domain.records import Record
from calorie_tracker.services.clock import Clock, date_key, localize
from calorie_tracker.services.history import HistoryService
from calorie_tracker.services.ledger import LedgerStore

SNAPSHOT_DAYS = 90
CSV_HEADERS = [
    "Date",
    "Meal",
    "Food",
    "Calories",
    "Protein (g)",
    "Carbs (g)",
    "Fat (g)",
    "Sugar (g)",
]

_logger = logging.getLogger(__name__)


class ImportFormatError(ValueError):
    """Raised when an import payload is not a valid snapshot."""


class SnapshotDay(Record):
    """One day of a snapshot's history."""

    date: str
    entries: list[FoodEntry] = Field(default_factory=list)
    totals: dict[str, float] | None = None


class Snapshot(Record):
    """Full backup of profile, targets, settings, quick-log and history."""

    profile: UserProfile | None = None
    targets: DailyTarget | None = None
    settings: AppSettings | None = None
    quick_log_items: list[QuickLogItem] | None = None
    history: list[SnapshotDay] | None = None


@dataclass
class ExportService:
    """Produces exports from, and restores snapshots into, the ledger store."""

    store: LedgerStore
    history: HistoryService
    clock: Clock

    def export_csv(self, days: int = SNAPSHOT_DAYS) -> str:
        """Return one CSV row per entry over the trailing days."""
        return history_to_csv(self.history.get_history(days), self.clock)

    def export_snapshot(self, days: int = SNAPSHOT_DAYS) -> Snapshot:
        """Return a snapshot of all stored state except the API key."""
        return Snapshot(
            profile=self.store.load_profile(),
            targets=self.store.load_targets(),
            settings=self.store.load_settings().model_copy(update={"api_key": None}),
            quick_log_items=self.store.load_quick_log(),
            history=[
                SnapshotDay(
                    date=day.date,
                    entries=day.entries,
                    totals={
                        "calories": day.totals.calories,
                        "protein": day.totals.protein,
                        "carbs": day.totals.carbs,
                        "fat": day.totals.fat,
                        "sugar": day.totals.sugar,
                    },
                )
                for day in self.history.get_history(days)
            ],
        )

    def export_json(self, days: int = SNAPSHOT_DAYS) -> str:
        """Return the snapshot as indented JSON."""
        return json.dumps(self.export_snapshot(days).to_json(), indent=2)

    def import_json(self, raw: str) -> int:
        """Restore a JSON snapshot; return the number of ledgers written.

        Entries are re-keyed by their own timestamps so each lands in the
        ledger of its local date.
        """
        try:
            snapshot = Snapshot.model_validate_json(raw)
        except ValidationError as exc:
            raise ImportFormatError(f"Invalid data format: {exc}") from exc

        if snapshot.profile is not None:
            self.store.save_profile(snapshot.profile)
        if snapshot.targets is not None:
            self.store.save_targets(snapshot.targets)
        if snapshot.settings is not None:
            # Snapshots never carry the API key; keep the one already stored.
            stored_key = self.store.load_settings().api_key
            self.store.save_settings(
                snapshot.settings.model_copy(update={"api_key": stored_key})
            )
        if snapshot.quick_log_items is not None:
            self.store.save_quick_log(snapshot.quick_log_items)

        ledgers: dict[str, list[FoodEntry]] = defaultdict(list)
        for day in snapshot.history or []:
            for entry in day.entries:
                ledgers[date_key(entry.timestamp, self.clock.tz)].append(entry)
        for key, entries in ledgers.items():
            entries.sort(key=lambda item: localize(item.timestamp, self.clock.tz))
            self.store.put(key, entries)
        _logger.info("Imported snapshot with %s ledgers", len(ledgers))
        return len(ledgers)


def history_to_csv(history: list[DailyProgress], clock: Clock) -> str:
    """Render history entries as CSV with every cell quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for day in history:
        for entry in day.entries:
            moment = entry.timestamp
            if moment.tzinfo is not None:
                moment = moment.astimezone(clock.tz)
            writer.writerow(
                [
                    moment.strftime("%Y-%m-%d %H:%M"),
                    entry.meal_type.value if entry.meal_type else "Other",
                    entry.name,
                    _number(entry.calories),
                    _number(entry.protein),
                    _number(entry.carbs),
                    _number(entry.fat),
                    _number(entry.sugar),
                ]
            )
    return buffer.getvalue()


def _number(value: float) -> str:
    return f"{value:g}"
