"""Quick-log cache of frequently used foods."""

import logging
from dataclasses import dataclass

from calorie_tracker.domain.entries import FoodEntry
from calorie_tracker.domain.quick_log import QuickLogGroups, QuickLogItem
from calorie_tracker.services.clock import Clock
from calorie_tracker.services.ledger import LedgerStore

QUICK_LOG_LIMIT = 20
FREQUENCY_WEIGHT = 2.0

_logger = logging.getLogger(__name__)


@dataclass
class QuickLogService:
    """Maintains the frequency-ranked quick-log cache."""

    store: LedgerStore
    clock: Clock
    limit: int = QUICK_LOG_LIMIT

    def list_items(self) -> list[QuickLogItem]:
        """Return cached items in stored (frequency) order."""
        return self.store.load_quick_log()

    def get(self, item_id: str) -> QuickLogItem | None:
        """Return a cached item by id."""
        for item in self.store.load_quick_log():
            if item.id == item_id:
                return item
        return None

    def record_entry(self, entry: FoodEntry) -> QuickLogItem:
        """Upsert the cache item matching the entry's name."""
        items = self.store.load_quick_log()
        now = self.clock.now()
        name_key = entry.name.casefold()
        recorded: QuickLogItem | None = None
        for index, item in enumerate(items):
            if item.name.casefold() == name_key:
                recorded = item.model_copy(
                    update={"frequency": item.frequency + 1, "last_used": now}
                )
                items[index] = recorded
                break
        if recorded is None:
            recorded = QuickLogItem(
                name=entry.name,
                calories=entry.calories,
                protein=entry.protein,
                carbs=entry.carbs,
                fat=entry.fat,
                sugar=entry.sugar,
                image_url=entry.image_url,
                last_used=now,
                frequency=1,
            )
            # New items go first so they survive ties at the cap.
            items.insert(0, recorded)

        ranked = _rank(items)
        for dropped in ranked[self.limit :]:
            _logger.info("Dropping quick-log item %s from cache", dropped.name)
        self.store.save_quick_log(ranked[: self.limit])
        return recorded

    def toggle_star(self, item_id: str) -> QuickLogItem | None:
        """Flip the starred flag of an item."""
        items = self.store.load_quick_log()
        for index, item in enumerate(items):
            if item.id == item_id:
                items[index] = item.model_copy(update={"starred": not item.starred})
                self.store.save_quick_log(items)
                return items[index]
        return None

    def grouped(self) -> QuickLogGroups:
        """Split the cache into starred favorites and ranked recents."""
        items = self.store.load_quick_log()
        favorites = [item for item in items if item.starred]
        recents = [item for item in items if not item.starred]
        return QuickLogGroups(
            favorites=favorites, recents=rank_recents(recents)[: self.limit]
        )


def rank_recents(items: list[QuickLogItem]) -> list[QuickLogItem]:
    """Order by ``frequency * 2 + normalized recency``.

    Recency is scaled into [0, 1] over the items' last-used span, so one
    extra use always outranks any recency difference.
    """
    stamps = [_last_used_seconds(item) for item in items if item.last_used]
    oldest = min(stamps, default=0.0)
    span = max(stamps, default=0.0) - oldest

    def score(item: QuickLogItem) -> float:
        recency = 0.0
        if item.last_used and span > 0:
            recency = (_last_used_seconds(item) - oldest) / span
        return item.frequency * FREQUENCY_WEIGHT + recency

    return sorted(items, key=score, reverse=True)


def _rank(items: list[QuickLogItem]) -> list[QuickLogItem]:
    return sorted(
        items,
        key=lambda item: (item.frequency, _last_used_seconds(item)),
        reverse=True,
    )


def _last_used_seconds(item: QuickLogItem) -> float:
    return item.last_used.timestamp() if item.last_used else 0.0
