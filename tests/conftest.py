"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

import pytest

from calorie_tracker.adapters.memory_store import InMemoryKeyValueStore
from calorie_tracker.config import Settings
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.entries import FoodEntry
from calorie_tracker.domain.profile import DailyTarget
from calorie_tracker.services.clock import Clock
from calorie_tracker.services.daily import DailyAggregator
from calorie_tracker.services.estimation import EstimationClient, EstimationService
from calorie_tracker.services.export import ExportService
from calorie_tracker.services.history import HistoryService
from calorie_tracker.services.ledger import LedgerStore
from calorie_tracker.services.quick_log import QuickLogService
from calorie_tracker.services.reset import ResetScheduler
from calorie_tracker.services.suggestions import SuggestionService

TEST_TIMEZONE = "America/New_York"


@dataclass
class FixedClock(Clock):
    """Clock that only moves when a test advances it."""

    current: datetime

    @property
    def tz(self) -> tzinfo:
        assert self.current.tzinfo is not None
        return self.current.tzinfo

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


@dataclass
class FakeEstimationClient(EstimationClient):
    """Fake estimation client returning queued payloads."""

    payloads: list[dict[str, object]] = field(default_factory=list)
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def complete(
        self,
        *,
        model: str,
        prompt: str,
        schema_name: str,
        schema: dict[str, object],
        image_data_url: str | None = None,
    ) -> dict[str, object]:
        self.calls.append(
            {
                "model": model,
                "prompt": prompt,
                "schema_name": schema_name,
                "image_data_url": image_data_url,
            }
        )
        if self.error is not None:
            raise self.error
        return self.payloads.pop(0)


def local_time(*args: int) -> datetime:
    """Return an aware datetime in the test timezone."""
    return datetime(*args, tzinfo=ZoneInfo(TEST_TIMEZONE))


def make_entry(
    name: str, calories: float, moment: datetime, **macros: float
) -> FoodEntry:
    """Build an entry with optional macro overrides."""
    return FoodEntry(name=name, calories=calories, timestamp=moment, **macros)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="test-key",
        timezone=TEST_TIMEZONE,
        storage_backend="memory",
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(local_time(2024, 3, 15, 12, 30))


@pytest.fixture
def backend() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def store(backend: InMemoryKeyValueStore) -> LedgerStore:
    return LedgerStore(backend)


@pytest.fixture
def targets() -> DailyTarget:
    return DailyTarget(calories=2000, protein=150, carbs=200, fat=65, sugar=30)


@pytest.fixture
def quick_log_service(store: LedgerStore, clock: FixedClock) -> QuickLogService:
    return QuickLogService(store=store, clock=clock)


@pytest.fixture
def aggregator(
    store: LedgerStore, clock: FixedClock, quick_log_service: QuickLogService
) -> DailyAggregator:
    return DailyAggregator(store=store, clock=clock, quick_log=quick_log_service)


@pytest.fixture
def history_service(aggregator: DailyAggregator) -> HistoryService:
    return HistoryService(aggregator)


@pytest.fixture
def estimation_client() -> FakeEstimationClient:
    return FakeEstimationClient()


@pytest.fixture
def estimation_service(estimation_client: FakeEstimationClient) -> EstimationService:
    return EstimationService(
        client=estimation_client, vision_model="vision-model", text_model="text-model"
    )


@pytest.fixture
def container(
    settings: Settings,
    clock: FixedClock,
    store: LedgerStore,
    quick_log_service: QuickLogService,
    aggregator: DailyAggregator,
    history_service: HistoryService,
    estimation_service: EstimationService,
) -> AppContainer:
    reset_scheduler = ResetScheduler(store=store, clock=clock)
    reset_scheduler.add_listener(aggregator.on_day_changed)

    async def close_resources() -> None:
        await reset_scheduler.stop()

    return AppContainer(
        settings=settings,
        clock=clock,
        store=store,
        quick_log_service=quick_log_service,
        daily_aggregator=aggregator,
        history_service=history_service,
        reset_scheduler=reset_scheduler,
        suggestion_service=SuggestionService(),
        estimation_service=estimation_service,
        export_service=ExportService(store=store, history=history_service, clock=clock),
        close_resources=close_resources,
    )
