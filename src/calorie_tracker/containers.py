"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from calorie_tracker.adapters.json_file_store import JsonFileStore
from calorie_tracker.adapters.memory_store import InMemoryKeyValueStore
from calorie_tracker.adapters.openai_estimation_client import OpenAIEstimationClient
from calorie_tracker.adapters.supabase_kv_store import SupabaseKeyValueStore
from calorie_tracker.config import Settings
from calorie_tracker.services.clock import Clock, SystemClock
from calorie_tracker.services.daily import DailyAggregator
from calorie_tracker.services.estimation import (
    ChainedCredentialProvider,
    EstimationService,
    StaticCredentialProvider,
    StoredCredentialProvider,
)
from calorie_tracker.services.export import ExportService
from calorie_tracker.services.history import HistoryService
from calorie_tracker.services.ledger import KeyValueStore, LedgerStore
from calorie_tracker.services.quick_log import QuickLogService
from calorie_tracker.services.reset import ResetScheduler
from calorie_tracker.services.suggestions import SuggestionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    clock: Clock
    store: LedgerStore
    quick_log_service: QuickLogService
    daily_aggregator: DailyAggregator
    history_service: HistoryService
    reset_scheduler: ResetScheduler
    suggestion_service: SuggestionService
    estimation_service: EstimationService
    export_service: ExportService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    clock = SystemClock(resolved_settings.timezone)
    store = LedgerStore(_build_backend(resolved_settings))
    quick_log_service = QuickLogService(store=store, clock=clock)
    daily_aggregator = DailyAggregator(
        store=store,
        clock=clock,
        quick_log=quick_log_service,
        undo_window_seconds=resolved_settings.undo_window_seconds,
    )
    history_service = HistoryService(daily_aggregator)
    reset_scheduler = ResetScheduler(store=store, clock=clock)
    reset_scheduler.add_listener(daily_aggregator.on_day_changed)
    credentials = ChainedCredentialProvider(
        [
            StaticCredentialProvider(resolved_settings.openai_api_key),
            StoredCredentialProvider(store),
        ]
    )
    estimation_service = EstimationService(
        client=OpenAIEstimationClient(credentials),
        vision_model=resolved_settings.openai_vision_model,
        text_model=resolved_settings.openai_text_model,
    )
    export_service = ExportService(store=store, history=history_service, clock=clock)

    async def close_resources() -> None:
        await reset_scheduler.stop()

    return AppContainer(
        settings=resolved_settings,
        clock=clock,
        store=store,
        quick_log_service=quick_log_service,
        daily_aggregator=daily_aggregator,
        history_service=history_service,
        reset_scheduler=reset_scheduler,
        suggestion_service=SuggestionService(),
        estimation_service=estimation_service,
        export_service=export_service,
        close_resources=close_resources,
    )


def _build_backend(settings: Settings) -> KeyValueStore:
    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("Supabase storage requires SUPABASE_URL and key")
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseKeyValueStore(client, table=settings.supabase_table)
    if settings.storage_backend == "memory":
        return InMemoryKeyValueStore()
    return JsonFileStore(Path(settings.data_path).expanduser())
