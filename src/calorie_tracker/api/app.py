"""FastAPI application factory."""

import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from calorie_tracker.api.schemas import (
    EntryPayload,
    EntryUpdatePayload,
    EstimatedEntryPayload,
    ImageEstimatePayload,
    MealIdeasPayload,
    SettingsPayload,
    TextEstimatePayload,
    VisibilityPayload,
)
from calorie_tracker.app_logging import configure_logging
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.entries import FoodEntry, infer_meal_type
from calorie_tracker.domain.profile import DailyTarget, UserProfile
from calorie_tracker.domain.progress import DailyProgress
from calorie_tracker.domain.quick_log import QuickLogItem
from calorie_tracker.services.clock import parse_date_key, today_key
from calorie_tracker.services.daily import compute_percentages
from calorie_tracker.services.estimation import (
    EstimationError,
    MissingCredentialsError,
)
from calorie_tracker.services.export import ImportFormatError
from calorie_tracker.services.history import compute_statistics, rolling_average
from calorie_tracker.services.suggestions import compute_remaining

MAX_HISTORY_DAYS = 366


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.container.reset_scheduler.start()
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(MissingCredentialsError)
    async def missing_credentials(
        request: Request, exc: MissingCredentialsError
    ) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": str(exc)})

    @app.exception_handler(EstimationError)
    async def estimation_failed(request: Request, exc: EstimationError) -> JSONResponse:
        logger.warning("Estimation failed: %s", exc)
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(ImportFormatError)
    async def import_failed(request: Request, exc: ImportFormatError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/today")
    async def today() -> dict[str, object]:
        """Return today's entries, totals and target progress."""
        progress = container.daily_aggregator.compute_progress()
        return _progress_payload(progress, container.store.load_targets())

    @app.get("/days/{day}")
    async def day_progress(day: str) -> dict[str, object]:
        """Return progress for a specific date."""
        _require_date_key(day)
        progress = container.daily_aggregator.compute_progress(day)
        return _progress_payload(progress, container.store.load_targets())

    @app.post("/entries", status_code=status.HTTP_201_CREATED)
    async def create_entry(payload: EntryPayload) -> dict[str, object]:
        """Log a food entry into the ledger of its timestamp's date."""
        data = payload.model_dump(exclude_none=True)
        timestamp = payload.timestamp or container.clock.now()
        data["timestamp"] = timestamp
        if timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone(container.clock.tz)
        data.setdefault("meal_type", infer_meal_type(timestamp))
        entry = container.daily_aggregator.append_entry(FoodEntry(**data))
        return entry.to_json()

    @app.post("/entries/from-estimate", status_code=status.HTTP_201_CREATED)
    async def create_entry_from_estimate(
        payload: EstimatedEntryPayload,
    ) -> dict[str, object]:
        """Log a confirmed estimate as a new entry."""
        entry = container.daily_aggregator.create_entry(
            payload.estimate,
            meal_type=payload.meal_type,
            image_url=payload.image_url,
        )
        return container.daily_aggregator.append_entry(entry).to_json()

    @app.patch("/entries/{entry_id}")
    async def update_entry(
        entry_id: str, payload: EntryUpdatePayload
    ) -> dict[str, object]:
        """Adjust fields of one of today's entries."""
        try:
            entry = container.daily_aggregator.update_entry(
                entry_id, payload.model_dump(exclude_unset=True)
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        if entry is None:
            raise HTTPException(status_code=404, detail="Entry not found today")
        return entry.to_json()

    @app.delete("/entries/{entry_id}")
    async def delete_entry(entry_id: str) -> dict[str, object]:
        """Remove one of today's entries; it can be restored briefly."""
        entry = container.daily_aggregator.remove_entry(entry_id)
        if entry is None:
            raise HTTPException(status_code=404, detail="Entry not found today")
        return {
            "entry": entry.to_json(),
            "undo_seconds": container.daily_aggregator.undo_window_seconds,
        }

    @app.post("/entries/{entry_id}/undo")
    async def undo_delete(entry_id: str) -> dict[str, object]:
        """Restore a recently removed entry."""
        entry = container.daily_aggregator.undo_remove(entry_id)
        if entry is None:
            raise HTTPException(status_code=404, detail="Nothing to undo")
        return entry.to_json()

    @app.post("/entries/{entry_id}/duplicate", status_code=status.HTTP_201_CREATED)
    async def duplicate_entry(entry_id: str) -> dict[str, object]:
        """Log a copy of one of today's entries."""
        entry = container.daily_aggregator.duplicate_entry(entry_id)
        if entry is None:
            raise HTTPException(status_code=404, detail="Entry not found today")
        return entry.to_json()

    @app.get("/history")
    async def history(days: int = 30) -> dict[str, object]:
        """Return one progress record per day, oldest first."""
        _require_days(days)
        targets = container.store.load_targets()
        return {
            "days": [
                _progress_payload(day, targets)
                for day in container.history_service.get_history(days)
            ]
        }

    @app.get("/statistics")
    async def statistics(days: int = 30, window: int = 7) -> dict[str, object]:
        """Return summary statistics and a rolling calorie average."""
        _require_days(days)
        if window <= 0:
            raise HTTPException(status_code=422, detail="window must be positive")
        series = container.history_service.get_history(days)
        stats = compute_statistics(series, container.store.load_targets())
        return {
            "statistics": asdict(stats),
            "rolling_average": [
                {"date": day.date, "calories": value}
                for day, value in zip(
                    series, rolling_average(series, window), strict=True
                )
            ],
        }

    @app.get("/quick-log")
    async def quick_log() -> dict[str, object]:
        """Return starred favorites and ranked recents."""
        groups = container.quick_log_service.grouped()
        return {
            "favorites": [_quick_item_payload(item) for item in groups.favorites],
            "recents": [_quick_item_payload(item) for item in groups.recents],
        }

    @app.post("/quick-log/{item_id}/star")
    async def toggle_star(item_id: str) -> dict[str, object]:
        """Star or unstar a quick-log item."""
        item = container.quick_log_service.toggle_star(item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="Quick-log item not found")
        return _quick_item_payload(item)

    @app.post("/quick-log/{item_id}/log", status_code=status.HTTP_201_CREATED)
    async def log_quick_item(
        item_id: str, multiplier: float = 1.0
    ) -> dict[str, object]:
        """Log a quick-log item, optionally scaled."""
        try:
            entry = container.daily_aggregator.log_quick_item(item_id, multiplier)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        if entry is None:
            raise HTTPException(status_code=404, detail="Quick-log item not found")
        return entry.to_json()

    @app.get("/suggestions")
    async def suggestions() -> dict[str, object]:
        """Rank catalog foods against today's remaining budget."""
        progress = container.daily_aggregator.compute_progress()
        ranked = container.suggestion_service.suggest(
            progress.totals, container.store.load_targets()
        )
        return {
            "suggestions": [
                {**asdict(item.food), "score": item.score} for item in ranked
            ]
        }

    @app.post("/suggestions/ideas")
    async def meal_ideas(payload: MealIdeasPayload) -> dict[str, object]:
        """Ask the estimation provider for meal ideas."""
        targets = _require_targets(container)
        progress = container.daily_aggregator.compute_progress()
        meal_type = payload.meal_type or infer_meal_type(container.clock.now())
        ideas = await container.estimation_service.suggest_meals(
            compute_remaining(targets, progress.totals),
            meal_type,
            payload.preferences,
        )
        return {"meal_type": meal_type.value, "suggestions": ideas}

    @app.post("/estimate/text")
    async def estimate_text(payload: TextEstimatePayload) -> dict[str, object]:
        """Estimate nutrition for a description."""
        try:
            estimate = await container.estimation_service.estimate_from_text(
                payload.description
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return estimate.model_dump()

    @app.post("/estimate/image")
    async def estimate_image(payload: ImageEstimatePayload) -> dict[str, object]:
        """Estimate nutrition for a base64-encoded photo."""
        try:
            image_bytes = _decode_image(payload.image_base64)
            estimate = await container.estimation_service.estimate_from_image(
                image_bytes, payload.context
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return estimate.model_dump()

    @app.get("/profile")
    async def get_profile() -> dict[str, object]:
        """Return the stored profile, if any."""
        profile = container.store.load_profile()
        return {"profile": profile.to_json() if profile else None}

    @app.put("/profile")
    async def put_profile(profile: UserProfile) -> dict[str, object]:
        """Replace the stored profile."""
        container.store.save_profile(profile)
        return {"profile": profile.to_json()}

    @app.get("/targets")
    async def get_targets() -> dict[str, object]:
        """Return the stored targets, if any."""
        targets = container.store.load_targets()
        return {"targets": targets.to_json() if targets else None}

    @app.put("/targets")
    async def put_targets(targets: DailyTarget) -> dict[str, object]:
        """Replace the stored targets."""
        container.store.save_targets(targets)
        return {"targets": targets.to_json()}

    @app.post("/targets/estimate")
    async def estimate_targets() -> dict[str, object]:
        """Estimate and store targets from the stored profile."""
        profile = container.store.load_profile()
        if profile is None:
            raise HTTPException(status_code=409, detail="Profile not configured")
        targets = await container.estimation_service.estimate_targets(profile)
        container.store.save_targets(targets)
        return {"targets": targets.to_json()}

    @app.get("/settings")
    async def get_settings() -> dict[str, object]:
        """Return app settings without the stored key."""
        settings = container.store.load_settings()
        payload = settings.to_json()
        payload.pop("apiKey", None)
        payload["hasApiKey"] = bool(settings.api_key)
        return payload

    @app.patch("/settings")
    async def patch_settings(payload: SettingsPayload) -> dict[str, object]:
        """Update selected app settings."""
        current = container.store.load_settings()
        updated = current.model_copy(update=payload.model_dump(exclude_unset=True))
        container.store.save_settings(updated)
        return {"hasApiKey": bool(updated.api_key)}

    @app.post("/reset/check")
    async def reset_check() -> dict[str, object]:
        """Run a day-boundary check."""
        changed = container.reset_scheduler.check()
        return _reset_payload(container, changed)

    @app.post("/visibility")
    async def visibility(payload: VisibilityPayload) -> dict[str, object]:
        """Record that the client became visible or hidden."""
        changed = container.reset_scheduler.on_visibility_change(payload.visible)
        return _reset_payload(container, changed)

    @app.get("/export/csv")
    async def export_csv(days: int = 90) -> PlainTextResponse:
        """Download entries as CSV."""
        _require_days(days)
        filename = f"calorie-tracker-{today_key(container.clock)}.csv"
        return PlainTextResponse(
            container.export_service.export_csv(days),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.get("/export/json")
    async def export_json(days: int = 90) -> dict[str, object]:
        """Return a full JSON snapshot."""
        _require_days(days)
        return container.export_service.export_snapshot(days).to_json()

    @app.post("/import")
    async def import_json(request: Request) -> dict[str, object]:
        """Restore a JSON snapshot from the request body."""
        raw = (await request.body()).decode("utf-8", errors="replace")
        restored = container.export_service.import_json(raw)
        return {"status": "ok", "days_restored": restored}

    @app.delete("/data")
    async def clear_data() -> dict[str, str]:
        """Delete all stored records."""
        container.store.clear_all(parse_date_key(today_key(container.clock)))
        logger.info("All stored data cleared")
        return {"status": "ok"}

    return app


def _progress_payload(
    progress: DailyProgress, targets: DailyTarget | None
) -> dict[str, object]:
    """Serialize progress with display rounding and target percentages."""
    return {
        "date": progress.date,
        "entries": [entry.to_json() for entry in progress.entries],
        "totals": asdict(progress.totals),
        "display_totals": asdict(progress.totals.rounded()),
        "targets": targets.to_json() if targets else None,
        "percentages": (
            asdict(compute_percentages(progress.totals, targets)) if targets else None
        ),
    }


def _quick_item_payload(item: QuickLogItem) -> dict[str, object]:
    return item.to_json()


def _reset_payload(container: AppContainer, changed: bool) -> dict[str, object]:
    return {
        "changed": changed,
        "date": today_key(container.clock),
        "state": container.reset_scheduler.state.value,
    }


def _require_date_key(value: str) -> None:
    try:
        parse_date_key(value)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _require_days(days: int) -> None:
    if not 1 <= days <= MAX_HISTORY_DAYS:
        raise HTTPException(
            status_code=422, detail=f"days must be between 1 and {MAX_HISTORY_DAYS}"
        )


def _require_targets(container: AppContainer) -> DailyTarget:
    targets = container.store.load_targets()
    if targets is None:
        raise HTTPException(status_code=409, detail="Targets not configured")
    return targets


def _decode_image(value: str) -> bytes:
    """Decode base64 image data, accepting an optional data URL prefix."""
    _, _, encoded = value.rpartition(",")
    try:
        return base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        raise ValueError("Image is not valid base64") from exc
