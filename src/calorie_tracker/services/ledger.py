"""Date-partitioned ledger persistence over a string key-value store."""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Protocol, TypeVar

from pydantic import ValidationError

from calorie_tracker.domain.entries import FoodEntry
from calorie_tracker.domain.profile import AppSettings, DailyTarget, UserProfile
from calorie_tracker.domain.quick_log import QuickLogItem
from calorie_tracker.domain.records import Record
from calorie_tracker.services.clock import parse_date_key

SCHEMA_VERSION = 1
ENTRIES_KEY_PREFIX = "calorie_tracker_food_entries"
CLEAR_ALL_DAYS = 365

_logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=Record)


class KeyValueStore(Protocol):
    """Storage medium holding string values by key."""

    def get(self, key: str) -> str | None:
        """Return the stored value, if present."""

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    def delete(self, key: str) -> None:
        """Remove a value; missing keys are ignored."""


class Singleton(str, Enum):
    """Keys of the singleton records."""

    USER_PROFILE = "calorie_tracker_user_profile"
    DAILY_TARGETS = "calorie_tracker_daily_targets"
    APP_SETTINGS = "calorie_tracker_app_settings"
    QUICK_LOG_ITEMS = "calorie_tracker_quick_log_items"
    LAST_RESET = "calorie_tracker_last_reset"


def _upgrade_v0(data: object) -> object:
    # Unversioned records already use the v1 field layout.
    return data


# Each step upgrades a payload from the keyed version to the next one.
_MIGRATIONS: dict[int, Callable[[object], object]] = {0: _upgrade_v0}


@dataclass
class LedgerStore:
    """Persistence for daily ledgers and singleton records.

    Values are written as ``{"version": N, "data": ...}`` envelopes. Reads
    never raise: undecodable or unknown records are logged and treated as
    absent.
    """

    backend: KeyValueStore

    def get(self, date_key: str) -> list[FoodEntry]:
        """Return the entries logged on a date, oldest first."""
        key = entries_key(date_key)
        payload = self._read(key)
        if payload is None:
            return []
        if not isinstance(payload, list):
            _logger.warning("Ledger %s is not a list; treating as empty", key)
            return []
        return _validate_list(FoodEntry, payload, key)

    def put(self, date_key: str, entries: list[FoodEntry]) -> None:
        """Replace the ledger for a date."""
        self._write(entries_key(date_key), [entry.to_json() for entry in entries])

    def delete(self, date_key: str) -> None:
        """Remove the ledger for a date."""
        self.backend.delete(entries_key(date_key))

    def put_singleton(self, name: Singleton, value: object) -> None:
        """Store a JSON-serialisable singleton value."""
        self._write(name.value, value)

    def get_singleton(self, name: Singleton) -> object | None:
        """Return a singleton's decoded JSON value, if present and readable."""
        return self._read(name.value)

    def delete_singleton(self, name: Singleton) -> None:
        """Remove a singleton record."""
        self.backend.delete(name.value)

    def load_profile(self) -> UserProfile | None:
        """Return the stored user profile."""
        return self._load_record(Singleton.USER_PROFILE, UserProfile)

    def save_profile(self, profile: UserProfile) -> None:
        """Persist the user profile."""
        self.put_singleton(Singleton.USER_PROFILE, profile.to_json())

    def load_targets(self) -> DailyTarget | None:
        """Return the stored daily targets."""
        return self._load_record(Singleton.DAILY_TARGETS, DailyTarget)

    def save_targets(self, targets: DailyTarget) -> None:
        """Persist the daily targets."""
        self.put_singleton(Singleton.DAILY_TARGETS, targets.to_json())

    def load_settings(self) -> AppSettings:
        """Return stored settings, or defaults when unset."""
        settings = self._load_record(Singleton.APP_SETTINGS, AppSettings)
        return settings or AppSettings()

    def save_settings(self, settings: AppSettings) -> None:
        """Persist app settings."""
        self.put_singleton(Singleton.APP_SETTINGS, settings.to_json())

    def load_quick_log(self) -> list[QuickLogItem]:
        """Return the cached quick-log items."""
        payload = self.get_singleton(Singleton.QUICK_LOG_ITEMS)
        if payload is None:
            return []
        if not isinstance(payload, list):
            _logger.warning("Quick-log cache is not a list; treating as empty")
            return []
        return _validate_list(QuickLogItem, payload, Singleton.QUICK_LOG_ITEMS.value)

    def save_quick_log(self, items: list[QuickLogItem]) -> None:
        """Persist the quick-log items."""
        self.put_singleton(
            Singleton.QUICK_LOG_ITEMS, [item.to_json() for item in items]
        )

    def load_reset_marker(self) -> str | None:
        """Return the date key of the last observed day transition."""
        payload = self.get_singleton(Singleton.LAST_RESET)
        if payload is None:
            return None
        if isinstance(payload, str):
            try:
                parse_date_key(payload)
            except ValueError:
                pass
            else:
                return payload
        _logger.warning("Ignoring malformed reset marker: %r", payload)
        return None

    def save_reset_marker(self, date_key: str) -> None:
        """Persist the reset marker."""
        parse_date_key(date_key)
        self.put_singleton(Singleton.LAST_RESET, date_key)

    def clear_all(self, today: date, days: int = CLEAR_ALL_DAYS) -> None:
        """Delete every singleton and the ledgers of the trailing days."""
        for name in Singleton:
            self.delete_singleton(name)
        for offset in range(days):
            self.delete((today - timedelta(days=offset)).isoformat())

    def _load_record(self, name: Singleton, model: type[RecordT]) -> RecordT | None:
        payload = self.get_singleton(name)
        if payload is None:
            return None
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            _logger.warning("Ignoring invalid %s record: %s", name.value, exc)
            return None

    def _write(self, key: str, data: object) -> None:
        envelope = {"version": SCHEMA_VERSION, "data": data}
        self.backend.set(key, json.dumps(envelope, separators=(",", ":")))

    def _read(self, key: str) -> object | None:
        raw = self.backend.get(key)
        if raw is None:
            return None
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            _logger.warning("Ignoring undecodable record %s: %s", key, exc)
            return None
        version, data = _unwrap(decoded)
        if version < 0 or version > SCHEMA_VERSION:
            _logger.warning(
                "Ignoring record %s with unsupported schema version %s", key, version
            )
            return None
        while version < SCHEMA_VERSION:
            data = _MIGRATIONS[version](data)
            version += 1
        return data


def entries_key(date_key: str) -> str:
    """Return the storage key of a date's ledger."""
    parse_date_key(date_key)
    return f"{ENTRIES_KEY_PREFIX}_{date_key}"


def _unwrap(decoded: object) -> tuple[int, object]:
    """Split an envelope into version and data; bare values are version 0."""
    if (
        isinstance(decoded, dict)
        and set(decoded) == {"version", "data"}
        and isinstance(decoded["version"], int)
    ):
        return decoded["version"], decoded["data"]
    return 0, decoded


def _validate_list(
    model: type[RecordT], payload: list[object], key: str
) -> list[RecordT]:
    items: list[RecordT] = []
    for index, raw in enumerate(payload):
        try:
            items.append(model.model_validate(raw))
        except ValidationError as exc:
            _logger.warning(
                "Skipping invalid record %s[%s]: %s errors",
                key,
                index,
                exc.error_count(),
            )
    return items
