"""Key-value store persisted to a single JSON file."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from calorie_tracker.services.ledger import KeyValueStore

_logger = logging.getLogger(__name__)


@dataclass
class JsonFileStore(KeyValueStore):
    """Keeps all records in one JSON object, rewritten atomically on change."""

    path: Path
    _values: dict[str, str] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._values = self._load()

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._flush()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf8") as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            self._move_aside(f"invalid JSON: {exc}")
            return {}
        if not isinstance(data, dict):
            self._move_aside(f"expected an object, got {type(data).__name__}")
            return {}
        invalid = [key for key, value in data.items() if not isinstance(value, str)]
        if invalid:
            self._move_aside(f"non-string values under {', '.join(sorted(invalid))}")
            return {}
        return data

    def _move_aside(self, reason: str) -> None:
        corrupt_path = self.path.with_suffix(".json.corrupt")
        _logger.error(
            "Unreadable store %s (%s), moving it to %s", self.path, reason, corrupt_path
        )
        self.path.replace(corrupt_path)

    def _flush(self) -> None:
        temp_path = self.path.with_suffix(".json.tmp")
        with temp_path.open("w", encoding="utf8") as handle:
            json.dump(self._values, handle, indent=2, sort_keys=True)
        temp_path.replace(self.path)
        _logger.debug("Wrote %s records to %s", len(self._values), self.path)
