"""In-memory key-value store."""

from dataclasses import dataclass, field

from calorie_tracker.services.ledger import KeyValueStore


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store; contents are lost on restart."""

    values: dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)
