"""Supabase table acting as a key-value store."""

from dataclasses import dataclass

from supabase import Client

from calorie_tracker.services.ledger import KeyValueStore


@dataclass
class SupabaseKeyValueStore(KeyValueStore):
    """Stores records in a two-column ``key``/``value`` table."""

    client: Client
    table: str = "calorie_tracker_records"

    def get(self, key: str) -> str | None:
        """Return the value stored under a key."""
        response = (
            self.client.table(self.table)
            .select("value")
            .eq("key", key)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        if not rows:
            return None
        value = rows[0].get("value")
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        """Insert or replace the value under a key."""
        self.client.table(self.table).upsert(
            {"key": key, "value": value}, on_conflict="key"
        ).execute()

    def delete(self, key: str) -> None:
        """Delete the row for a key."""
        self.client.table(self.table).delete().eq("key", key).execute()
