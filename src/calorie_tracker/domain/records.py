"""Base model for persisted JSON records."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Record(BaseModel):
    """Record stored as JSON with camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, object]:
        """Return the JSON-ready representation used on disk and in exports."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
