"""Domain models for the quick-log cache."""

from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

from pydantic import Field

from calorie_tracker.domain.records import Record


class QuickLogItem(Record):
    """Reusable food template built from previously logged entries."""

    id: str = Field(default_factory=lambda: f"quick_{uuid4().hex}")
    name: str = Field(min_length=1)
    calories: float = Field(default=0.0, ge=0)
    protein: float = Field(default=0.0, ge=0)
    carbs: float = Field(default=0.0, ge=0)
    fat: float = Field(default=0.0, ge=0)
    sugar: float = Field(default=0.0, ge=0)
    image_url: str | None = None
    last_used: datetime | None = None
    frequency: int = Field(default=0, ge=0)
    starred: bool = False


@dataclass(frozen=True)
class QuickLogGroups:
    """Quick-log items split for display."""

    favorites: list[QuickLogItem]
    recents: list[QuickLogItem]
