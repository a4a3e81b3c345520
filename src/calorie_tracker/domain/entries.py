"""Domain models for logged food entries."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import Field

from calorie_tracker.domain.records import Record

BREAKFAST_END_HOUR = 11
LUNCH_END_HOUR = 15
DINNER_END_HOUR = 20


class MealType(str, Enum):
    """Meal classification for an entry."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


@dataclass(frozen=True)
class NutritionTotals:
    """Calories and macro grams summed at full precision."""

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    sugar: float = 0.0

    def rounded(self) -> "NutritionTotals":
        """Return presentation values: whole calories, grams to one decimal."""
        return NutritionTotals(
            calories=float(round(self.calories)),
            protein=round(self.protein, 1),
            carbs=round(self.carbs, 1),
            fat=round(self.fat, 1),
            sugar=round(self.sugar, 1),
        )


def new_entry_id() -> str:
    """Return a fresh opaque entry identifier."""
    return f"food_{uuid4().hex}"


class FoodEntry(Record):
    """A single logged food item."""

    id: str = Field(default_factory=new_entry_id, min_length=1)
    name: str = Field(min_length=1)
    calories: float = Field(default=0.0, ge=0)
    protein: float = Field(default=0.0, ge=0)
    carbs: float = Field(default=0.0, ge=0)
    fat: float = Field(default=0.0, ge=0)
    sugar: float = Field(default=0.0, ge=0)
    timestamp: datetime
    meal_type: MealType | None = None
    image_url: str | None = None
    portion: str | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    @property
    def totals(self) -> NutritionTotals:
        """Return the entry's nutrition as a totals value."""
        return NutritionTotals(
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
            sugar=self.sugar,
        )


def infer_meal_type(moment: datetime) -> MealType:
    """Classify a meal by the local hour it was eaten."""
    if moment.hour < BREAKFAST_END_HOUR:
        return MealType.BREAKFAST
    if moment.hour < LUNCH_END_HOUR:
        return MealType.LUNCH
    if moment.hour < DINNER_END_HOUR:
        return MealType.DINNER
    return MealType.SNACK
