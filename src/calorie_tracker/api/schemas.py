"""Request models for the HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field

from calorie_tracker.domain.entries import MealType
from calorie_tracker.domain.estimates import NutritionEstimate


class EntryPayload(BaseModel):
    """Request to log a confirmed food entry."""

    name: str = Field(min_length=1)
    calories: float = Field(ge=0)
    protein: float = Field(default=0.0, ge=0)
    carbs: float = Field(default=0.0, ge=0)
    fat: float = Field(default=0.0, ge=0)
    sugar: float = Field(default=0.0, ge=0)
    timestamp: datetime | None = None
    meal_type: MealType | None = None
    image_url: str | None = None
    portion: str | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class EntryUpdatePayload(BaseModel):
    """Partial manual adjustment of an entry."""

    name: str | None = Field(default=None, min_length=1)
    calories: float | None = Field(default=None, ge=0)
    protein: float | None = Field(default=None, ge=0)
    carbs: float | None = Field(default=None, ge=0)
    fat: float | None = Field(default=None, ge=0)
    sugar: float | None = Field(default=None, ge=0)
    meal_type: MealType | None = None
    portion: str | None = None


class EstimatedEntryPayload(BaseModel):
    """Request to log an entry from a confirmed estimate."""

    estimate: NutritionEstimate
    meal_type: MealType | None = None
    image_url: str | None = None


class TextEstimatePayload(BaseModel):
    """Food description to estimate."""

    description: str = Field(min_length=1)


class ImageEstimatePayload(BaseModel):
    """Base64 image (optionally a data URL) to estimate."""

    image_base64: str = Field(min_length=1)
    context: str | None = None


class MealIdeasPayload(BaseModel):
    """Request for AI meal ideas."""

    meal_type: MealType | None = None
    preferences: list[str] = Field(default_factory=list)


class SettingsPayload(BaseModel):
    """Partial update of app settings."""

    api_key: str | None = None
    quick_capture: bool | None = None
    auto_submit: bool | None = None
    dark_mode: bool | None = None
    notifications: bool | None = None
    reminder_times: list[str] | None = None


class VisibilityPayload(BaseModel):
    """Client foreground/background notification."""

    visible: bool
