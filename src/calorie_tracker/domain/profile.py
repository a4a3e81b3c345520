"""Profile, target and settings records."""

from enum import Enum

from pydantic import Field

from calorie_tracker.domain.records import Record


class Gender(str, Enum):
    """Gender options for target estimation."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class ActivityLevel(str, Enum):
    """Activity levels for target estimation."""

    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "very_active"


class Goal(str, Enum):
    """Weight goal for target estimation."""

    LOSE_WEIGHT = "lose_weight"
    MAINTAIN = "maintain"
    GAIN_MUSCLE = "gain_muscle"


class Units(str, Enum):
    """Unit system for weight and height."""

    METRIC = "metric"
    IMPERIAL = "imperial"


class UserProfile(Record):
    """User attributes; every field is optional until targets are estimated."""

    age: int | None = Field(default=None, ge=0)
    gender: Gender | None = None
    activity_level: ActivityLevel | None = None
    goal: Goal | None = None
    current_weight: float | None = Field(default=None, gt=0)
    height: float | None = Field(default=None, gt=0)
    units: Units | None = None


class DailyTarget(Record):
    """Daily goals; sugar is a maximum rather than a goal."""

    calories: float = Field(default=0.0, ge=0)
    protein: float = Field(default=0.0, ge=0)
    carbs: float = Field(default=0.0, ge=0)
    fat: float = Field(default=0.0, ge=0)
    sugar: float = Field(default=0.0, ge=0)


class AppSettings(Record):
    """Client preferences stored alongside the ledgers."""

    api_key: str | None = None
    quick_capture: bool = True
    auto_submit: bool = True
    dark_mode: bool = True
    notifications: bool = False
    reminder_times: list[str] | None = None
