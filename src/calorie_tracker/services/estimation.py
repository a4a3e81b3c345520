"""Nutrition estimation through an LLM provider."""

import base64
import logging
import math
from dataclasses import dataclass, field
from typing import Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from calorie_tracker.domain.entries import MealType, NutritionTotals
from calorie_tracker.domain.estimates import MealIdeas, NutritionEstimate
from calorie_tracker.domain.profile import DailyTarget, UserProfile, Units
from calorie_tracker.services.ledger import LedgerStore

CALORIE_STEP = 50
MACRO_STEP = 5
SUGAR_MIN = 25.0
SUGAR_MAX = 30.0

_logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_NUMBER = {"type": "number", "minimum": 0}
_NULLABLE_STRING = {"anyOf": [{"type": "string"}, {"type": "null"}]}

FOOD_ESTIMATE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "calories": _NUMBER,
        "protein": _NUMBER,
        "carbs": _NUMBER,
        "fat": _NUMBER,
        "sugar": _NUMBER,
        "portion": _NULLABLE_STRING,
        "confidence": {
            "anyOf": [
                {"type": "number", "minimum": 0.0, "maximum": 1.0},
                {"type": "null"},
            ]
        },
    },
    "required": [
        "name",
        "calories",
        "protein",
        "carbs",
        "fat",
        "sugar",
        "portion",
        "confidence",
    ],
    "additionalProperties": False,
}

TARGETS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "calories": _NUMBER,
        "protein": _NUMBER,
        "carbs": _NUMBER,
        "fat": _NUMBER,
        "sugar": _NUMBER,
    },
    "required": ["calories", "protein", "carbs", "fat", "sugar"],
    "additionalProperties": False,
}

MEAL_IDEAS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {"suggestions": {"type": "array", "items": {"type": "string"}}},
    "required": ["suggestions"],
    "additionalProperties": False,
}

_FOOD_FIELDS = (
    "- name: descriptive name of the food\n"
    "- calories: estimated calories\n"
    "- protein, carbs, fat, sugar: grams\n"
    '- portion: e.g. "1 cup", "100g", "1 medium"\n'
    "- confidence: 0-1, your confidence in the estimate"
)


class EstimationError(RuntimeError):
    """Raised when the provider produces no usable estimate."""


class MissingCredentialsError(EstimationError):
    """Raised when no API key is configured."""


class CredentialProvider(Protocol):
    """Supplies the provider API key at request time."""

    def get_api_key(self) -> str | None:
        """Return the API key, if configured."""


@dataclass
class StaticCredentialProvider(CredentialProvider):
    """Credential fixed at startup, typically from settings."""

    api_key: str | None

    def get_api_key(self) -> str | None:
        return self.api_key or None


@dataclass
class StoredCredentialProvider(CredentialProvider):
    """Credential saved by the user in app settings."""

    store: LedgerStore

    def get_api_key(self) -> str | None:
        return self.store.load_settings().api_key or None


@dataclass
class ChainedCredentialProvider(CredentialProvider):
    """Returns the first key any provider supplies."""

    providers: list[CredentialProvider] = field(default_factory=list)

    def get_api_key(self) -> str | None:
        for provider in self.providers:
            key = provider.get_api_key()
            if key:
                return key
        return None


class EstimationClient(Protocol):
    """Interface for structured LLM completions."""

    async def complete(
        self,
        *,
        model: str,
        prompt: str,
        schema_name: str,
        schema: dict[str, object],
        image_data_url: str | None = None,
    ) -> dict[str, object]:
        """Return the provider's JSON object for the prompt."""


@dataclass
class EstimationService:
    """Builds prompts and validates provider output once, at this boundary."""

    client: EstimationClient
    vision_model: str
    text_model: str

    async def estimate_from_image(
        self, image_bytes: bytes, context: str | None = None
    ) -> NutritionEstimate:
        """Estimate nutrition for a photographed food."""
        prompt = (
            f"Analyze this food image and provide nutritional information. "
            f"{context or ''}\nRespond with a JSON object containing:\n"
            f"{_FOOD_FIELDS}\n"
            "Be accurate but conservative. If unsure, estimate calories on the "
            "higher side."
        )
        raw = await self._request(
            model=self.vision_model,
            prompt=prompt,
            schema_name="food_estimate",
            schema=FOOD_ESTIMATE_SCHEMA,
            image_data_url=_to_data_url(image_bytes),
        )
        return _validate(NutritionEstimate, raw)

    async def estimate_from_text(self, description: str) -> NutritionEstimate:
        """Estimate nutrition for a typed or spoken description."""
        if not description.strip():
            raise ValueError("Description cannot be empty")
        prompt = (
            "Analyze this food description and provide nutritional information: "
            f'"{description.strip()}"\nRespond with a JSON object containing:\n'
            f"{_FOOD_FIELDS}\n"
            "Consider typical portion sizes."
        )
        raw = await self._request(
            model=self.text_model,
            prompt=prompt,
            schema_name="food_estimate",
            schema=FOOD_ESTIMATE_SCHEMA,
        )
        return _validate(NutritionEstimate, raw)

    async def estimate_targets(self, profile: UserProfile) -> DailyTarget:
        """Estimate daily targets for a profile, normalised to round numbers."""
        weight_unit, height_unit = (
            ("lbs", "inches") if profile.units == Units.IMPERIAL else ("kg", "cm")
        )
        prompt = (
            "Calculate daily nutritional targets for a person with this profile:\n"
            f"- Age: {profile.age or 'not specified'}\n"
            f"- Gender: {_enum_text(profile.gender, 'not specified')}\n"
            f"- Activity level: {_enum_text(profile.activity_level, 'moderate')}\n"
            f"- Goal: {_enum_text(profile.goal, 'maintain')}\n"
            f"- Current weight: {_measure(profile.current_weight, weight_unit)}\n"
            f"- Height: {_measure(profile.height, height_unit)}\n"
            "Provide realistic, healthy targets: calories, protein, carbs and fat "
            "in grams per day, and sugar as a daily maximum in grams."
        )
        raw = await self._request(
            model=self.text_model,
            prompt=prompt,
            schema_name="daily_targets",
            schema=TARGETS_SCHEMA,
        )
        return normalize_targets(_validate(DailyTarget, raw))

    async def suggest_meals(
        self,
        remaining: NutritionTotals,
        meal_type: MealType,
        preferences: list[str] | None = None,
    ) -> list[str]:
        """Ask for three meal ideas that fit the remaining budget."""
        prompt = (
            f"Suggest 3 {meal_type.value} options that would help meet these "
            "remaining nutritional targets:\n"
            f"- Calories: {remaining.calories:.0f}\n"
            f"- Protein: {remaining.protein:.0f}g\n"
            f"- Carbs: {remaining.carbs:.0f}g\n"
            f"- Fat: {remaining.fat:.0f}g\n"
        )
        if preferences:
            prompt += f"Preferences: {', '.join(preferences)}\n"
        prompt += "Each suggestion is one meal with its portion size."
        raw = await self._request(
            model=self.text_model,
            prompt=prompt,
            schema_name="meal_ideas",
            schema=MEAL_IDEAS_SCHEMA,
        )
        return _validate(MealIdeas, raw).suggestions

    async def _request(
        self,
        *,
        model: str,
        prompt: str,
        schema_name: str,
        schema: dict[str, object],
        image_data_url: str | None = None,
    ) -> dict[str, object]:
        try:
            return await self.client.complete(
                model=model,
                prompt=prompt,
                schema_name=schema_name,
                schema=schema,
                image_data_url=image_data_url,
            )
        except EstimationError:
            raise
        except Exception as exc:
            _logger.exception("Estimation request failed", extra={"model": model})
            raise EstimationError(f"Estimation request failed: {exc}") from exc


def normalize_targets(target: DailyTarget) -> DailyTarget:
    """Round calories to 50, macros to 5, and clamp sugar to [25, 30]."""
    return DailyTarget(
        calories=_round_to_step(target.calories, CALORIE_STEP),
        protein=_round_to_step(target.protein, MACRO_STEP),
        carbs=_round_to_step(target.carbs, MACRO_STEP),
        fat=_round_to_step(target.fat, MACRO_STEP),
        sugar=min(max(target.sugar, SUGAR_MIN), SUGAR_MAX),
    )


def _round_to_step(value: float, step: int) -> float:
    return float(math.floor(value / step + 0.5) * step)


def _validate(model: type[ModelT], raw: object) -> ModelT:
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise EstimationError(f"Provider returned an invalid payload: {exc}") from exc


def _enum_text(value: object, default: str) -> str:
    return getattr(value, "value", None) or default


def _measure(value: float | None, unit: str) -> str:
    if value is None:
        return "not specified"
    return f"{value:g}{unit}"


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    if not image_bytes:
        raise ValueError("Image is empty")
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
