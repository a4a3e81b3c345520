"""Models for nutrition estimates returned by the LLM."""

from pydantic import BaseModel, Field


class NutritionEstimate(BaseModel):
    """Structured nutrition estimate for a described or photographed food."""

    name: str = "Unknown food"
    calories: float = Field(default=0.0, ge=0)
    protein: float = Field(default=0.0, ge=0)
    carbs: float = Field(default=0.0, ge=0)
    fat: float = Field(default=0.0, ge=0)
    sugar: float = Field(default=0.0, ge=0)
    portion: str | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class MealIdeas(BaseModel):
    """Free-text meal ideas for the remaining budget."""

    suggestions: list[str] = Field(default_factory=list)
