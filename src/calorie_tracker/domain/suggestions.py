"""Domain models for macro-based food suggestions."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CandidateFood:
    """A catalog food considered by the suggestion scorer."""

    name: str
    calories: float
    protein: float
    carbs: float
    fat: float
    sugar: float


@dataclass(frozen=True)
class ScoredSuggestion:
    """A candidate with its ranking score."""

    food: CandidateFood
    score: float
