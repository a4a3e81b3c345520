"""Ranks catalog foods against the remaining macro budget."""

from collections.abc import Sequence
from dataclasses import dataclass

from calorie_tracker.domain.entries import NutritionTotals
from calorie_tracker.domain.profile import DailyTarget
from calorie_tracker.domain.suggestions import CandidateFood, ScoredSuggestion

MAX_SUGGESTIONS = 6
MIN_CANDIDATE_CALORIES = 150.0
MAX_CANDIDATE_CALORIES = 400.0
CALORIE_OVERSHOOT = 50.0
PROTEIN_NEED_THRESHOLD = 10.0
SUGAR_LOW_THRESHOLD = 5.0
SUGAR_PENALTY = 50.0
PORTION_OF_REMAINING = 0.3

DEFAULT_CATALOG: tuple[CandidateFood, ...] = (
    CandidateFood("Grilled Chicken Breast", 165, 31, 0, 3.6, 0),
    CandidateFood("Greek Yogurt (Plain)", 100, 17, 6, 0.7, 4),
    CandidateFood("Cottage Cheese", 98, 11, 3.4, 4.3, 2.7),
    CandidateFood("Hard Boiled Eggs (2)", 155, 13, 1.1, 11, 1.1),
    CandidateFood("Tuna (in water)", 116, 26, 0, 1, 0),
    CandidateFood("Apple with Peanut Butter", 267, 8, 35, 13, 20),
    CandidateFood("Protein Shake", 200, 20, 20, 5, 5),
    CandidateFood("Turkey Sandwich", 350, 24, 35, 12, 5),
    CandidateFood("Mixed Nuts (30g)", 180, 5, 8, 16, 1),
    CandidateFood("Avocado Toast", 250, 6, 30, 14, 3),
    CandidateFood("Baby Carrots with Hummus", 150, 5, 20, 7, 6),
    CandidateFood("Rice Cakes (2)", 70, 1, 15, 0.5, 0),
    CandidateFood("String Cheese", 80, 6, 1, 6, 0),
    CandidateFood("Edamame", 95, 8, 7, 4, 2),
    CandidateFood("Cucumber Slices", 16, 0.7, 3.6, 0.1, 1.7),
    CandidateFood("Protein Bar", 250, 20, 25, 9, 8),
    CandidateFood("Trail Mix", 350, 10, 35, 22, 15),
    CandidateFood("Banana with Almond Butter", 300, 8, 35, 16, 18),
    CandidateFood("Quinoa Bowl", 400, 15, 55, 12, 5),
    CandidateFood("Salmon Filet", 280, 35, 0, 15, 0),
)


@dataclass
class SuggestionService:
    """Suggests what to eat next from a fixed catalog."""

    catalog: Sequence[CandidateFood] = DEFAULT_CATALOG
    limit: int = MAX_SUGGESTIONS

    def suggest(
        self, consumed: NutritionTotals, target: DailyTarget | None
    ) -> list[ScoredSuggestion]:
        """Return the best-scoring candidates that fit the remaining calories."""
        if target is None:
            return []
        remaining = compute_remaining(target, consumed)
        upper = min(MAX_CANDIDATE_CALORIES, remaining.calories + CALORIE_OVERSHOOT)
        scored = [
            ScoredSuggestion(food=food, score=score_candidate(food, remaining))
            for food in self.catalog
            if MIN_CANDIDATE_CALORIES <= food.calories <= upper
        ]
        scored.sort(key=lambda item: item.score, reverse=True)
        return scored[: self.limit]


def compute_remaining(
    target: DailyTarget, consumed: NutritionTotals
) -> NutritionTotals:
    """Return target minus consumed per field; values may be negative."""
    return NutritionTotals(
        calories=target.calories - consumed.calories,
        protein=target.protein - consumed.protein,
        carbs=target.carbs - consumed.carbs,
        fat=target.fat - consumed.fat,
        sugar=target.sugar - consumed.sugar,
    )


def score_candidate(food: CandidateFood, remaining: NutritionTotals) -> float:
    """Score a candidate for protein need, sugar budget, balance and size."""
    score = 0.0
    if remaining.protein > PROTEIN_NEED_THRESHOLD:
        score += food.protein / remaining.protein * 100
    if remaining.sugar < SUGAR_LOW_THRESHOLD and food.sugar > SUGAR_LOW_THRESHOLD:
        score -= SUGAR_PENALTY

    if food.calories > 0:
        protein_fraction = food.protein * 4 / food.calories
        carb_fraction = food.carbs * 4 / food.calories
        fat_fraction = food.fat * 9 / food.calories
        if protein_fraction > 0.25:
            score += 30
        if carb_fraction < 0.5:
            score += 20
        if fat_fraction < 0.4:
            score += 10

    if remaining.calories > 0:
        ideal = remaining.calories * PORTION_OF_REMAINING
        fit = 1 - abs(food.calories - ideal) / remaining.calories
        score += fit * 50
    return score
