"""Portion recommendations against the remaining macro budget."""

import logging
from dataclasses import dataclass, replace
from typing import Protocol
from uuid import UUID

from nutrition_engine.domain.errors import InvalidInputError, UnresolvedFoodError
from nutrition_engine.domain.nutrition import NutrientProfile
from nutrition_engine.domain.portions import (
    FoodRecord,
    MacroBudget,
    MacroFit,
    MealType,
    NutritionPreview,
    PortionRecommendation,
)
from nutrition_engine.policy import (
    BALANCED_FIT_RANGE,
    CALORIE_BALANCE_RANGE,
    CONFIDENCE_BALANCED_FIT_BONUS,
    CONFIDENCE_BASE,
    CONFIDENCE_COMPLETE_DATA_BONUS,
    CONFIDENCE_POOR_FIT_PENALTY,
    FIBER_CARBS_FIT_THRESHOLD,
    FIBER_RICH_PER_100G,
    LIGHT_PORTION_CALORIES,
    MEAL_TYPE_SHARES,
    POOR_FIT_HIGH,
    POOR_FIT_LOW,
    PORTION_DEFAULT_GRAMS,
    PORTION_LABEL_LARGEST,
    PORTION_LABELS,
    PORTION_MAX_GRAMS,
    PORTION_MIN_GRAMS,
    PROTEIN_FIT_THRESHOLD,
    PROTEIN_REMAINING_THRESHOLD,
)
from nutrition_engine.services.budget import MacroBudgetService

_logger = logging.getLogger(__name__)


class FoodRepository(Protocol):
    """Read access to stored foods."""

    def get_food(self, food_id: str) -> FoodRecord | None:
        """Return a food with its per-100g profile."""


class RecommendationRepository(Protocol):
    """Persistence for recommendations and their feedback."""

    def save_recommendation(
        self,
        user_id: str,
        meal_type: MealType,
        budget: MacroBudget,
        recommendation: PortionRecommendation,
    ) -> UUID:
        """Store a recommendation and return its id."""

    def update_feedback(
        self,
        recommendation_id: UUID,
        was_accepted: bool,
        actual_grams_used: float | None,
    ) -> None:
        """Record whether the user followed the recommendation."""


def parse_meal_type(raw: str | MealType) -> MealType:
    """Normalise a meal type string."""
    try:
        return MealType(str(raw).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(meal.value for meal in MealType)
        raise InvalidInputError("meal_type", f"must be one of {allowed}") from exc


def candidate_portions(
    profile: NutrientProfile, budget: MacroBudget, share: float
) -> list[float]:
    """Grams at which each macro alone would use its share of the budget.

    Macros the food does not contain are skipped.
    """
    pairs = (
        (budget.remaining_calories, profile.calories),
        (budget.remaining_protein_g, profile.protein_g),
        (budget.remaining_carbs_g, profile.carbs_g),
        (budget.remaining_fat_g, profile.fat_g),
    )
    return [
        (remaining * share) / (per_100g / 100.0)
        for remaining, per_100g in pairs
        if per_100g > 0
    ]


def clamp_portion(grams: float) -> float:
    return max(PORTION_MIN_GRAMS, min(PORTION_MAX_GRAMS, grams))


def preview_nutrition(profile: NutrientProfile, grams: float) -> NutritionPreview:
    """Nutrients for ``grams``; calories to the unit, the rest to 0.1 g."""
    amounts = profile.scaled(grams, micronutrients=())
    return NutritionPreview(
        calories=float(round(amounts.calories)),
        protein_g=round(amounts.protein_g, 1),
        carbs_g=round(amounts.carbs_g, 1),
        fat_g=round(amounts.fat_g, 1),
        fiber_g=round(amounts.fiber_g, 1),
    )


def _fit(amount: float, remaining: float) -> float:
    if remaining <= 0:
        return 0.0
    return max(0.0, min(100.0, amount / remaining * 100.0))


def macro_fit(preview: NutritionPreview, budget: MacroBudget) -> MacroFit:
    """Percentage of each remaining macro the portion covers."""
    return MacroFit(
        calories_fit=_fit(preview.calories, budget.remaining_calories),
        protein_fit=_fit(preview.protein_g, budget.remaining_protein_g),
        carbs_fit=_fit(preview.carbs_g, budget.remaining_carbs_g),
        fat_fit=_fit(preview.fat_g, budget.remaining_fat_g),
    )


def confidence_score(fit: MacroFit, profile: NutrientProfile) -> int:
    """Heuristic confidence (0-100) in a recommendation."""
    score = CONFIDENCE_BASE
    average = fit.average
    low, high = BALANCED_FIT_RANGE
    if low <= average <= high:
        score += CONFIDENCE_BALANCED_FIT_BONUS
    if profile.has_complete_macros:
        score += CONFIDENCE_COMPLETE_DATA_BONUS
    if average < POOR_FIT_LOW or average > POOR_FIT_HIGH:
        score -= CONFIDENCE_POOR_FIT_PENALTY
    return max(0, min(100, score))


def reasoning_for(
    profile: NutrientProfile, budget: MacroBudget, fit: MacroFit
) -> str:
    """Human-readable justification built from fixed thresholds."""
    reasons: list[str] = []
    if (
        fit.protein_fit > PROTEIN_FIT_THRESHOLD
        and budget.remaining_protein_g > PROTEIN_REMAINING_THRESHOLD
    ):
        reasons.append(
            f"Good protein fit ({round(fit.protein_fit)}% of remaining protein)"
        )
    low, high = CALORIE_BALANCE_RANGE
    if low <= fit.calories_fit <= high:
        reasons.append(
            f"Great calorie balance ({round(fit.calories_fit)}% of remaining calories)"
        )
    fiber_rich = profile.fiber_g > FIBER_RICH_PER_100G
    if fit.carbs_fit > FIBER_CARBS_FIT_THRESHOLD and fiber_rich:
        reasons.append("Good fiber source for digestive health")
    if budget.remaining_calories < LIGHT_PORTION_CALORIES:
        reasons.append("Light portion to stay within calorie goals")
    if not reasons:
        reasons.append("Balanced portion based on your daily goals")
    return ". ".join(reasons) + "."


def format_amount(grams: float) -> str:
    """Label a portion as e.g. ``"150g (large portion)"``."""
    for upper, label in PORTION_LABELS:
        if grams <= upper:
            return f"{round(grams)}g ({label})"
    return f"{round(grams)}g ({PORTION_LABEL_LARGEST})"


def optimize_portion(
    food: FoodRecord, budget: MacroBudget, meal_type: MealType
) -> PortionRecommendation:
    """Choose the most conservative portion that fits every macro.

    The smallest per-macro candidate wins so no single macro is overshot; the
    result is clamped to the allowed portion range.
    """
    profile = food.profile
    share = MEAL_TYPE_SHARES[meal_type.value]
    candidates = candidate_portions(profile, budget, share)
    grams = min(candidates) if candidates else PORTION_DEFAULT_GRAMS
    recommended_grams = round(clamp_portion(grams))
    preview = preview_nutrition(profile, recommended_grams)
    fit = macro_fit(preview, budget)
    return PortionRecommendation(
        food_id=food.id,
        food_name=food.name,
        recommended_grams=recommended_grams,
        recommended_amount=format_amount(recommended_grams),
        nutrition_preview=preview,
        macro_fit=fit,
        reasoning=reasoning_for(profile, budget, fit),
        confidence_score=confidence_score(fit, profile),
    )


@dataclass
class PortionService:
    """Recommends portions for stored foods and records feedback."""

    foods: FoodRepository
    budget_service: MacroBudgetService
    recommendations: RecommendationRepository

    def recommend_portion(
        self,
        user_id: str,
        food_id: str,
        meal_type: str | MealType,
        timezone_name: str = "UTC",
    ) -> PortionRecommendation:
        """Recommend a portion of ``food_id`` for the given meal."""
        meal = parse_meal_type(meal_type)
        food = self.foods.get_food(food_id)
        if food is None:
            raise UnresolvedFoodError(food_id, ["food_repository"])
        budget = self.budget_service.get_remaining(user_id, timezone_name)
        recommendation = optimize_portion(food, budget, meal)
        return self._store(user_id, meal, budget, recommendation)

    def recommend_meal(
        self,
        user_id: str,
        meal_type: str | MealType,
        food_ids: list[str],
        timezone_name: str = "UTC",
    ) -> list[PortionRecommendation]:
        """Recommend portions for several foods, skipping unknown ones."""
        meal = parse_meal_type(meal_type)
        budget = self.budget_service.get_remaining(user_id, timezone_name)
        results: list[PortionRecommendation] = []
        for food_id in food_ids:
            food = self.foods.get_food(food_id)
            if food is None:
                _logger.info("Skipping unknown food %s", food_id)
                continue
            recommendation = optimize_portion(food, budget, meal)
            results.append(self._store(user_id, meal, budget, recommendation))
        return results

    def record_feedback(
        self,
        recommendation_id: UUID,
        was_accepted: bool,
        actual_grams_used: float | None = None,
    ) -> None:
        """Record user feedback on a persisted recommendation."""
        if actual_grams_used is not None and actual_grams_used < 0:
            raise InvalidInputError("actual_grams_used", "must be >= 0")
        self.recommendations.update_feedback(
            recommendation_id, was_accepted, actual_grams_used
        )

    def _store(
        self,
        user_id: str,
        meal: MealType,
        budget: MacroBudget,
        recommendation: PortionRecommendation,
    ) -> PortionRecommendation:
        try:
            recommendation_id = self.recommendations.save_recommendation(
                user_id, meal, budget, recommendation
            )
        except Exception:
            _logger.exception(
                "Failed to store portion recommendation for food %s",
                recommendation.food_id,
            )
            return recommendation
        return replace(recommendation, id=recommendation_id)
