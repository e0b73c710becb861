"""Tests for portion recommendations."""

from uuid import uuid4

import pytest

from nutrition_engine.domain.errors import InvalidInputError, UnresolvedFoodError
from nutrition_engine.domain.portions import (
    ConsumedTotals,
    FoodRecord,
    MacroBudget,
    MacroFit,
    MealType,
)
from nutrition_engine.services.portions import (
    candidate_portions,
    confidence_score,
    format_amount,
    optimize_portion,
    parse_meal_type,
    reasoning_for,
)
from tests.conftest import make_profile

_FULL_BUDGET = MacroBudget(
    remaining_calories=2000,
    remaining_protein_g=150,
    remaining_carbs_g=250,
    remaining_fat_g=65,
    remaining_fiber_g=25,
)


def _food(**profile_fields: float) -> FoodRecord:
    profile = make_profile(**profile_fields)
    return FoodRecord(id="food-1", name="Test food", profile=profile)


def test_protein_constrained_portion() -> None:
    food = _food(calories=165, protein_g=31, carbs_g=0, fat_g=3.6)

    candidates = candidate_portions(food.profile, _FULL_BUDGET, 0.35)
    recommendation = optimize_portion(food, _FULL_BUDGET, MealType.LUNCH)

    assert min(candidates) == pytest.approx(169.35, abs=0.01)
    assert len(candidates) == 3
    assert recommendation.recommended_grams == 169
    assert recommendation.recommended_amount == "169g (large portion)"
    assert recommendation.nutrition_preview.calories == 279
    assert recommendation.nutrition_preview.protein_g == 52.4
    assert recommendation.macro_fit.carbs_fit == 0
    assert recommendation.confidence_score == 50
    assert recommendation.reasoning == "Balanced portion based on your daily goals."
    assert recommendation.unit == "grams"
    assert recommendation.id is None


@pytest.mark.parametrize(
    ("remaining", "expected"),
    [(0.0, 10), (1.0, 10), (1_000_000.0, 500)],
)
def test_portion_is_clamped_to_allowed_range(remaining: float, expected: int) -> None:
    budget = MacroBudget(remaining, remaining, remaining, remaining, remaining)
    food = _food(calories=250, protein_g=10, carbs_g=30, fat_g=10)

    for meal_type in MealType:
        recommendation = optimize_portion(food, budget, meal_type)
        assert recommendation.recommended_grams == expected


def test_food_without_macros_gets_default_portion() -> None:
    food = _food(calories=0, protein_g=0, carbs_g=0, fat_g=0, sodium_mg=0)

    recommendation = optimize_portion(food, _FULL_BUDGET, MealType.SNACK)

    assert recommendation.recommended_grams == 100
    assert recommendation.recommended_amount == "100g (medium portion)"


def test_fit_percentages_are_capped() -> None:
    budget = MacroBudget(100, 5, 10, 1, 0)
    food = _food(calories=500, protein_g=20, carbs_g=60, fat_g=25)

    fit = optimize_portion(food, budget, MealType.DINNER).macro_fit

    for value in (fit.calories_fit, fit.protein_fit, fit.carbs_fit, fit.fat_fit):
        assert 0 <= value <= 100


def test_confidence_rewards_balanced_fit_and_complete_data() -> None:
    complete = make_profile(carbs_g=10, fiber_g=2)
    incomplete = make_profile(carbs_g=0, fiber_g=0)

    assert confidence_score(MacroFit(80, 80, 80, 80), complete) == 100
    assert confidence_score(MacroFit(80, 80, 80, 80), incomplete) == 90
    assert confidence_score(MacroFit(40, 40, 40, 40), incomplete) == 70
    assert confidence_score(MacroFit(10, 10, 10, 10), incomplete) == 50


def test_reasoning_lists_every_matching_rule() -> None:
    profile = make_profile(fiber_g=5)
    budget = MacroBudget(1000, 30, 100, 40, 20)

    reasoning = reasoning_for(profile, budget, MacroFit(100, 60, 40, 50))

    assert reasoning == (
        "Good protein fit (60% of remaining protein). "
        "Great calorie balance (100% of remaining calories). "
        "Good fiber source for digestive health."
    )


def test_reasoning_suggests_light_portion_for_small_budget() -> None:
    budget = MacroBudget(200, 10, 20, 5, 5)

    reasoning = reasoning_for(make_profile(), budget, MacroFit(10, 10, 10, 10))

    assert reasoning == "Light portion to stay within calorie goals."


@pytest.mark.parametrize(
    ("grams", "label"),
    [
        (10, "10g (small portion)"),
        (30, "30g (small portion)"),
        (31, "31g (medium portion)"),
        (200, "200g (large portion)"),
        (350, "350g (extra large portion)"),
    ],
)
def test_format_amount_labels(grams: float, label: str) -> None:
    assert format_amount(grams) == label


def test_parse_meal_type_rejects_unknown_values() -> None:
    assert parse_meal_type(" Dinner ") is MealType.DINNER
    with pytest.raises(InvalidInputError) as excinfo:
        parse_meal_type("brunch")
    assert excinfo.value.field == "meal_type"


def test_recommend_portion_persists_recommendation(
    portion_service, recommendation_repository
) -> None:
    recommendation = portion_service.recommend_portion("user-1", "chicken", "lunch")

    assert recommendation.id is not None
    saved = recommendation_repository.saved[recommendation.id]
    assert saved["meal_type"] is MealType.LUNCH
    assert saved["recommendation"].recommended_grams == recommendation.recommended_grams
    assert recommendation.recommended_grams == 169


def test_recommend_portion_uses_logged_totals(
    portion_service, budget_repository, clock
) -> None:
    today = clock.now.date()
    budget_repository.consumed[("user-1", today)] = ConsumedTotals(
        calories=1900, protein_g=150, carbs_g=250, fat_g=65, fiber_g=25
    )

    recommendation = portion_service.recommend_portion("user-1", "oats", "snack")

    assert recommendation.recommended_grams == 10
    assert "Light portion" in recommendation.reasoning


def test_recommend_portion_survives_storage_failure(
    portion_service, recommendation_repository
) -> None:
    recommendation_repository.fail_on_save = True

    recommendation = portion_service.recommend_portion("user-1", "oats", "breakfast")

    assert recommendation.id is None
    assert recommendation.recommended_grams >= 10


def test_recommend_portion_unknown_food(portion_service) -> None:
    with pytest.raises(UnresolvedFoodError):
        portion_service.recommend_portion("user-1", "missing", "lunch")


def test_recommend_meal_skips_unknown_foods(portion_service) -> None:
    recommendations = portion_service.recommend_meal(
        "user-1", MealType.DINNER, ["chicken", "missing", "oats"]
    )

    assert [item.food_id for item in recommendations] == ["chicken", "oats"]
    assert all(item.id is not None for item in recommendations)


def test_record_feedback(portion_service, recommendation_repository) -> None:
    recommendation = portion_service.recommend_portion("user-1", "oats", "lunch")

    portion_service.record_feedback(recommendation.id, True, 120.0)

    saved = recommendation_repository.saved[recommendation.id]
    assert saved["was_accepted"] is True
    assert saved["actual_grams_used"] == 120.0


def test_record_feedback_rejects_negative_grams(portion_service) -> None:
    with pytest.raises(InvalidInputError):
        portion_service.record_feedback(uuid4(), False, -5)
