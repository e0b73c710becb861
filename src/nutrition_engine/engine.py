"""Caller-facing entry points of the nutrition engine."""

from dataclasses import dataclass
from uuid import UUID

from nutrition_engine.domain.nutrition import Ingredient, MealNutritionTotals
from nutrition_engine.domain.portions import MealType, PortionRecommendation
from nutrition_engine.domain.recipes import RecipeCandidate, RecipeRequest
from nutrition_engine.services.meals import MealService
from nutrition_engine.services.portions import PortionService
from nutrition_engine.services.recipes import RecipeService


@dataclass
class NutritionEngine:
    """Facade over meal resolution, portion advice and recipe generation."""

    meal_service: MealService
    portion_service: PortionService
    recipe_service: RecipeService

    async def resolve_meal(
        self,
        ingredients: list[Ingredient],
        deadline_seconds: float | None = None,
    ) -> MealNutritionTotals:
        return await self.meal_service.resolve_meal(ingredients, deadline_seconds)

    def recommend_portion(
        self, user_id: str, food_id: str, meal_type: str | MealType
    ) -> PortionRecommendation:
        return self.portion_service.recommend_portion(user_id, food_id, meal_type)

    def recommend_meal(
        self, user_id: str, meal_type: str | MealType, food_ids: list[str]
    ) -> list[PortionRecommendation]:
        return self.portion_service.recommend_meal(user_id, meal_type, food_ids)

    def record_feedback(
        self,
        recommendation_id: UUID,
        was_accepted: bool,
        actual_grams_used: float | None = None,
    ) -> None:
        self.portion_service.record_feedback(
            recommendation_id, was_accepted, actual_grams_used
        )

    async def generate_recipe(self, request: RecipeRequest) -> RecipeCandidate:
        return await self.recipe_service.generate_recipe(request)
