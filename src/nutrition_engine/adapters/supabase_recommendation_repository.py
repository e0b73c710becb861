"""Supabase repository for portion recommendations."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from nutrition_engine.domain.portions import (
    MacroBudget,
    MealType,
    PortionRecommendation,
)
from nutrition_engine.services.portions import RecommendationRepository


@dataclass
class SupabaseRecommendationRepository(RecommendationRepository):
    """Stores recommendations in ``portion_recommendations``."""

    client: Client

    def save_recommendation(
        self,
        user_id: str,
        meal_type: MealType,
        budget: MacroBudget,
        recommendation: PortionRecommendation,
    ) -> UUID:
        """Insert a recommendation and return its id."""
        response = (
            self.client.table("portion_recommendations")
            .insert(
                {
                    "user_id": user_id,
                    "food_id": recommendation.food_id,
                    "meal_type": meal_type.value,
                    "remaining_calories": budget.remaining_calories,
                    "remaining_protein": budget.remaining_protein_g,
                    "remaining_carbs": budget.remaining_carbs_g,
                    "remaining_fat": budget.remaining_fat_g,
                    "recommended_grams": recommendation.recommended_grams,
                    "confidence_score": recommendation.confidence_score / 100,
                    "reasoning": recommendation.reasoning,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to store portion recommendation")
        return UUID(str(response.data[0]["id"]))

    def update_feedback(
        self,
        recommendation_id: UUID,
        was_accepted: bool,
        actual_grams_used: float | None,
    ) -> None:
        """Record whether the recommendation was followed."""
        self.client.table("portion_recommendations").update(
            {"was_accepted": was_accepted, "actual_grams_used": actual_grams_used}
        ).eq("id", str(recommendation_id)).execute()
