"""Supabase repository for daily goals and logged totals."""

from dataclasses import dataclass
from datetime import date

from supabase import Client

from nutrition_engine.domain.portions import ConsumedTotals, MacroGoals
from nutrition_engine.policy import DEFAULT_DAILY_GOALS
from nutrition_engine.services.budget import BudgetRepository


@dataclass
class SupabaseBudgetRepository(BudgetRepository):
    """Reads goals from ``users`` and totals from ``daily_nutrition``."""

    client: Client

    def get_goals(self, user_id: str) -> MacroGoals | None:
        """Return the user's goals; unset goals fall back to defaults."""
        response = (
            self.client.table("users")
            .select(
                "daily_calorie_goal, daily_protein_goal, daily_carb_goal, "
                "daily_fat_goal, daily_fiber_goal"
            )
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return MacroGoals(
            calories=_goal(row, "daily_calorie_goal", "calories"),
            protein_g=_goal(row, "daily_protein_goal", "protein"),
            carbs_g=_goal(row, "daily_carb_goal", "carbs"),
            fat_g=_goal(row, "daily_fat_goal", "fat"),
            fiber_g=_goal(row, "daily_fiber_goal", "fiber"),
        )

    def get_consumed(self, user_id: str, day: date) -> ConsumedTotals:
        """Return the totals logged on ``day``; zero when nothing is logged."""
        response = (
            self.client.table("daily_nutrition")
            .select(
                "total_calories, total_protein, total_carbs, total_fat, total_fiber"
            )
            .eq("user_id", user_id)
            .eq("date", day.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return ConsumedTotals()
        row = response.data[0]
        return ConsumedTotals(
            calories=float(row.get("total_calories") or 0.0),
            protein_g=float(row.get("total_protein") or 0.0),
            carbs_g=float(row.get("total_carbs") or 0.0),
            fat_g=float(row.get("total_fat") or 0.0),
            fiber_g=float(row.get("total_fiber") or 0.0),
        )


def _goal(row: dict[str, object], column: str, default_key: str) -> float:
    value = row.get(column)
    if isinstance(value, int | float) and value > 0:
        return float(value)
    return DEFAULT_DAILY_GOALS[default_key]
