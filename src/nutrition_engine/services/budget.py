"""Remaining daily macro budget."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol
from zoneinfo import ZoneInfo

from nutrition_engine.domain.portions import ConsumedTotals, MacroBudget, MacroGoals
from nutrition_engine.policy import DEFAULT_DAILY_GOALS
from nutrition_engine.services.cache import Clock, utc_now


class BudgetRepository(Protocol):
    """Persistence interface for goals and logged daily totals."""

    def get_goals(self, user_id: str) -> MacroGoals | None:
        """Return the user's daily goals if configured."""

    def get_consumed(self, user_id: str, day: date) -> ConsumedTotals:
        """Return totals logged by the user on ``day``."""


def default_goals() -> MacroGoals:
    return MacroGoals(
        calories=DEFAULT_DAILY_GOALS["calories"],
        protein_g=DEFAULT_DAILY_GOALS["protein"],
        carbs_g=DEFAULT_DAILY_GOALS["carbs"],
        fat_g=DEFAULT_DAILY_GOALS["fat"],
        fiber_g=DEFAULT_DAILY_GOALS["fiber"],
    )


def remaining_budget(goals: MacroGoals, consumed: ConsumedTotals) -> MacroBudget:
    """Return goal minus consumed per macro, each floored at zero."""
    return MacroBudget(
        remaining_calories=max(0.0, goals.calories - consumed.calories),
        remaining_protein_g=max(0.0, goals.protein_g - consumed.protein_g),
        remaining_carbs_g=max(0.0, goals.carbs_g - consumed.carbs_g),
        remaining_fat_g=max(0.0, goals.fat_g - consumed.fat_g),
        remaining_fiber_g=max(0.0, goals.fiber_g - consumed.fiber_g),
    )


@dataclass
class MacroBudgetService:
    """Derives today's remaining budget from stored goals and logs."""

    repository: BudgetRepository
    clock: Clock = utc_now

    def get_remaining(self, user_id: str, timezone_name: str = "UTC") -> MacroBudget:
        """Return today's remaining macros in the user's timezone."""
        today = self._today(timezone_name)
        goals = self.repository.get_goals(user_id) or default_goals()
        consumed = self.repository.get_consumed(user_id, today)
        return remaining_budget(goals, consumed)

    def _today(self, timezone_name: str) -> date:
        now: datetime = self.clock()
        return now.astimezone(ZoneInfo(timezone_name)).date()
