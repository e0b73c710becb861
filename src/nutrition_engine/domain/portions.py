"""Domain models for macro budgets and portion recommendations."""

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from nutrition_engine.domain.nutrition import NutrientProfile


class MealType(StrEnum):
    """Meal slots with a fixed share of the daily budget."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


@dataclass(frozen=True)
class MacroGoals:
    """Daily macro goals for a user."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float


@dataclass(frozen=True)
class ConsumedTotals:
    """Macros already logged today."""

    calories: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0
    fiber_g: float = 0.0


@dataclass(frozen=True)
class MacroBudget:
    """Remaining daily macros, each floored at zero."""

    remaining_calories: float
    remaining_protein_g: float
    remaining_carbs_g: float
    remaining_fat_g: float
    remaining_fiber_g: float


@dataclass(frozen=True)
class FoodRecord:
    """Food known to the persistence layer with its per-100g profile."""

    id: str
    name: str
    profile: NutrientProfile


@dataclass(frozen=True)
class NutritionPreview:
    """Nutrients for the recommended portion."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float


@dataclass(frozen=True)
class MacroFit:
    """Share of each remaining macro covered by the portion, in percent."""

    calories_fit: float
    protein_fit: float
    carbs_fit: float
    fat_fit: float

    @property
    def average(self) -> float:
        total = self.calories_fit + self.protein_fit + self.carbs_fit + self.fat_fit
        return total / 4


@dataclass(frozen=True)
class PortionRecommendation:
    """Recommended portion of a food against the remaining budget."""

    food_id: str
    food_name: str
    recommended_grams: int
    recommended_amount: str
    nutrition_preview: NutritionPreview
    macro_fit: MacroFit
    reasoning: str
    confidence_score: int
    unit: str = "grams"
    id: UUID | None = None
