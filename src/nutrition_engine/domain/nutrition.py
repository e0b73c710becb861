"""Nutrition domain models."""

import math
from dataclasses import dataclass, field
from enum import StrEnum

_AMOUNT_FIELDS = ("calories", "protein_g", "carbs_g", "fat_g", "fiber_g", "sodium_mg")


class NutrientSource(StrEnum):
    """Provenance of a nutrient profile, in trust order."""

    VERIFIED = "verified"
    EXTERNAL = "external"
    AI_ESTIMATE = "ai_estimate"
    GUESS = "guess"


@dataclass(frozen=True)
class NutrientAmounts:
    """Absolute nutrient amounts for a given quantity of food."""

    calories: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0
    fiber_g: float = 0.0
    sodium_mg: float = 0.0
    micronutrients: dict[str, float] = field(default_factory=dict)

    def plus(self, other: "NutrientAmounts") -> "NutrientAmounts":
        """Return the field-wise sum of two amounts."""
        micros = dict(self.micronutrients)
        for name, amount in other.micronutrients.items():
            micros[name] = micros.get(name, 0.0) + amount
        return NutrientAmounts(
            calories=self.calories + other.calories,
            protein_g=self.protein_g + other.protein_g,
            carbs_g=self.carbs_g + other.carbs_g,
            fat_g=self.fat_g + other.fat_g,
            fiber_g=self.fiber_g + other.fiber_g,
            sodium_mg=self.sodium_mg + other.sodium_mg,
            micronutrients=micros,
        )


@dataclass(frozen=True)
class NutrientProfile:
    """Canonical per-100g nutrient record with provenance."""

    name: str
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float
    sodium_mg: float
    source: NutrientSource
    confidence: float
    micronutrients: dict[str, float] = field(default_factory=dict)
    source_ref: str | None = None

    def __post_init__(self) -> None:
        for name in _AMOUNT_FIELDS:
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} per 100g must be a non-negative number")
        for name, value in self.micronutrients.items():
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"micronutrient {name} must be a non-negative number")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("confidence must be within [0, 1]")

    @property
    def has_complete_macros(self) -> bool:
        """True when protein, carbs, fat and fiber are all populated."""
        macros = (self.protein_g, self.carbs_g, self.fat_g, self.fiber_g)
        return all(value > 0 for value in macros)

    def scaled(
        self, grams: float, micronutrients: tuple[str, ...] | None = None
    ) -> NutrientAmounts:
        """Scale the per-100g values to an absolute amount for ``grams``."""
        factor = grams / 100.0
        names = self.micronutrients.keys() if micronutrients is None else micronutrients
        return NutrientAmounts(
            calories=self.calories * factor,
            protein_g=self.protein_g * factor,
            carbs_g=self.carbs_g * factor,
            fat_g=self.fat_g * factor,
            fiber_g=self.fiber_g * factor,
            sodium_mg=self.sodium_mg * factor,
            micronutrients={
                name: self.micronutrients.get(name, 0.0) * factor for name in names
            },
        )


@dataclass(frozen=True)
class Ingredient:
    """Caller-supplied ingredient reference."""

    name: str
    quantity: float
    unit: str = "g"


@dataclass(frozen=True)
class ResolvedIngredient:
    """Ingredient matched to a profile and scaled to its converted weight."""

    ingredient: Ingredient
    profile: NutrientProfile
    grams: float
    nutrients: NutrientAmounts
    confidence: float


@dataclass(frozen=True)
class UnresolvedIngredient:
    """Ingredient that no source could resolve."""

    ingredient: Ingredient
    reason: str
    unresolved: bool = True


@dataclass(frozen=True)
class MealNutritionTotals:
    """Summed nutrients for a meal with a per-ingredient trail."""

    totals: NutrientAmounts
    ingredients: list[ResolvedIngredient]
    unresolved: list[UnresolvedIngredient]
    confidence: float
    sources: list[str]

    @property
    def is_partial(self) -> bool:
        """True when at least one ingredient was excluded from the totals."""
        return bool(self.unresolved)
