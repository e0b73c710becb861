"""Domain models for recipe generation."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class RecipeProvenance(StrEnum):
    """Where an accepted recipe came from."""

    GENERATED = "generated"
    TEMPLATE = "template"


@dataclass(frozen=True)
class RecipeRequest:
    """Structured constraints for a generated recipe."""

    cuisine: str | None = None
    diet: str | None = None
    calorie_target: float | None = None
    protein_target: float | None = None
    pantry_items: tuple[str, ...] = ()
    exclusions: tuple[str, ...] = ()
    seed: str | None = None


@dataclass(frozen=True)
class RecipeIngredient:
    """Ingredient line of a recipe."""

    name: str
    amount: str
    grams: float = 0.0


@dataclass(frozen=True)
class RecipeNutrition:
    """Per-serving macros of a recipe."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float


@dataclass(frozen=True)
class RecipeCandidate:
    """Recipe produced by the generator or a template."""

    id: str
    title: str
    description: str
    cuisine: str
    diet: str
    servings: int
    prep_time_min: int
    cook_time_min: int
    ingredients: list[RecipeIngredient]
    steps: list[str]
    nutrition: RecipeNutrition
    fingerprint: str
    provenance: RecipeProvenance
    confidence: float
    tags: list[str] = field(default_factory=list)
    allergen_flags: list[str] = field(default_factory=list)


@dataclass
class CacheEntry:
    """Accepted candidate stored under a request cache key."""

    candidate: RecipeCandidate
    created_at: datetime
    hit_count: int = 0
