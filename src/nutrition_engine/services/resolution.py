"""Trust-ordered resolution of food names to nutrient profiles."""

import asyncio
import logging
import math
from dataclasses import dataclass

from nutrition_engine.domain.errors import InvalidInputError, UnresolvedFoodError
from nutrition_engine.domain.nutrition import (
    Ingredient,
    NutrientProfile,
    NutrientSource,
    ResolvedIngredient,
)
from nutrition_engine.policy import (
    GUESS_CALORIES_PER_100G,
    GUESS_CARBS_PER_100G,
    GUESS_CONFIDENCE,
    GUESS_FAT_PER_100G,
    GUESS_PROTEIN_PER_100G,
)
from nutrition_engine.services.resolvers import NutrientResolver
from nutrition_engine.services.units import grams_for

_logger = logging.getLogger(__name__)


@dataclass
class ResolutionOrchestrator:
    """Tries resolvers in trust order and returns the first match.

    Values from different sources are never blended. Each resolver call is
    bounded by ``timeout_seconds``; a timeout or infrastructure failure falls
    through to the next resolver.
    """

    resolvers: list[NutrientResolver]
    timeout_seconds: float = 4.0

    async def resolve(self, name: str) -> NutrientProfile:
        """Return the first profile any resolver produces for ``name``."""
        query = name.strip()
        if not query:
            raise InvalidInputError("name", "food name must not be empty")
        attempted: list[str] = []
        for resolver in self.resolvers:
            attempted.append(resolver.source_name)
            try:
                profile = await asyncio.wait_for(
                    resolver.resolve(query), timeout=self.timeout_seconds
                )
            except TimeoutError:
                _logger.warning(
                    "Resolver %s timed out after %ss for %r",
                    resolver.source_name,
                    self.timeout_seconds,
                    query,
                )
                continue
            except Exception as exc:
                _logger.warning(
                    "Resolver %s failed for %r: %s", resolver.source_name, query, exc
                )
                continue
            if profile is not None:
                _logger.info(
                    "Resolved %r via %s (confidence=%.2f)",
                    query,
                    resolver.source_name,
                    profile.confidence,
                )
                return profile
        raise UnresolvedFoodError(query, attempted)

    async def resolve_ingredient(self, ingredient: Ingredient) -> ResolvedIngredient:
        """Resolve an ingredient and scale its profile to the converted grams."""
        validate_ingredient(ingredient)
        profile = await self.resolve(ingredient.name)
        return build_resolved(ingredient, profile)


def build_resolved(
    ingredient: Ingredient, profile: NutrientProfile
) -> ResolvedIngredient:
    """Scale ``profile`` by the ingredient's weight (grams / 100)."""
    grams = grams_for(ingredient.quantity, ingredient.unit, ingredient.name)
    return ResolvedIngredient(
        ingredient=ingredient,
        profile=profile,
        grams=grams,
        nutrients=profile.scaled(grams),
        confidence=profile.confidence,
    )


def validate_ingredient(ingredient: Ingredient, field: str = "ingredient") -> None:
    """Reject ingredients that cannot be resolved or converted."""
    if not ingredient.name or not ingredient.name.strip():
        raise InvalidInputError(f"{field}.name", "must not be empty")
    quantity = ingredient.quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int | float):
        raise InvalidInputError(f"{field}.quantity", "must be a number")
    if not math.isfinite(quantity):
        raise InvalidInputError(f"{field}.quantity", "must be finite")
    if quantity < 0:
        raise InvalidInputError(f"{field}.quantity", f"must be >= 0, got {quantity}")


def flat_estimate(error: UnresolvedFoodError) -> NutrientProfile:
    """Last-resort flat guess for a food no source could resolve.

    The result is tagged ``NutrientSource.GUESS`` so callers can present it as
    a guess rather than a measurement.
    """
    return NutrientProfile(
        name=error.query,
        calories=GUESS_CALORIES_PER_100G,
        protein_g=GUESS_PROTEIN_PER_100G,
        carbs_g=GUESS_CARBS_PER_100G,
        fat_g=GUESS_FAT_PER_100G,
        fiber_g=0.0,
        sodium_mg=0.0,
        source=NutrientSource.GUESS,
        confidence=GUESS_CONFIDENCE,
    )
