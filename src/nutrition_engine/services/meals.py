"""Meal-level resolution and aggregation."""

import asyncio
import logging
from dataclasses import dataclass

from nutrition_engine.domain.errors import InvalidInputError, UnresolvedFoodError
from nutrition_engine.domain.nutrition import (
    Ingredient,
    MealNutritionTotals,
    NutrientAmounts,
    ResolvedIngredient,
    UnresolvedIngredient,
)
from nutrition_engine.services.resolution import (
    ResolutionOrchestrator,
    validate_ingredient,
)

_logger = logging.getLogger(__name__)


def aggregate(
    ingredients: list[ResolvedIngredient],
    unresolved: list[UnresolvedIngredient] | None = None,
    micronutrients: tuple[str, ...] | None = None,
) -> MealNutritionTotals:
    """Sum scaled ingredient contributions into meal totals.

    Each ingredient contributes ``profile * grams / 100``. Unresolved
    ingredients are carried through for reporting and excluded from totals.
    ``micronutrients`` limits which micronutrients are summed; by default all
    reported ones are.
    """
    total = NutrientAmounts()
    sources: list[str] = []
    for item in ingredients:
        total = total.plus(item.profile.scaled(item.grams, micronutrients))
        if item.profile.source.value not in sources:
            sources.append(item.profile.source.value)
    confidence = (
        sum(item.confidence for item in ingredients) / len(ingredients)
        if ingredients
        else 0.0
    )
    return MealNutritionTotals(
        totals=total,
        ingredients=list(ingredients),
        unresolved=list(unresolved or []),
        confidence=confidence,
        sources=sources,
    )


@dataclass
class MealService:
    """Resolves every ingredient of a meal concurrently and aggregates them."""

    orchestrator: ResolutionOrchestrator

    async def resolve_meal(
        self,
        ingredients: list[Ingredient],
        deadline_seconds: float | None = None,
        micronutrients: tuple[str, ...] | None = None,
    ) -> MealNutritionTotals:
        """Resolve and total a meal.

        A failed ingredient is reported as unresolved rather than failing the
        meal. When ``deadline_seconds`` elapses, resolutions still in flight
        are cancelled and reported as unresolved; completed ones are kept.

        Cancelling the caller cancels every in-flight resolution and discards
        the meal, so callers with a request timeout should pass it as
        ``deadline_seconds`` instead of wrapping this call in
        ``asyncio.timeout`` if they want partial totals.
        """
        if not ingredients:
            raise InvalidInputError("ingredients", "must contain at least one item")
        for index, ingredient in enumerate(ingredients):
            validate_ingredient(ingredient, field=f"ingredients[{index}]")

        tasks = [
            asyncio.create_task(self.orchestrator.resolve_ingredient(ingredient))
            for ingredient in ingredients
        ]
        try:
            _, pending = await asyncio.wait(tasks, timeout=deadline_seconds)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        resolved: list[ResolvedIngredient] = []
        unresolved: list[UnresolvedIngredient] = []
        for ingredient, task in zip(ingredients, tasks, strict=True):
            if task in pending:
                _logger.warning(
                    "Resolution of %r cancelled at deadline", ingredient.name
                )
                unresolved.append(
                    UnresolvedIngredient(ingredient=ingredient, reason="cancelled")
                )
                continue
            exc = task.exception()
            if exc is None:
                resolved.append(task.result())
            elif isinstance(exc, UnresolvedFoodError):
                _logger.info("Ingredient %r unresolved: %s", ingredient.name, exc)
                unresolved.append(
                    UnresolvedIngredient(ingredient=ingredient, reason=str(exc))
                )
            else:
                raise exc
        return aggregate(resolved, unresolved, micronutrients)
