"""Deterministic recipe templates used when generation cannot deliver."""

import uuid
from dataclasses import dataclass

from nutrition_engine.domain.recipes import (
    RecipeCandidate,
    RecipeIngredient,
    RecipeNutrition,
    RecipeProvenance,
    RecipeRequest,
)
from nutrition_engine.policy import TEMPLATE_RECIPE_CONFIDENCE
from nutrition_engine.services.fingerprint import (
    calorie_target,
    fingerprint,
    protein_target,
    recipe_text,
)

_TEMPLATE_NAMESPACE = uuid.UUID("5b8f0f5e-2f43-4c8e-9a55-7d1c2b7e9a10")


@dataclass(frozen=True)
class RecipeTemplate:
    title: str
    description: str
    diets: frozenset[str]
    prep_time_min: int
    cook_time_min: int
    servings: int
    ingredients: tuple[RecipeIngredient, ...]
    steps: tuple[str, ...]
    carbs_g: float
    fat_g: float
    fiber_g: float
    tags: tuple[str, ...]


TEMPLATES: tuple[RecipeTemplate, ...] = (
    RecipeTemplate(
        title="Simple Veggie Stir-Fry",
        description="Quick vegetable stir-fry with pantry staples",
        diets=frozenset({"vegan", "vegetarian", "none", "balanced"}),
        prep_time_min=10,
        cook_time_min=15,
        servings=2,
        ingredients=(
            RecipeIngredient("mixed vegetables", "2 cups", 300.0),
            RecipeIngredient("olive oil", "2 tbsp", 27.0),
            RecipeIngredient("garlic", "2 cloves", 6.0),
            RecipeIngredient("soy sauce", "2 tbsp", 32.0),
        ),
        steps=(
            "Heat olive oil in a large pan over medium-high heat",
            "Add minced garlic and cook for 30 seconds",
            "Add vegetables and stir-fry for 5-7 minutes",
            "Add soy sauce and cook for 2 more minutes",
            "Serve hot",
        ),
        carbs_g=25.0,
        fat_g=15.0,
        fiber_g=6.0,
        tags=("quick", "vegetarian"),
    ),
    RecipeTemplate(
        title="Basic Protein Bowl",
        description="Protein and grain bowl with vegetables",
        diets=frozenset({"none", "balanced", "gluten-free"}),
        prep_time_min=15,
        cook_time_min=20,
        servings=2,
        ingredients=(
            RecipeIngredient("quinoa", "1 cup", 170.0),
            RecipeIngredient("chicken breast", "8 oz", 227.0),
            RecipeIngredient("broccoli", "1 cup", 90.0),
            RecipeIngredient("olive oil", "1 tbsp", 14.0),
        ),
        steps=(
            "Cook quinoa according to package directions",
            "Season and pan-sear the diced chicken until cooked through",
            "Steam broccoli for 4-5 minutes",
            "Combine quinoa, chicken and broccoli, drizzle with olive oil",
        ),
        carbs_g=40.0,
        fat_g=12.0,
        fiber_g=5.0,
        tags=("high-protein", "meal-prep"),
    ),
    RecipeTemplate(
        title="Herb Omelette with Greens",
        description="Low-carb omelette served over dressed greens",
        diets=frozenset({"keto", "vegetarian", "gluten-free", "none", "balanced"}),
        prep_time_min=5,
        cook_time_min=10,
        servings=1,
        ingredients=(
            RecipeIngredient("eggs", "3 large", 150.0),
            RecipeIngredient("butter", "1 tbsp", 14.0),
            RecipeIngredient("fresh herbs", "2 tbsp", 6.0),
            RecipeIngredient("mixed greens", "2 cups", 60.0),
        ),
        steps=(
            "Whisk eggs with chopped herbs and a pinch of salt",
            "Melt butter in a non-stick pan over medium heat",
            "Cook the eggs, folding once set",
            "Serve over the greens",
        ),
        carbs_g=5.0,
        fat_g=28.0,
        fiber_g=2.0,
        tags=("low-carb", "quick"),
    ),
)


def _banned(exclusions: tuple[str, ...]) -> list[str]:
    return [item.strip().lower() for item in exclusions if item.strip()]


def _mentions(text: str, banned: list[str]) -> bool:
    lowered = text.lower()
    return any(word in lowered for word in banned)


def _excludes(template: RecipeTemplate, exclusions: tuple[str, ...]) -> bool:
    banned = _banned(exclusions)
    return any(_mentions(item.name, banned) for item in template.ingredients)


def _matching_templates(request: RecipeRequest) -> tuple[RecipeTemplate, ...]:
    wanted = (request.diet or "none").strip().lower()
    by_diet = tuple(template for template in TEMPLATES if wanted in template.diets)
    allowed = tuple(
        template
        for template in by_diet or TEMPLATES
        if not _excludes(template, request.exclusions)
    )
    return allowed or by_diet or TEMPLATES


def _without_exclusions(
    template: RecipeTemplate, exclusions: tuple[str, ...]
) -> tuple[list[RecipeIngredient], list[str]]:
    """Drop excluded ingredients and the steps that use them."""
    banned = _banned(exclusions)
    ingredients = [
        item for item in template.ingredients if not _mentions(item.name, banned)
    ]
    steps = [step for step in template.steps if not _mentions(step, banned)]
    return ingredients, steps


def template_recipe(request: RecipeRequest, key: str) -> RecipeCandidate:
    """Build a deterministic templated recipe for ``request``.

    The template is picked among diet-compatible ones by ``key`` so the same
    request always yields the same recipe. Excluded ingredients never appear,
    even when every compatible template lists one of them.
    """
    candidates = _matching_templates(request)
    template = candidates[int(key[:8], 16) % len(candidates)]
    ingredients, steps = _without_exclusions(template, request.exclusions)
    text = recipe_text(template.title, [item.name for item in ingredients], steps)
    return RecipeCandidate(
        id=str(uuid.uuid5(_TEMPLATE_NAMESPACE, f"{template.title}:{key}")),
        title=template.title,
        description=template.description,
        cuisine=request.cuisine or "international",
        diet=request.diet or "balanced",
        servings=template.servings,
        prep_time_min=template.prep_time_min,
        cook_time_min=template.cook_time_min,
        ingredients=ingredients,
        steps=steps,
        nutrition=RecipeNutrition(
            calories=calorie_target(request),
            protein_g=protein_target(request),
            carbs_g=template.carbs_g,
            fat_g=template.fat_g,
            fiber_g=template.fiber_g,
        ),
        fingerprint=fingerprint(text),
        provenance=RecipeProvenance.TEMPLATE,
        confidence=TEMPLATE_RECIPE_CONFIDENCE,
        tags=list(template.tags),
    )
