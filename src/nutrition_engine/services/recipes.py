"""Recipe generation with near-duplicate protection.

Generation runs as an explicit state machine::

    CACHE_LOOKUP -> GENERATE -> FINGERPRINT -> DEDUP_CHECK -> ACCEPT
                       ^  |                        |
                       |  +--(provider failure)----+--(near-duplicate)
                       +---------------------------+
    GENERATE -> FALLBACK once the attempt budget is spent.

Callers always receive a recipe; template output is marked as such.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import StrEnum

from nutrition_engine.domain.errors import InvalidInputError
from nutrition_engine.domain.payloads import GeneratedRecipePayload
from nutrition_engine.domain.recipes import (
    RecipeCandidate,
    RecipeIngredient,
    RecipeNutrition,
    RecipeProvenance,
    RecipeRequest,
)
from nutrition_engine.policy import (
    GENERATED_RECIPE_CONFIDENCE,
    RECIPE_MAX_ATTEMPTS,
    RECIPE_RETRY_DELAY_SECONDS,
    RECIPE_SIMILARITY_THRESHOLD,
)
from nutrition_engine.services.cache import RecipeCache
from nutrition_engine.services.fingerprint import (
    cache_key,
    calorie_target,
    fingerprint,
    is_near_duplicate,
    protein_target,
    recipe_text,
)
from nutrition_engine.services.generative import GenerationOptions, GenerativeClient
from nutrition_engine.services.templates import template_recipe

_logger = logging.getLogger(__name__)

CUISINE_CONSTRAINTS: dict[str, tuple[list[str], list[str]]] = {
    "mediterranean": (
        ["grilling", "roasting", "olive oil cooking"],
        ["olive oil", "tomatoes", "herbs", "garlic", "lemon"],
    ),
    "asian": (
        ["stir-frying", "steaming", "quick cooking"],
        ["soy sauce", "ginger", "garlic", "rice", "sesame oil"],
    ),
    "mexican": (
        ["grilling", "sauteing", "spice blending"],
        ["cumin", "chili peppers", "lime", "cilantro", "onions"],
    ),
    "italian": (
        ["pasta cooking", "sauce making", "herb seasoning"],
        ["pasta", "tomatoes", "basil", "garlic", "parmesan"],
    ),
    "american": (
        ["grilling", "baking", "frying"],
        ["ground beef", "cheese", "bread", "potatoes", "bacon"],
    ),
}

DIET_CONSTRAINTS: dict[str, tuple[list[str], list[str]]] = {
    "vegan": (
        ["meat", "dairy", "eggs", "fish", "seafood", "honey"],
        ["legumes", "nuts", "seeds", "vegetables", "fruits", "whole grains"],
    ),
    "vegetarian": (
        ["meat", "fish", "seafood"],
        ["dairy", "eggs", "vegetables", "legumes", "grains"],
    ),
    "keto": (
        ["grains", "sugar", "high-carb fruits", "potatoes", "bread", "pasta"],
        ["meat", "fish", "eggs", "cheese", "avocado", "nuts", "low-carb vegetables"],
    ),
    "paleo": (
        ["grains", "dairy", "legumes", "processed foods"],
        ["meat", "fish", "eggs", "vegetables", "fruits", "nuts", "seeds"],
    ),
    "gluten-free": (
        ["wheat", "barley", "rye", "regular pasta", "regular bread"],
        ["rice", "potatoes", "quinoa", "corn", "vegetables"],
    ),
}

RECIPE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "cuisine": {"type": "string"},
        "diet": {"type": "string"},
        "servings": {"type": "integer", "minimum": 1},
        "ingredients": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "item": {"type": "string"},
                    "qty": {"type": "string"},
                    "grams": {"type": "number", "minimum": 0},
                },
                "required": ["item", "qty", "grams"],
                "additionalProperties": False,
            },
        },
        "steps": {"type": "array", "items": {"type": "string"}},
        "macros": {
            "type": "object",
            "properties": {
                "cal": {"type": "number", "minimum": 0},
                "protein_g": {"type": "number", "minimum": 0},
                "carbs_g": {"type": "number", "minimum": 0},
                "fat_g": {"type": "number", "minimum": 0},
                "fiber_g": {"type": "number", "minimum": 0},
            },
            "required": ["cal", "protein_g", "carbs_g", "fat_g", "fiber_g"],
            "additionalProperties": False,
        },
        "prep_time_min": {"type": "integer", "minimum": 0},
        "cook_time_min": {"type": "integer", "minimum": 0},
        "tags": {"type": "array", "items": {"type": "string"}},
        "allergen_flags": {"type": "array", "items": {"type": "string"}},
    },
    "required": [
        "title",
        "description",
        "cuisine",
        "diet",
        "servings",
        "ingredients",
        "steps",
        "macros",
        "prep_time_min",
        "cook_time_min",
        "tags",
        "allergen_flags",
    ],
    "additionalProperties": False,
}

_RECIPE_INSTRUCTIONS = (
    "You are a culinary expert and nutritionist. Output STRICT JSON only. No prose."
)

# Fallback macros when the provider omits them.
_DEFAULT_CARBS_G = 45.0
_DEFAULT_FAT_G = 18.0
_DEFAULT_FIBER_G = 8.0


def validate_request(request: RecipeRequest) -> None:
    """Reject requests with impossible targets."""
    for field in ("calorie_target", "protein_target"):
        value = getattr(request, field)
        if value is not None and value < 0:
            raise InvalidInputError(field, f"must be >= 0, got {value}")


def build_recipe_prompt(request: RecipeRequest, seed: str) -> str:
    """Render the structured request as a generation prompt."""
    cuisine = request.cuisine or "any"
    diet = request.diet or "none"
    lines = [
        f"- Cuisine: {cuisine}",
        f"- Diet: {diet}",
        f"- Calorie target/serving: {calorie_target(request):g}",
        f"- Protein target/serving: {protein_target(request):g}",
        f"- Pantry must-use: {', '.join(request.pantry_items) or 'none'}",
        f"- Exclusions: {', '.join(request.exclusions) or 'none'}",
        f"- Random seed: {seed}",
        "",
        "Constraints:",
        f"- Use authentic {request.cuisine or 'global'} techniques & staples.",
        f"- Enforce {request.diet or 'balanced'} restrictions; no violations.",
        "- Macros within +/-7% of targets.",
        "- Unique from existing recipes (server will reject high similarity).",
        "- Keep steps concise, numbered, reproducible in home kitchens.",
    ]
    if request.cuisine:
        techniques, staples = CUISINE_CONSTRAINTS.get(
            request.cuisine.strip().lower(), CUISINE_CONSTRAINTS["american"]
        )
        lines.append(f"- Techniques: {', '.join(techniques)}")
        lines.append(f"- Staples: {', '.join(staples)}")
    if request.diet:
        forbidden, preferred = DIET_CONSTRAINTS.get(
            request.diet.strip().lower(), ([], [])
        )
        if forbidden:
            lines.append(f"- Forbidden: {', '.join(forbidden)}")
        if preferred:
            lines.append(f"- Preferred: {', '.join(preferred)}")
    return "\n".join(lines)


@dataclass
class RecipeCandidateGenerator:
    """Requests one recipe from the generative provider."""

    client: GenerativeClient
    options: GenerationOptions

    async def generate(self, request: RecipeRequest, seed: str) -> RecipeCandidate:
        """Return an unfingerprinted candidate; raises on provider failure."""
        raw = await self.client.complete_json(
            model=self.options.model,
            reasoning_effort=self.options.reasoning_effort,
            store=self.options.store,
            instructions=_RECIPE_INSTRUCTIONS,
            prompt=build_recipe_prompt(request, seed),
            schema=RECIPE_SCHEMA,
            schema_name="recipe",
        )
        payload = GeneratedRecipePayload.model_validate(raw)
        return candidate_from_payload(payload, request)


def candidate_from_payload(
    payload: GeneratedRecipePayload, request: RecipeRequest
) -> RecipeCandidate:
    """Fill defaults for anything the provider left out."""
    macros = payload.macros
    return RecipeCandidate(
        id=str(uuid.uuid4()),
        title=payload.title,
        description=payload.description,
        cuisine=request.cuisine or payload.cuisine or "international",
        diet=request.diet or payload.diet or "balanced",
        servings=payload.servings,
        prep_time_min=payload.prep_time_min,
        cook_time_min=payload.cook_time_min,
        ingredients=[
            RecipeIngredient(name=item.item, amount=item.qty, grams=item.grams)
            for item in payload.ingredients
            if item.item
        ],
        steps=payload.steps,
        nutrition=RecipeNutrition(
            calories=macros.cal or calorie_target(request),
            protein_g=macros.protein_g or protein_target(request),
            carbs_g=macros.carbs_g or _DEFAULT_CARBS_G,
            fat_g=macros.fat_g or _DEFAULT_FAT_G,
            fiber_g=macros.fiber_g or _DEFAULT_FIBER_G,
        ),
        fingerprint="",
        provenance=RecipeProvenance.GENERATED,
        confidence=GENERATED_RECIPE_CONFIDENCE,
        tags=payload.tags,
        allergen_flags=payload.allergen_flags,
    )


def fingerprint_candidate(candidate: RecipeCandidate) -> RecipeCandidate:
    """Attach the similarity fingerprint of the candidate's text."""
    text = recipe_text(
        candidate.title,
        [item.name for item in candidate.ingredients],
        candidate.steps,
    )
    return replace(candidate, fingerprint=fingerprint(text))


class GenerationState(StrEnum):
    CACHE_LOOKUP = "cache_lookup"
    GENERATE = "generate"
    FINGERPRINT = "fingerprint"
    DEDUP_CHECK = "dedup_check"
    ACCEPT = "accept"
    FALLBACK = "fallback"
    DONE = "done"


@dataclass
class GenerationContext:
    """Mutable state of one generation request."""

    request: RecipeRequest
    key: str
    attempt: int = 0
    candidate: RecipeCandidate | None = None
    result: RecipeCandidate | None = None
    cache_hit: bool = False
    duplicates_rejected: int = 0
    failures: int = 0

    @property
    def seed(self) -> str:
        return f"{self.request.seed or 'default'}_attempt{self.attempt}"


@dataclass
class RecipeService:
    """Generates recipes, caching accepted ones and rejecting near-duplicates."""

    generator: RecipeCandidateGenerator
    cache: RecipeCache
    max_attempts: int = RECIPE_MAX_ATTEMPTS
    similarity_threshold: int = RECIPE_SIMILARITY_THRESHOLD
    retry_delay_seconds: float = RECIPE_RETRY_DELAY_SECONDS

    async def generate_recipe(self, request: RecipeRequest) -> RecipeCandidate:
        """Return a cached, freshly generated or templated recipe."""
        validate_request(request)
        context = GenerationContext(request=request, key=cache_key(request))
        state = GenerationState.CACHE_LOOKUP
        while state is not GenerationState.DONE:
            state = await self.step(state, context)
        if context.result is None:
            raise RuntimeError("Recipe generation finished without a result")
        return context.result

    async def step(
        self, state: GenerationState, context: GenerationContext
    ) -> GenerationState:
        """Run one state handler and return the next state."""
        handlers: dict[
            GenerationState,
            Callable[[GenerationContext], Awaitable[GenerationState]],
        ] = {
            GenerationState.CACHE_LOOKUP: self._cache_lookup,
            GenerationState.GENERATE: self._generate,
            GenerationState.FINGERPRINT: self._fingerprint,
            GenerationState.DEDUP_CHECK: self._dedup_check,
            GenerationState.ACCEPT: self._accept,
            GenerationState.FALLBACK: self._fallback,
        }
        return await handlers[state](context)

    async def _cache_lookup(self, context: GenerationContext) -> GenerationState:
        entry = self.cache.get(context.key)
        if entry is None:
            return GenerationState.GENERATE
        _logger.info("Recipe cache hit %s (hits=%s)", context.key[:12], entry.hit_count)
        context.result = entry.candidate
        context.cache_hit = True
        return GenerationState.DONE

    async def _generate(self, context: GenerationContext) -> GenerationState:
        if context.attempt >= self.max_attempts:
            return GenerationState.FALLBACK
        context.attempt += 1
        try:
            context.candidate = await self.generator.generate(
                context.request, context.seed
            )
        except Exception as exc:
            context.failures += 1
            _logger.warning(
                "Recipe generation attempt %s/%s failed: %s",
                context.attempt,
                self.max_attempts,
                exc,
            )
            if context.attempt < self.max_attempts:
                await asyncio.sleep(self.retry_delay_seconds * context.attempt)
            return GenerationState.GENERATE
        return GenerationState.FINGERPRINT

    async def _fingerprint(self, context: GenerationContext) -> GenerationState:
        if context.candidate is None:
            return GenerationState.GENERATE
        context.candidate = fingerprint_candidate(context.candidate)
        return GenerationState.DEDUP_CHECK

    async def _dedup_check(self, context: GenerationContext) -> GenerationState:
        # A concurrent request for the same key may have been accepted meanwhile.
        entry = self.cache.get(context.key)
        if entry is not None:
            context.result = entry.candidate
            context.cache_hit = True
            return GenerationState.DONE
        candidate = context.candidate
        if candidate is None:
            return GenerationState.GENERATE
        existing = self.cache.live_fingerprints()
        threshold = self.similarity_threshold
        if is_near_duplicate(candidate.fingerprint, existing, threshold):
            context.duplicates_rejected += 1
            _logger.info(
                "Recipe attempt %s too similar to a cached recipe, retrying",
                context.attempt,
            )
            context.candidate = None
            return GenerationState.GENERATE
        return GenerationState.ACCEPT

    async def _accept(self, context: GenerationContext) -> GenerationState:
        if context.candidate is None:
            return GenerationState.GENERATE
        entry = self.cache.set(context.key, context.candidate)
        context.result = entry.candidate
        return GenerationState.DONE

    async def _fallback(self, context: GenerationContext) -> GenerationState:
        _logger.warning(
            "No unique recipe after %s attempts (failures=%s, duplicates=%s); "
            "using template",
            context.attempt,
            context.failures,
            context.duplicates_rejected,
        )
        context.result = template_recipe(context.request, context.key)
        return GenerationState.DONE
