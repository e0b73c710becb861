"""Source resolvers that turn a food name into a per-100g nutrient profile.

Each resolver returns ``None`` when its source has no match. Exceptions are
reserved for infrastructure failures (network errors, timeouts, malformed
provider output) and are handled by the resolution orchestrator.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from nutrition_engine.adapters.fdc_client import FdcClient
from nutrition_engine.adapters.off_client import OpenFoodFactsClient
from nutrition_engine.domain.nutrition import NutrientProfile, NutrientSource
from nutrition_engine.domain.payloads import NutritionEstimatePayload
from nutrition_engine.policy import (
    AI_ESTIMATE_CONFIDENCE,
    EXTERNAL_COMPLETE_CONFIDENCE,
    EXTERNAL_PARTIAL_CONFIDENCE,
    OPEN_FOOD_FACTS_COMPLETE_CONFIDENCE,
)
from nutrition_engine.services.cache import Cache
from nutrition_engine.services.generative import GenerationOptions, GenerativeClient
from nutrition_engine.services.retry import call_with_retry

_logger = logging.getLogger(__name__)

# FoodData Central nutrient ids.
_FDC_ENERGY_IDS = (1008, 2047, 2048)
_FDC_MACRO_IDS = {
    1003: "protein_g",
    1005: "carbs_g",
    1004: "fat_g",
    1079: "fiber_g",
    1093: "sodium_mg",
}
_FDC_MICRO_IDS = {
    1089: "iron_mg",
    1162: "vitamin_c_mg",
    1090: "magnesium_mg",
    1178: "vitamin_b12_ug",
    1087: "calcium_mg",
    1092: "potassium_mg",
    2000: "sugar_g",
    1258: "saturated_fat_g",
}
_CORE_FIELDS = ("calories", "protein_g", "carbs_g", "fat_g")

# Open Food Facts nutriment keys; factor converts the reported unit.
_OFF_FIELDS = {
    "calories": (("energy-kcal_100g", "energy_kcal_100g"), 1.0),
    "protein_g": (("proteins_100g",), 1.0),
    "carbs_g": (("carbohydrates_100g",), 1.0),
    "fat_g": (("fat_100g",), 1.0),
    "fiber_g": (("fiber_100g",), 1.0),
    "sodium_mg": (("sodium_100g",), 1000.0),
}
_OFF_MICROS = {
    "iron_mg": ("iron_100g", 1000.0),
    "vitamin_c_mg": ("vitamin-c_100g", 1000.0),
    "magnesium_mg": ("magnesium_100g", 1000.0),
    "calcium_mg": ("calcium_100g", 1000.0),
    "potassium_mg": ("potassium_100g", 1000.0),
    "sugar_g": ("sugars_100g", 1.0),
    "saturated_fat_g": ("saturated-fat_100g", 1.0),
}


class NutrientResolver(Protocol):
    """A single source of nutrient profiles."""

    source_name: str

    async def resolve(self, name: str) -> NutrientProfile | None:
        """Return a per-100g profile for ``name`` or None when not found."""


class VerifiedFoodStore(Protocol):
    """Local store of curated, verified foods."""

    def lookup(self, name: str) -> NutrientProfile | None:
        """Return the verified profile for ``name`` if one exists."""


@dataclass
class VerifiedStoreResolver(NutrientResolver):
    """Resolver backed by the verified food store."""

    store: VerifiedFoodStore
    source_name: str = "verified_store"

    async def resolve(self, name: str) -> NutrientProfile | None:
        """Look up the verified store off the event loop."""
        return await asyncio.to_thread(self.store.lookup, name)


@dataclass
class FdcResolver(NutrientResolver):
    """Resolver backed by USDA FoodData Central search."""

    client: FdcClient
    cache: Cache
    ttl_seconds: int = 86400
    page_size: int = 5
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3
    source_name: str = "usda_fdc"

    async def resolve(self, name: str) -> NutrientProfile | None:
        """Search FDC and convert the best match into a profile."""
        cache_key = f"fdc:profile:{normalize_name(name)}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, NutrientProfile):
            return cached

        payload = await call_with_retry(
            lambda: self.client.search_foods(name, page_size=self.page_size),
            action=f"FDC search {name!r}",
            retry_attempts=self.retry_attempts,
            retry_delay_seconds=self.retry_delay_seconds,
        )
        foods = [food for food in payload.get("foods") or [] if isinstance(food, dict)]
        profiles = [
            profile
            for profile in (_profile_from_fdc_food(food) for food in foods)
            if profile is not None
        ]
        if not profiles:
            return None
        profile = best_match(name, profiles)
        self.cache.set(cache_key, profile, ttl_seconds=self.ttl_seconds)
        return profile


@dataclass
class OpenFoodFactsResolver(NutrientResolver):
    """Resolver backed by Open Food Facts product search."""

    client: OpenFoodFactsClient
    cache: Cache
    ttl_seconds: int = 86400
    page_size: int = 5
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3
    source_name: str = "open_food_facts"

    async def resolve(self, name: str) -> NutrientProfile | None:
        """Search Open Food Facts and convert the best match into a profile."""
        cache_key = f"off:profile:{normalize_name(name)}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, NutrientProfile):
            return cached

        payload = await call_with_retry(
            lambda: self.client.search_products(name, page_size=self.page_size),
            action=f"Open Food Facts search {name!r}",
            retry_attempts=self.retry_attempts,
            retry_delay_seconds=self.retry_delay_seconds,
        )
        products = [
            product
            for product in payload.get("products") or []
            if isinstance(product, dict)
        ]
        profiles = [
            profile
            for profile in (_profile_from_off_product(product) for product in products)
            if profile is not None
        ]
        if not profiles:
            return None
        profile = best_match(name, profiles)
        self.cache.set(cache_key, profile, ttl_seconds=self.ttl_seconds)
        return profile


ESTIMATE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "calories": {"type": "number", "minimum": 0},
        "protein_g": {"type": "number", "minimum": 0},
        "carbs_g": {"type": "number", "minimum": 0},
        "fat_g": {"type": "number", "minimum": 0},
        "fiber_g": {"type": "number", "minimum": 0},
        "sodium_mg": {"type": "number", "minimum": 0},
        "confidence": {"type": "number", "minimum": 0, "maximum": 1},
    },
    "required": [
        "name",
        "calories",
        "protein_g",
        "carbs_g",
        "fat_g",
        "fiber_g",
        "sodium_mg",
        "confidence",
    ],
    "additionalProperties": False,
}

_ESTIMATE_INSTRUCTIONS = (
    "You are a nutrition analyst. Estimate nutrient content from standard "
    "food composition data. Output JSON only."
)


@dataclass
class AiNutritionEstimator:
    """Asks the generative provider for a nutrition estimate."""

    client: GenerativeClient
    options: GenerationOptions

    async def estimate_nutrition(
        self, name: str, grams: float = 100.0
    ) -> NutrientProfile | None:
        """Estimate nutrients of ``grams`` of ``name``, normalised to per-100g."""
        prompt = (
            f"Estimate the nutrition of {grams:g} g of '{name}' as typically "
            "eaten. Return calories (kcal), protein, carbohydrates, fat and "
            "fiber in grams, sodium in milligrams, and your confidence (0-1). "
            "Use 0 for anything you cannot estimate."
        )
        raw = await self.client.complete_json(
            model=self.options.model,
            reasoning_effort=self.options.reasoning_effort,
            store=self.options.store,
            instructions=_ESTIMATE_INSTRUCTIONS,
            prompt=prompt,
            schema=ESTIMATE_SCHEMA,
            schema_name="nutrition_estimate",
        )
        estimate = NutritionEstimatePayload.model_validate(raw)
        if estimate.is_empty or grams <= 0:
            return None
        factor = 100.0 / grams
        return NutrientProfile(
            name=estimate.name or name,
            calories=estimate.calories * factor,
            protein_g=estimate.protein_g * factor,
            carbs_g=estimate.carbs_g * factor,
            fat_g=estimate.fat_g * factor,
            fiber_g=estimate.fiber_g * factor,
            sodium_mg=estimate.sodium_mg * factor,
            source=NutrientSource.AI_ESTIMATE,
            confidence=min(estimate.confidence, AI_ESTIMATE_CONFIDENCE),
        )


@dataclass
class AiEstimateResolver(NutrientResolver):
    """Last-resort resolver using a generative estimate."""

    estimator: AiNutritionEstimator
    source_name: str = "ai_estimate"

    async def resolve(self, name: str) -> NutrientProfile | None:
        return await self.estimator.estimate_nutrition(name, 100.0)


def normalize_name(name: str) -> str:
    """Lower-case a food name and collapse whitespace."""
    return re.sub(r"\s+", " ", name.strip().lower())


def name_similarity(query: str, candidate: str) -> float:
    """Share of query words found (as substrings) in the candidate name."""
    query_words = normalize_name(query).split()
    candidate_words = re.split(r"[\s,]+", normalize_name(candidate))
    if not query_words:
        return 0.0
    matches = 0
    for word in query_words:
        if any(
            word in other or other in word for other in candidate_words if other
        ):
            matches += 1
    return matches / len(query_words)


def best_match(query: str, profiles: list[NutrientProfile]) -> NutrientProfile:
    """Pick the profile whose name best matches the query; first wins ties."""
    best = profiles[0]
    best_score = name_similarity(query, best.name)
    for profile in profiles[1:]:
        score = name_similarity(query, profile.name)
        if score > best_score:
            best, best_score = profile, score
    return best


def _amount(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if value < 0:
        return None
    return float(value)


def _profile_from_fdc_food(food: dict[str, object]) -> NutrientProfile | None:
    """Build a profile from an FDC search hit; missing nutrients count as 0."""
    values: dict[str, float] = {}
    micros: dict[str, float] = {}
    for nutrient in food.get("foodNutrients") or []:
        if not isinstance(nutrient, dict):
            continue
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient.get("nutrientId") or nutrient_info.get("id")
        amount = _amount(
            nutrient.get("value") if "value" in nutrient else nutrient.get("amount")
        )
        if amount is None:
            continue
        if nutrient_id in _FDC_ENERGY_IDS:
            values.setdefault("calories", amount)
        elif nutrient_id in _FDC_MACRO_IDS:
            values[_FDC_MACRO_IDS[nutrient_id]] = amount
        elif nutrient_id in _FDC_MICRO_IDS:
            micros[_FDC_MICRO_IDS[nutrient_id]] = amount
    if not values:
        return None
    complete = all(field in values for field in _CORE_FIELDS)
    fdc_id = food.get("fdcId")
    return NutrientProfile(
        name=str(food.get("description") or ""),
        calories=values.get("calories", 0.0),
        protein_g=values.get("protein_g", 0.0),
        carbs_g=values.get("carbs_g", 0.0),
        fat_g=values.get("fat_g", 0.0),
        fiber_g=values.get("fiber_g", 0.0),
        sodium_mg=values.get("sodium_mg", 0.0),
        micronutrients=micros,
        source=NutrientSource.EXTERNAL,
        confidence=(
            EXTERNAL_COMPLETE_CONFIDENCE if complete else EXTERNAL_PARTIAL_CONFIDENCE
        ),
        source_ref=f"fdc:{fdc_id}" if fdc_id is not None else None,
    )


def _profile_from_off_product(product: dict[str, object]) -> NutrientProfile | None:
    """Build a profile from an Open Food Facts product; products without energy
    are skipped."""
    nutriments = product.get("nutriments")
    if not isinstance(nutriments, dict):
        return None
    values: dict[str, float] = {}
    for field, (keys, factor) in _OFF_FIELDS.items():
        for key in keys:
            amount = _amount(nutriments.get(key))
            if amount is not None:
                values[field] = amount * factor
                break
    if "calories" not in values:
        return None
    micros: dict[str, float] = {}
    for field, (key, factor) in _OFF_MICROS.items():
        amount = _amount(nutriments.get(key))
        if amount is not None:
            micros[field] = amount * factor
    complete = all(field in values for field in _CORE_FIELDS)
    code = product.get("code")
    return NutrientProfile(
        name=str(product.get("product_name") or ""),
        calories=values["calories"],
        protein_g=values.get("protein_g", 0.0),
        carbs_g=values.get("carbs_g", 0.0),
        fat_g=values.get("fat_g", 0.0),
        fiber_g=values.get("fiber_g", 0.0),
        sodium_mg=values.get("sodium_mg", 0.0),
        micronutrients=micros,
        source=NutrientSource.EXTERNAL,
        confidence=(
            OPEN_FOOD_FACTS_COMPLETE_CONFIDENCE
            if complete
            else EXTERNAL_PARTIAL_CONFIDENCE
        ),
        source_ref=f"off:{code}" if code else None,
    )
