"""Tests for recipe generation."""

import asyncio

import pytest

from nutrition_engine.domain.errors import InvalidInputError
from nutrition_engine.domain.recipes import RecipeProvenance, RecipeRequest
from nutrition_engine.services.cache import InMemoryRecipeCache
from nutrition_engine.services.fingerprint import cache_key
from nutrition_engine.services.recipes import (
    GenerationContext,
    GenerationState,
    RecipeCandidateGenerator,
    RecipeService,
    build_recipe_prompt,
)
from nutrition_engine.services.templates import template_recipe
from tests.conftest import FakeGenerativeClient

_PASTA = {
    "title": "Tomato Basil Penne",
    "description": "Weeknight penne with a fresh tomato sauce",
    "cuisine": "italian",
    "diet": "vegetarian",
    "servings": 2,
    "ingredients": [
        {"item": "penne", "qty": "200 g", "grams": 200},
        {"item": "cherry tomatoes", "qty": "2 cups", "grams": 300},
        {"item": "basil", "qty": "1 handful", "grams": 10},
        {"item": "parmesan", "qty": "30 g", "grams": 30},
    ],
    "steps": [
        "Boil the penne in salted water until al dente",
        "Blister the tomatoes in olive oil with garlic",
        "Toss the pasta with tomatoes, basil and parmesan",
    ],
    "macros": {"cal": 520, "protein_g": 21, "carbs_g": 80, "fat_g": 12, "fiber_g": 7},
    "prep_time_min": 10,
    "cook_time_min": 20,
    "tags": ["quick"],
    "allergen_flags": ["gluten", "dairy"],
}

_PASTA_RESHUFFLED = {
    **_PASTA,
    "title": "  TOMATO   basil penne ",
    "steps": [step.upper() + "  " for step in _PASTA["steps"]],
}

_CURRY = {
    "title": "Coconut Chickpea Curry",
    "description": "Creamy chickpea curry with spinach",
    "servings": 4,
    "ingredients": [
        {"item": "chickpeas", "qty": "2 cans", "grams": 480},
        {"item": "coconut milk", "qty": "1 can", "grams": 400},
        {"item": "spinach", "qty": "3 cups", "grams": 90},
    ],
    "steps": [
        "Fry onion, ginger and curry paste until fragrant",
        "Simmer chickpeas in coconut milk for 15 minutes",
        "Wilt in the spinach and season with lime",
    ],
    "macros": {"cal": 480, "protein_g": 16, "carbs_g": 50, "fat_g": 24, "fiber_g": 12},
}


def _service(
    client: FakeGenerativeClient, clock, options, **kwargs
) -> tuple[RecipeService, InMemoryRecipeCache]:
    cache = InMemoryRecipeCache(ttl_seconds=3600, clock=clock)
    service = RecipeService(
        generator=RecipeCandidateGenerator(client, options),
        cache=cache,
        retry_delay_seconds=0,
        **kwargs,
    )
    return service, cache


def test_generated_recipe_is_cached(clock, generation_options) -> None:
    client = FakeGenerativeClient(responses=[_PASTA])
    service, cache = _service(client, clock, generation_options)
    request = RecipeRequest(cuisine="italian", diet="vegetarian", seed="s1")

    first = asyncio.run(service.generate_recipe(request))
    second = asyncio.run(
        service.generate_recipe(
            RecipeRequest(cuisine="Italian", diet="vegetarian", seed="other")
        )
    )

    assert first.provenance is RecipeProvenance.GENERATED
    assert first.confidence == 0.8
    assert first.title == "Tomato Basil Penne"
    assert first.nutrition.calories == 520
    assert first.allergen_flags == ["gluten", "dairy"]
    assert len(first.fingerprint) == 16
    assert second is first
    assert len(client.prompts) == 1
    assert "Random seed: s1_attempt1" in client.prompts[0]
    assert len(cache) == 1


def test_provider_failure_is_retried_with_new_seed(clock, generation_options) -> None:
    client = FakeGenerativeClient(responses=[RuntimeError("rate limited"), _PASTA])
    service, _ = _service(client, clock, generation_options)

    recipe = asyncio.run(service.generate_recipe(RecipeRequest(seed="s")))

    assert recipe.provenance is RecipeProvenance.GENERATED
    assert "Random seed: s_attempt1" in client.prompts[0]
    assert "Random seed: s_attempt2" in client.prompts[1]


def test_near_duplicate_is_rejected_and_regenerated(clock, generation_options) -> None:
    client = FakeGenerativeClient(responses=[_PASTA, _PASTA_RESHUFFLED, _CURRY])
    service, cache = _service(client, clock, generation_options)

    asyncio.run(service.generate_recipe(RecipeRequest(cuisine="italian")))
    recipe = asyncio.run(service.generate_recipe(RecipeRequest(cuisine="indian")))

    assert recipe.title == "Coconut Chickpea Curry"
    assert recipe.cuisine == "indian"
    assert len(client.prompts) == 3
    assert len(cache) == 2


def test_exhausted_attempts_fall_back_to_template(clock, generation_options) -> None:
    client = FakeGenerativeClient(
        responses=[RuntimeError("down"), RuntimeError("down"), RuntimeError("down")]
    )
    service, cache = _service(client, clock, generation_options)
    request = RecipeRequest(diet="vegan", calorie_target=450, protein_target=25)

    recipe = asyncio.run(service.generate_recipe(request))

    assert recipe.provenance is RecipeProvenance.TEMPLATE
    assert recipe.confidence == 0.4
    assert recipe.title == "Simple Veggie Stir-Fry"
    assert recipe.nutrition.calories == 450
    assert recipe.nutrition.protein_g == 25
    assert len(client.prompts) == 3
    assert len(cache) == 0


def test_only_duplicates_fall_back_to_template(clock, generation_options) -> None:
    client = FakeGenerativeClient(default=_PASTA)
    service, _ = _service(client, clock, generation_options, max_attempts=2)

    asyncio.run(service.generate_recipe(RecipeRequest(cuisine="italian")))
    recipe = asyncio.run(service.generate_recipe(RecipeRequest(cuisine="mexican")))

    assert recipe.provenance is RecipeProvenance.TEMPLATE
    assert len(client.prompts) == 3


def test_expired_entry_is_regenerated(clock, generation_options) -> None:
    client = FakeGenerativeClient(responses=[_PASTA, _CURRY])
    service, _ = _service(client, clock, generation_options)
    request = RecipeRequest(cuisine="italian")

    first = asyncio.run(service.generate_recipe(request))
    clock.advance(3600)
    second = asyncio.run(service.generate_recipe(request))

    assert first.title == "Tomato Basil Penne"
    assert second.title == "Coconut Chickpea Curry"
    assert len(client.prompts) == 2


def test_concurrent_requests_store_one_entry(clock, generation_options) -> None:
    client = FakeGenerativeClient(default=_PASTA)
    service, cache = _service(client, clock, generation_options)
    request = RecipeRequest(cuisine="italian", calorie_target=600)

    async def run_all():
        return await asyncio.gather(
            *(service.generate_recipe(request) for _ in range(5))
        )

    results = asyncio.run(run_all())

    assert len(cache) == 1
    assert len({recipe.id for recipe in results}) == 1
    assert all(r.provenance is RecipeProvenance.GENERATED for r in results)


def test_negative_targets_are_rejected(clock, generation_options) -> None:
    client = FakeGenerativeClient()
    service, _ = _service(client, clock, generation_options)

    with pytest.raises(InvalidInputError) as excinfo:
        asyncio.run(service.generate_recipe(RecipeRequest(calorie_target=-1)))

    assert excinfo.value.field == "calorie_target"
    assert client.prompts == []


def test_missing_payload_fields_get_defaults(clock, generation_options) -> None:
    client = FakeGenerativeClient(
        responses=[{"name": "Mystery Bake", "servings": "0", "macros": None}]
    )
    service, _ = _service(client, clock, generation_options)

    recipe = asyncio.run(
        service.generate_recipe(RecipeRequest(calorie_target=650, protein_target=35))
    )

    assert recipe.title == "Mystery Bake"
    assert recipe.servings == 4
    assert recipe.prep_time_min == 15
    assert recipe.cook_time_min == 30
    assert recipe.nutrition.calories == 650
    assert recipe.nutrition.protein_g == 35
    assert recipe.nutrition.carbs_g == 45
    assert recipe.diet == "balanced"


def test_generate_state_moves_to_fallback_when_budget_spent(
    clock, generation_options
) -> None:
    service, _ = _service(FakeGenerativeClient(), clock, generation_options)
    request = RecipeRequest()
    context = GenerationContext(request=request, key=cache_key(request), attempt=3)

    state = asyncio.run(service.step(GenerationState.GENERATE, context))

    assert state is GenerationState.FALLBACK


def test_prompt_carries_cuisine_and_diet_constraints() -> None:
    request = RecipeRequest(
        cuisine="Asian",
        diet="vegan",
        pantry_items=("tofu",),
        exclusions=("peanuts",),
    )

    prompt = build_recipe_prompt(request, "abc_attempt1")

    assert "- Techniques: stir-frying, steaming, quick cooking" in prompt
    assert "- Forbidden: meat, dairy, eggs, fish, seafood, honey" in prompt
    assert "- Pantry must-use: tofu" in prompt
    assert "- Exclusions: peanuts" in prompt
    assert "- Calorie target/serving: 500" in prompt


def test_template_respects_exclusions() -> None:
    request = RecipeRequest(exclusions=("chicken",))
    key = cache_key(request)

    titles = {
        template_recipe(request, f"{index:08x}{key[8:]}").title for index in range(6)
    }

    assert "Basic Protein Bowl" not in titles
    assert template_recipe(request, key) == template_recipe(request, key)


@pytest.mark.parametrize(
    "request_",
    [
        RecipeRequest(diet="vegan", exclusions=("soy sauce",)),
        RecipeRequest(exclusions=("olive oil", "eggs")),
        RecipeRequest(diet="keto", exclusions=("Butter",)),
    ],
)
def test_template_drops_excluded_ingredients_when_no_template_is_clean(
    request_: RecipeRequest,
) -> None:
    key = cache_key(request_)
    banned = [item.lower() for item in request_.exclusions]

    for index in range(6):
        recipe = template_recipe(request_, f"{index:08x}{key[8:]}")

        names = [item.name for item in recipe.ingredients]
        assert names
        assert not any(word in name for word in banned for name in names)
        assert not any(word in step.lower() for word in banned for step in recipe.steps)
        assert recipe.provenance is RecipeProvenance.TEMPLATE


def test_vegan_template_without_soy_sauce_keeps_remaining_lines() -> None:
    request = RecipeRequest(diet="vegan", exclusions=("soy sauce",))

    recipe = template_recipe(request, cache_key(request))

    assert recipe.title == "Simple Veggie Stir-Fry"
    assert [item.name for item in recipe.ingredients] == [
        "mixed vegetables",
        "olive oil",
        "garlic",
    ]
    assert "Add soy sauce and cook for 2 more minutes" not in recipe.steps
    assert len(recipe.steps) == 4
