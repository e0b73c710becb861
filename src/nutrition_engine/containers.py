"""Dependency container wiring for the engine."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from nutrition_engine.adapters.fdc_client import HttpxFdcClient
from nutrition_engine.adapters.off_client import HttpxOpenFoodFactsClient
from nutrition_engine.adapters.openai_client import OpenAIGenerativeClient
from nutrition_engine.adapters.supabase_budget_repository import (
    SupabaseBudgetRepository,
)
from nutrition_engine.adapters.supabase_food_repository import SupabaseFoodRepository
from nutrition_engine.adapters.supabase_recommendation_repository import (
    SupabaseRecommendationRepository,
)
from nutrition_engine.config import Settings
from nutrition_engine.engine import NutritionEngine
from nutrition_engine.services.budget import MacroBudgetService
from nutrition_engine.services.cache import InMemoryCache, InMemoryRecipeCache
from nutrition_engine.services.generative import GenerationOptions
from nutrition_engine.services.meals import MealService
from nutrition_engine.services.portions import PortionService
from nutrition_engine.services.recipes import RecipeCandidateGenerator, RecipeService
from nutrition_engine.services.resolution import ResolutionOrchestrator
from nutrition_engine.services.resolvers import (
    AiEstimateResolver,
    AiNutritionEstimator,
    FdcResolver,
    OpenFoodFactsResolver,
    VerifiedStoreResolver,
)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    orchestrator: ResolutionOrchestrator
    meal_service: MealService
    budget_service: MacroBudgetService
    portion_service: PortionService
    recipe_service: RecipeService
    engine: NutritionEngine
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    food_repository = SupabaseFoodRepository(supabase_client)
    budget_repository = SupabaseBudgetRepository(supabase_client)
    recommendation_repository = SupabaseRecommendationRepository(supabase_client)

    fdc_client = HttpxFdcClient.create(
        api_key=resolved_settings.fdc_api_key,
        base_url=resolved_settings.fdc_base_url,
    )
    off_client = HttpxOpenFoodFactsClient.create(
        base_url=resolved_settings.off_base_url
    )
    generative_client = OpenAIGenerativeClient.create(
        resolved_settings.openai_api_key,
        timeout_seconds=resolved_settings.openai_timeout_seconds,
    )
    options = GenerationOptions(
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )

    resolver_cache = InMemoryCache()
    ttl = resolved_settings.resolver_cache_ttl_seconds
    orchestrator = ResolutionOrchestrator(
        resolvers=[
            VerifiedStoreResolver(food_repository),
            FdcResolver(fdc_client, resolver_cache, ttl_seconds=ttl),
            OpenFoodFactsResolver(off_client, resolver_cache, ttl_seconds=ttl),
            AiEstimateResolver(AiNutritionEstimator(generative_client, options)),
        ],
        timeout_seconds=resolved_settings.resolver_timeout_seconds,
    )
    meal_service = MealService(orchestrator)
    budget_service = MacroBudgetService(budget_repository)
    portion_service = PortionService(
        foods=food_repository,
        budget_service=budget_service,
        recommendations=recommendation_repository,
    )
    recipe_service = RecipeService(
        generator=RecipeCandidateGenerator(generative_client, options),
        cache=InMemoryRecipeCache(resolved_settings.recipe_cache_ttl_seconds),
        max_attempts=resolved_settings.recipe_max_attempts,
        similarity_threshold=resolved_settings.recipe_similarity_threshold,
        retry_delay_seconds=resolved_settings.recipe_retry_delay_seconds,
    )
    engine = NutritionEngine(
        meal_service=meal_service,
        portion_service=portion_service,
        recipe_service=recipe_service,
    )

    async def close_resources() -> None:
        await fdc_client.close()
        await off_client.close()
        await generative_client.close()

    return AppContainer(
        settings=resolved_settings,
        orchestrator=orchestrator,
        meal_service=meal_service,
        budget_service=budget_service,
        portion_service=portion_service,
        recipe_service=recipe_service,
        engine=engine,
        close_resources=close_resources,
    )
