"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from nutrition_engine.config import Settings
from nutrition_engine.domain.nutrition import NutrientProfile, NutrientSource
from nutrition_engine.domain.portions import (
    ConsumedTotals,
    FoodRecord,
    MacroBudget,
    MacroGoals,
    MealType,
    PortionRecommendation,
)
from nutrition_engine.services.budget import BudgetRepository, MacroBudgetService
from nutrition_engine.services.generative import GenerationOptions, GenerativeClient
from nutrition_engine.services.portions import (
    FoodRepository,
    PortionService,
    RecommendationRepository,
)
from nutrition_engine.services.resolvers import NutrientResolver, VerifiedFoodStore


def make_profile(  # noqa: PLR0913
    name: str = "chicken breast",
    calories: float = 165.0,
    protein_g: float = 31.02,
    carbs_g: float = 0.0,
    fat_g: float = 3.6,
    fiber_g: float = 0.0,
    sodium_mg: float = 74.0,
    source: NutrientSource = NutrientSource.VERIFIED,
    confidence: float = 0.9,
    micronutrients: dict[str, float] | None = None,
) -> NutrientProfile:
    return NutrientProfile(
        name=name,
        calories=calories,
        protein_g=protein_g,
        carbs_g=carbs_g,
        fat_g=fat_g,
        fiber_g=fiber_g,
        sodium_mg=sodium_mg,
        source=source,
        confidence=confidence,
        micronutrients=micronutrients or {},
    )


@dataclass
class FakeClock:
    """Controllable clock for TTL tests."""

    now: datetime = field(default_factory=lambda: datetime(2026, 3, 1, 12, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@dataclass
class FakeResolver(NutrientResolver):
    """Resolver returning fixed profiles by name, or raising."""

    source_name: str
    profiles: dict[str, NutrientProfile] = field(default_factory=dict)
    error: Exception | None = None
    delay_seconds: float = 0.0
    calls: list[str] = field(default_factory=list)

    async def resolve(self, name: str) -> NutrientProfile | None:
        self.calls.append(name)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return self.profiles.get(name)


@dataclass
class InMemoryVerifiedStore(VerifiedFoodStore):
    """Verified store keyed by lower-case name."""

    foods: dict[str, NutrientProfile] = field(default_factory=dict)

    def lookup(self, name: str) -> NutrientProfile | None:
        return self.foods.get(name.strip().lower())


@dataclass
class FakeGenerativeClient(GenerativeClient):
    """Generative client replaying queued payloads or exceptions."""

    responses: list[dict[str, object] | Exception] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)
    default: dict[str, object] | None = None

    async def complete_json(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        instructions: str,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
    ) -> dict[str, object]:
        self.prompts.append(prompt)
        await asyncio.sleep(0)
        if self.responses:
            response = self.responses.pop(0)
        elif self.default is not None:
            response = self.default
        else:
            raise RuntimeError("no response queued")
        if isinstance(response, Exception):
            raise response
        return response


@dataclass
class InMemoryBudgetRepository(BudgetRepository):
    """Goals and daily totals kept in dictionaries."""

    goals: dict[str, MacroGoals] = field(default_factory=dict)
    consumed: dict[tuple[str, date], ConsumedTotals] = field(default_factory=dict)
    requested_days: list[date] = field(default_factory=list)

    def get_goals(self, user_id: str) -> MacroGoals | None:
        return self.goals.get(user_id)

    def get_consumed(self, user_id: str, day: date) -> ConsumedTotals:
        self.requested_days.append(day)
        return self.consumed.get((user_id, day), ConsumedTotals())


@dataclass
class InMemoryFoodRepository(FoodRepository):
    foods: dict[str, FoodRecord] = field(default_factory=dict)

    def get_food(self, food_id: str) -> FoodRecord | None:
        return self.foods.get(food_id)


@dataclass
class InMemoryRecommendationRepository(RecommendationRepository):
    saved: dict[UUID, dict[str, object]] = field(default_factory=dict)
    fail_on_save: bool = False

    def save_recommendation(
        self,
        user_id: str,
        meal_type: MealType,
        budget: MacroBudget,
        recommendation: PortionRecommendation,
    ) -> UUID:
        if self.fail_on_save:
            raise RuntimeError("database unavailable")
        recommendation_id = uuid4()
        self.saved[recommendation_id] = {
            "user_id": user_id,
            "meal_type": meal_type,
            "budget": budget,
            "recommendation": recommendation,
            "was_accepted": None,
            "actual_grams_used": None,
        }
        return recommendation_id

    def update_feedback(
        self,
        recommendation_id: UUID,
        was_accepted: bool,
        actual_grams_used: float | None,
    ) -> None:
        record = self.saved[recommendation_id]
        record["was_accepted"] = was_accepted
        record["actual_grams_used"] = actual_grams_used


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        openai_api_key="openai-key",
        fdc_api_key="fdc-key",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def generation_options() -> GenerationOptions:
    return GenerationOptions(model="gpt-5.2", reasoning_effort=None, store=False)


@pytest.fixture
def budget_repository() -> InMemoryBudgetRepository:
    return InMemoryBudgetRepository()


@pytest.fixture
def food_repository() -> InMemoryFoodRepository:
    return InMemoryFoodRepository(
        foods={
            "chicken": FoodRecord(
                id="chicken",
                name="Chicken breast",
                profile=make_profile(fat_g=3.6, carbs_g=0.0),
            ),
            "oats": FoodRecord(
                id="oats",
                name="Rolled oats",
                profile=make_profile(
                    name="rolled oats",
                    calories=389.0,
                    protein_g=16.9,
                    carbs_g=66.3,
                    fat_g=6.9,
                    fiber_g=10.6,
                    sodium_mg=2.0,
                ),
            ),
        }
    )


@pytest.fixture
def recommendation_repository() -> InMemoryRecommendationRepository:
    return InMemoryRecommendationRepository()


@pytest.fixture
def portion_service(
    food_repository: InMemoryFoodRepository,
    budget_repository: InMemoryBudgetRepository,
    recommendation_repository: InMemoryRecommendationRepository,
    clock: FakeClock,
) -> PortionService:
    return PortionService(
        foods=food_repository,
        budget_service=MacroBudgetService(budget_repository, clock=clock),
        recommendations=recommendation_repository,
    )
