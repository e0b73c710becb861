"""Supabase repository for verified foods."""

from dataclasses import dataclass

from supabase import Client

from nutrition_engine.domain.nutrition import NutrientProfile, NutrientSource
from nutrition_engine.domain.portions import FoodRecord
from nutrition_engine.policy import EXTERNAL_PARTIAL_CONFIDENCE, VERIFIED_CONFIDENCE
from nutrition_engine.services.portions import FoodRepository
from nutrition_engine.services.resolvers import VerifiedFoodStore, normalize_name

_COLUMNS = (
    "id, name, calories, protein_g, carbs_g, fat_g, fiber_g, sodium_mg, "
    "micronutrients, verified"
)


@dataclass
class SupabaseFoodRepository(VerifiedFoodStore, FoodRepository):
    """Verified food store and food lookup backed by the ``foods`` table."""

    client: Client

    def lookup(self, name: str) -> NutrientProfile | None:
        """Return the verified food whose name matches exactly (case-insensitive)."""
        response = (
            self.client.table("foods")
            .select(_COLUMNS)
            .ilike("name", _like_literal(normalize_name(name)))
            .eq("verified", True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_profile(response.data[0])

    def get_food(self, food_id: str) -> FoodRecord | None:
        """Return a food by id."""
        response = (
            self.client.table("foods")
            .select(_COLUMNS)
            .eq("id", food_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return FoodRecord(
            id=str(row.get("id")),
            name=str(row.get("name") or ""),
            profile=_parse_profile(row),
        )


def _like_literal(value: str) -> str:
    """Escape LIKE wildcards so the name matches literally."""
    return value.replace("\\", "\\\\").replace("%", r"\%").replace("_", r"\_")


def _number(row: dict[str, object], key: str) -> float:
    value = row.get(key)
    if isinstance(value, int | float) and not isinstance(value, bool) and value > 0:
        return float(value)
    return 0.0


def _parse_profile(row: dict[str, object]) -> NutrientProfile:
    raw_micros = row.get("micronutrients")
    micros = (
        {
            str(key): float(value)
            for key, value in raw_micros.items()
            if isinstance(value, int | float) and value >= 0
        }
        if isinstance(raw_micros, dict)
        else {}
    )
    verified = bool(row.get("verified"))
    return NutrientProfile(
        name=str(row.get("name") or ""),
        calories=_number(row, "calories"),
        protein_g=_number(row, "protein_g"),
        carbs_g=_number(row, "carbs_g"),
        fat_g=_number(row, "fat_g"),
        fiber_g=_number(row, "fiber_g"),
        sodium_mg=_number(row, "sodium_mg"),
        micronutrients=micros,
        source=NutrientSource.VERIFIED if verified else NutrientSource.EXTERNAL,
        confidence=VERIFIED_CONFIDENCE if verified else EXTERNAL_PARTIAL_CONFIDENCE,
        source_ref=f"foods:{row.get('id')}",
    )
