"""Validation models for loosely-typed generative provider output.

Provider JSON is never trusted: every field has a default and bad values are
replaced rather than rejected, so one malformed field does not discard an
otherwise usable answer.
"""

import math

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _non_negative(value: object, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not math.isfinite(number) or number < 0:
        return default
    return number


def _text(value: object, default: str = "") -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return default


def _text_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [text for text in (_text(item) for item in value) if text]


class NutritionEstimatePayload(BaseModel):
    """Per-100g estimate returned by the generative provider."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    calories: float = 0.0
    protein_g: float = Field(0.0, validation_alias=AliasChoices("protein_g", "protein"))
    carbs_g: float = Field(0.0, validation_alias=AliasChoices("carbs_g", "carbs"))
    fat_g: float = Field(0.0, validation_alias=AliasChoices("fat_g", "fat"))
    fiber_g: float = Field(0.0, validation_alias=AliasChoices("fiber_g", "fiber"))
    sodium_mg: float = Field(0.0, validation_alias=AliasChoices("sodium_mg", "sodium"))
    confidence: float = 0.5

    @field_validator(
        "calories",
        "protein_g",
        "carbs_g",
        "fat_g",
        "fiber_g",
        "sodium_mg",
        mode="before",
    )
    @classmethod
    def _coerce_amount(cls, value: object) -> float:
        return _non_negative(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: object) -> float:
        return min(1.0, _non_negative(value, default=0.5))

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value: object) -> str:
        return _text(value)

    @property
    def is_empty(self) -> bool:
        return not any(
            (self.calories, self.protein_g, self.carbs_g, self.fat_g, self.fiber_g)
        )


class RecipeIngredientPayload(BaseModel):
    """Ingredient line as the provider returns it."""

    model_config = ConfigDict(extra="ignore")

    item: str = Field("", validation_alias=AliasChoices("item", "name"))
    qty: str = Field("", validation_alias=AliasChoices("qty", "amount"))
    grams: float = 0.0

    @field_validator("item", "qty", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        return _text(value)

    @field_validator("grams", mode="before")
    @classmethod
    def _coerce_grams(cls, value: object) -> float:
        return _non_negative(value)


class RecipeMacrosPayload(BaseModel):
    """Per-serving macros; zero means the provider left the field out."""

    model_config = ConfigDict(extra="ignore")

    cal: float = Field(0.0, validation_alias=AliasChoices("cal", "calories"))
    protein_g: float = Field(0.0, validation_alias=AliasChoices("protein_g", "protein"))
    carbs_g: float = Field(0.0, validation_alias=AliasChoices("carbs_g", "carbs"))
    fat_g: float = Field(0.0, validation_alias=AliasChoices("fat_g", "fat"))
    fiber_g: float = Field(0.0, validation_alias=AliasChoices("fiber_g", "fiber"))

    @field_validator("cal", "protein_g", "carbs_g", "fat_g", "fiber_g", mode="before")
    @classmethod
    def _coerce_amount(cls, value: object) -> float:
        return _non_negative(value)


class GeneratedRecipePayload(BaseModel):
    """Recipe as returned by the generative provider."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(
        "Unnamed Recipe", validation_alias=AliasChoices("title", "name")
    )
    description: str = "A delicious recipe"
    cuisine: str = ""
    diet: str = ""
    servings: int = 4
    prep_time_min: int = Field(
        15, validation_alias=AliasChoices("prep_time_min", "prep_time")
    )
    cook_time_min: int = Field(
        30, validation_alias=AliasChoices("cook_time_min", "cook_time")
    )
    ingredients: list[RecipeIngredientPayload] = Field(default_factory=list)
    steps: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("steps", "instructions")
    )
    macros: RecipeMacrosPayload = Field(
        default_factory=RecipeMacrosPayload,
        validation_alias=AliasChoices("macros", "nutrition"),
    )
    tags: list[str] = Field(default_factory=list)
    allergen_flags: list[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: object) -> str:
        return _text(value, default="Unnamed Recipe")

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, value: object) -> str:
        return _text(value, default="A delicious recipe")

    @field_validator("cuisine", "diet", mode="before")
    @classmethod
    def _coerce_label(cls, value: object) -> str:
        return _text(value)

    @field_validator("servings", mode="before")
    @classmethod
    def _coerce_servings(cls, value: object) -> int:
        servings = int(_non_negative(value, default=4.0))
        return servings if servings > 0 else 4

    @field_validator("prep_time_min", mode="before")
    @classmethod
    def _coerce_prep(cls, value: object) -> int:
        return int(_non_negative(value, default=15.0))

    @field_validator("cook_time_min", mode="before")
    @classmethod
    def _coerce_cook(cls, value: object) -> int:
        return int(_non_negative(value, default=30.0))

    @field_validator("ingredients", mode="before")
    @classmethod
    def _coerce_ingredients(cls, value: object) -> list[object]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @field_validator("steps", "tags", "allergen_flags", mode="before")
    @classmethod
    def _coerce_text_list(cls, value: object) -> list[str]:
        return _text_list(value)

    @field_validator("macros", mode="before")
    @classmethod
    def _coerce_macros(cls, value: object) -> object:
        return value if isinstance(value, dict) else {}
