"""Quantity and unit conversion to grams."""

import logging
import re

from nutrition_engine.policy import DEFAULT_GRAMS_PER_UNIT

_logger = logging.getLogger(__name__)

# Grams per unit. Volumes assume water density; pieces use a typical
# medium-sized item.
UNIT_GRAMS: dict[str, float] = {
    "g": 1.0,
    "gram": 1.0,
    "grams": 1.0,
    "kg": 1000.0,
    "kilogram": 1000.0,
    "kilograms": 1000.0,
    "mg": 0.001,
    "oz": 28.35,
    "ounce": 28.35,
    "ounces": 28.35,
    "lb": 453.6,
    "lbs": 453.6,
    "pound": 453.6,
    "pounds": 453.6,
    "ml": 1.0,
    "milliliter": 1.0,
    "milliliters": 1.0,
    "l": 1000.0,
    "liter": 1000.0,
    "liters": 1000.0,
    "litre": 1000.0,
    "cup": 240.0,
    "cups": 240.0,
    "tbsp": 15.0,
    "tablespoon": 15.0,
    "tablespoons": 15.0,
    "tsp": 5.0,
    "teaspoon": 5.0,
    "teaspoons": 5.0,
    "slice": 30.0,
    "slices": 30.0,
    "piece": 150.0,
    "pieces": 150.0,
    "medium": 150.0,
    "large": 200.0,
    "small": 100.0,
    "ear": 90.0,
    "ears": 90.0,
}


def normalize_unit(unit: str) -> str:
    """Lower-case a unit and collapse internal whitespace."""
    return re.sub(r"\s+", " ", (unit or "").strip().lower())


def grams_per_unit(unit: str) -> float:
    """Return grams for one unit, defaulting to a 100 g serving."""
    return UNIT_GRAMS.get(normalize_unit(unit), DEFAULT_GRAMS_PER_UNIT)


def is_known_unit(unit: str) -> bool:
    return normalize_unit(unit) in UNIT_GRAMS


def grams_for(quantity: float, unit: str, food_name_hint: str | None = None) -> float:
    """Convert a quantity in ``unit`` to grams.

    Unknown units count as 100 g each, an intentional approximation rather
    than an error. ``food_name_hint`` is accepted for callers that know the
    food; the table is food-independent.
    """
    if not is_known_unit(unit):
        _logger.debug(
            "Unknown unit %r, assuming %sg per unit", unit, DEFAULT_GRAMS_PER_UNIT
        )
    return quantity * grams_per_unit(unit)
