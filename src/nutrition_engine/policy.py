"""Tunable product policy for resolution, portions and recipe generation.

These values encode product decisions, not mathematical necessity. Keep them
here so that scoring rules can be tuned without touching orchestration code.
"""

# Source confidence anchors (0-1).
VERIFIED_CONFIDENCE = 0.9
EXTERNAL_COMPLETE_CONFIDENCE = 0.9
EXTERNAL_PARTIAL_CONFIDENCE = 0.7
OPEN_FOOD_FACTS_COMPLETE_CONFIDENCE = 0.8
AI_ESTIMATE_CONFIDENCE = 0.5
GUESS_CONFIDENCE = 0.3

# Flat per-100g values used for a last-resort guess.
GUESS_CALORIES_PER_100G = 150.0
GUESS_PROTEIN_PER_100G = 5.0
GUESS_CARBS_PER_100G = 20.0
GUESS_FAT_PER_100G = 5.0

# Unknown units are treated as one 100 g serving per unit.
DEFAULT_GRAMS_PER_UNIT = 100.0

# Share of the remaining daily budget allotted to a single meal.
MEAL_TYPE_SHARES: dict[str, float] = {
    "breakfast": 0.25,
    "lunch": 0.35,
    "dinner": 0.35,
    "snack": 0.15,
}

PORTION_MIN_GRAMS = 10.0
PORTION_MAX_GRAMS = 500.0
# Used when a food carries no calories or macros to constrain the portion.
PORTION_DEFAULT_GRAMS = 100.0

CONFIDENCE_BASE = 70
CONFIDENCE_BALANCED_FIT_BONUS = 20
CONFIDENCE_COMPLETE_DATA_BONUS = 10
CONFIDENCE_POOR_FIT_PENALTY = 20
BALANCED_FIT_RANGE = (60.0, 100.0)
POOR_FIT_LOW = 20.0
POOR_FIT_HIGH = 150.0

# Reasoning thresholds.
PROTEIN_FIT_THRESHOLD = 50.0
PROTEIN_REMAINING_THRESHOLD = 20.0
CALORIE_BALANCE_RANGE = (80.0, 120.0)
FIBER_CARBS_FIT_THRESHOLD = 30.0
FIBER_RICH_PER_100G = 3.0
LIGHT_PORTION_CALORIES = 300.0

# Portion size labels, upper bound in grams (inclusive).
PORTION_LABELS: tuple[tuple[float, str], ...] = (
    (30.0, "small portion"),
    (100.0, "medium portion"),
    (200.0, "large portion"),
)
PORTION_LABEL_LARGEST = "extra large portion"

DEFAULT_DAILY_GOALS: dict[str, float] = {
    "calories": 2000.0,
    "protein": 150.0,
    "carbs": 250.0,
    "fat": 65.0,
    "fiber": 25.0,
}

# Recipe generation.
RECIPE_CACHE_TTL_SECONDS = 24 * 60 * 60
RECIPE_MAX_ATTEMPTS = 3
RECIPE_RETRY_DELAY_SECONDS = 0.5
# Maximum number of differing fingerprint characters (out of 16) for two
# recipes to count as near-duplicates.
RECIPE_SIMILARITY_THRESHOLD = 3
GENERATED_RECIPE_CONFIDENCE = 0.8
TEMPLATE_RECIPE_CONFIDENCE = 0.4
DEFAULT_CALORIE_TARGET = 500.0
DEFAULT_PROTEIN_TARGET = 20.0
