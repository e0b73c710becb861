"""Recipe fingerprints and request cache keys."""

import hashlib
import json
import re

from nutrition_engine.domain.recipes import RecipeRequest
from nutrition_engine.policy import DEFAULT_CALORIE_TARGET, DEFAULT_PROTEIN_TARGET

FINGERPRINT_BITS = 64
FINGERPRINT_WIDTH = FINGERPRINT_BITS // 4


def normalize_text(text: str) -> str:
    """Lower-case and collapse whitespace."""
    return re.sub(r"\s+", " ", text).strip().lower()


def recipe_text(title: str, ingredient_names: list[str], steps: list[str]) -> str:
    """Text that identifies a recipe for duplicate detection."""
    return normalize_text(" ".join([title, *ingredient_names, *steps]))


def _features(text: str) -> list[str]:
    words = re.findall(r"[a-z0-9]+", text)
    if len(words) < 2:
        return words
    return [f"{first} {second}" for first, second in zip(words, words[1:])]


def fingerprint(text: str) -> str:
    """SimHash of word bigrams rendered as 16 hex characters.

    Similar texts share most bits, so near-duplicates differ in few
    characters. Empty text maps to the all-zero fingerprint.
    """
    normalized = normalize_text(text)
    weights = [0] * FINGERPRINT_BITS
    for feature in _features(normalized):
        digest = hashlib.blake2b(feature.encode("utf-8"), digest_size=8).digest()
        value = int.from_bytes(digest, "big")
        for bit in range(FINGERPRINT_BITS):
            weights[bit] += 1 if value >> bit & 1 else -1
    bits = 0
    for bit, weight in enumerate(weights):
        if weight > 0:
            bits |= 1 << bit
    return f"{bits:0{FINGERPRINT_WIDTH}x}"


def hamming_distance(first: str, second: str) -> int:
    """Number of differing characters between two fingerprints."""
    if len(first) != len(second):
        raise ValueError("fingerprints must have the same width")
    return sum(1 for a, b in zip(first, second) if a != b)


def is_near_duplicate(candidate: str, existing: list[str], threshold: int) -> bool:
    return any(hamming_distance(candidate, other) <= threshold for other in existing)


def _normalized_items(items: tuple[str, ...]) -> list[str]:
    return sorted({normalize_text(item) for item in items if item.strip()})


def cache_key(request: RecipeRequest) -> str:
    """Stable SHA-256 of the request's semantic fields; the seed is excluded."""
    key_data = json.dumps(
        {
            "cuisine": normalize_text(request.cuisine or "any"),
            "diet": normalize_text(request.diet or "any"),
            "calorie_target": float(calorie_target(request)),
            "protein_target": float(protein_target(request)),
            "pantry_items": _normalized_items(request.pantry_items),
            "exclusions": _normalized_items(request.exclusions),
        },
        sort_keys=True,
    )
    return hashlib.sha256(key_data.encode("utf-8")).hexdigest()


def calorie_target(request: RecipeRequest) -> float:
    if request.calorie_target is None:
        return DEFAULT_CALORIE_TARGET
    return request.calorie_target


def protein_target(request: RecipeRequest) -> float:
    if request.protein_target is None:
        return DEFAULT_PROTEIN_TARGET
    return request.protein_target
