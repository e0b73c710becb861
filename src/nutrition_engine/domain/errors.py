"""Error taxonomy for nutrition resolution and recommendations."""


class NutritionEngineError(Exception):
    """Base class for all engine errors."""


class InvalidInputError(NutritionEngineError, ValueError):
    """Caller input rejected before any external call."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field


class UnresolvedFoodError(NutritionEngineError, LookupError):
    """No configured source could resolve a food query."""

    def __init__(self, query: str, attempted: list[str] | None = None) -> None:
        super().__init__(f"Could not resolve nutrition for {query!r}")
        self.query = query
        self.attempted = attempted or []


class ProviderError(NutritionEngineError, RuntimeError):
    """External provider returned unusable output."""
