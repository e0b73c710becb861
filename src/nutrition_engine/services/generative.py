"""Interface to the external generative inference provider."""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class GenerationOptions:
    """Model settings passed through to the provider."""

    model: str
    reasoning_effort: str | None = None
    store: bool = False


class GenerativeClient(Protocol):
    """Interface for structured JSON completions."""

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
        """Return the provider's JSON answer for ``prompt``."""
