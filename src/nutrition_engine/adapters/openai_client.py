"""OpenAI Responses API client for structured JSON completions."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI

from nutrition_engine.domain.errors import ProviderError
from nutrition_engine.services.generative import GenerativeClient


@dataclass
class OpenAIGenerativeClient(GenerativeClient):
    """Generative client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, timeout_seconds: float = 60.0
    ) -> "OpenAIGenerativeClient":
        """Create an OpenAI client with a bounded request timeout."""
        return cls(client=AsyncOpenAI(api_key=api_key, timeout=timeout_seconds))

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
        """Call OpenAI Responses API with structured outputs."""
        request_payload: dict[str, object] = {
            "model": model,
            "instructions": instructions,
            "input": [
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": prompt}],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        response = await self.client.responses.create(**request_payload)
        output_text = response.output_text
        if not output_text:
            raise ProviderError("OpenAI returned an empty response")
        try:
            data = json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise ProviderError("OpenAI returned malformed JSON") from exc
        if not isinstance(data, dict):
            raise ProviderError("OpenAI returned a non-object JSON payload")
        return data

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
