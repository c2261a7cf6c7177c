"""Google Gemini completion provider using the google-genai SDK."""

from __future__ import annotations

from google import genai
from google.genai import types

from content_engine.exceptions import ProviderError
from content_engine.generation.pricing import (
    GEMINI_PRICING,
    estimate_request_cost,
    model_pricing,
    usage_cost,
)
from content_engine.models.schemas import ProviderCompletion
from content_engine.observability.logger import get_logger

logger = get_logger("gemini")


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash") -> None:
        self._api_key = api_key
        self._client = genai.Client(api_key=api_key)
        self.default_model = model

    @property
    def supported_models(self) -> list[str]:
        return list(GEMINI_PRICING)

    def is_available(self) -> bool:
        return bool(self._api_key)

    def estimate_cost(self, model: str, max_tokens: int) -> float:
        return estimate_request_cost(
            model_pricing(GEMINI_PRICING, model, "gemini-2.0-flash"), max_tokens
        )

    async def complete(
        self,
        prompt: str,
        model: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> ProviderCompletion:
        try:
            config = types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
            )
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            raise ProviderError(
                f"Gemini generation failed: {e}", provider=self.name, prompt_length=len(prompt)
            ) from e

        usage = response.usage_metadata
        input_tokens = (usage.prompt_token_count or 0) if usage else 0
        output_tokens = (usage.candidates_token_count or 0) if usage else 0
        return ProviderCompletion(
            content=response.text or "",
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=usage_cost(
                model_pricing(GEMINI_PRICING, model, "gemini-2.0-flash"),
                input_tokens,
                output_tokens,
            ),
        )
