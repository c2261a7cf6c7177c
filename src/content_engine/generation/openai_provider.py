"""OpenAI chat-completions provider."""

from __future__ import annotations

from openai import AsyncOpenAI

from content_engine.exceptions import ProviderError
from content_engine.generation.pricing import (
    OPENAI_PRICING,
    estimate_request_cost,
    model_pricing,
    usage_cost,
)
from content_engine.models.schemas import ProviderCompletion
from content_engine.observability.logger import get_logger

logger = get_logger("openai")


class OpenAIProvider:
    name = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini") -> None:
        self._api_key = api_key
        self._client = AsyncOpenAI(api_key=api_key)
        self.default_model = model

    @property
    def supported_models(self) -> list[str]:
        return list(OPENAI_PRICING)

    def is_available(self) -> bool:
        return bool(self._api_key)

    def estimate_cost(self, model: str, max_tokens: int) -> float:
        return estimate_request_cost(model_pricing(OPENAI_PRICING, model, "gpt-4o-mini"), max_tokens)

    async def complete(
        self,
        prompt: str,
        model: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> ProviderCompletion:
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except Exception as e:
            raise ProviderError(
                f"OpenAI completion failed: {e}", provider=self.name, prompt_length=len(prompt)
            ) from e

        usage = response.usage
        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0
        return ProviderCompletion(
            content=response.choices[0].message.content or "",
            model=response.model or model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=usage_cost(
                model_pricing(OPENAI_PRICING, model, "gpt-4o-mini"), input_tokens, output_tokens
            ),
        )
