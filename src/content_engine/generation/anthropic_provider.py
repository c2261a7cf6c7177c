"""Anthropic messages-API provider."""

from __future__ import annotations

from anthropic import AsyncAnthropic

from content_engine.exceptions import ProviderError
from content_engine.generation.pricing import (
    ANTHROPIC_PRICING,
    estimate_request_cost,
    model_pricing,
    usage_cost,
)
from content_engine.models.schemas import ProviderCompletion
from content_engine.observability.logger import get_logger

logger = get_logger("anthropic")

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"


class AnthropicProvider:
    name = "anthropic"

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL) -> None:
        self._api_key = api_key
        self._client = AsyncAnthropic(api_key=api_key)
        self.default_model = model

    @property
    def supported_models(self) -> list[str]:
        return list(ANTHROPIC_PRICING)

    def is_available(self) -> bool:
        return bool(self._api_key)

    def estimate_cost(self, model: str, max_tokens: int) -> float:
        return estimate_request_cost(model_pricing(ANTHROPIC_PRICING, model, DEFAULT_MODEL), max_tokens)

    async def complete(
        self,
        prompt: str,
        model: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> ProviderCompletion:
        try:
            response = await self._client.messages.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            raise ProviderError(
                f"Anthropic completion failed: {e}", provider=self.name, prompt_length=len(prompt)
            ) from e

        text = "".join(block.text for block in response.content if block.type == "text")
        return ProviderCompletion(
            content=text,
            model=response.model or model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            cost=usage_cost(
                model_pricing(ANTHROPIC_PRICING, model, DEFAULT_MODEL),
                response.usage.input_tokens,
                response.usage.output_tokens,
            ),
        )
