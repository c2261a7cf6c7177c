"""Protocol for completion providers."""

from __future__ import annotations

from typing import Protocol

from content_engine.models.schemas import ProviderCompletion


class CompletionProvider(Protocol):
    name: str
    default_model: str

    @property
    def supported_models(self) -> list[str]: ...

    def is_available(self) -> bool: ...

    def estimate_cost(self, model: str, max_tokens: int) -> float: ...

    async def complete(
        self,
        prompt: str,
        model: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> ProviderCompletion: ...
