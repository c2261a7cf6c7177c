"""Test doubles and data helpers shared by unit and integration tests."""

from __future__ import annotations

import asyncio
import json

from content_engine.embeddings.hashing_embedder import HashingEmbedder
from content_engine.exceptions import ProviderError
from content_engine.models.domain import ContentItem, Feedback, GeneratedOutput
from content_engine.models.schemas import ProviderCompletion
from content_engine.storage.sqlite_content_store import SQLiteContentStore

TEST_DIMENSIONS = 8


class FakeProvider:
    """Completion provider that replays canned responses and records prompts."""

    default_model = "fake-model"

    def __init__(
        self,
        responses: list[str] | None = None,
        name: str = "fake",
        cost: float = 0.001,
        delay: float = 0.0,
        error: Exception | None = None,
        estimate: float = 0.01,
    ) -> None:
        self.name = name
        self.responses = list(responses or ['{"stakeholders": []}'])
        self.cost = cost
        self.delay = delay
        self.error = error
        self.estimate = estimate
        self.prompts: list[str] = []

    @property
    def supported_models(self) -> list[str]:
        return [self.default_model]

    def is_available(self) -> bool:
        return True

    def estimate_cost(self, model: str, max_tokens: int) -> float:
        return self.estimate

    async def complete(
        self,
        prompt: str,
        model: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> ProviderCompletion:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        content = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        return ProviderCompletion(
            content=content,
            model=model,
            input_tokens=len(prompt) // 4,
            output_tokens=len(content) // 4,
            cost=self.cost,
        )


class FailingProvider(FakeProvider):
    def __init__(self, name: str = "fake") -> None:
        super().__init__(name=name, error=ProviderError("upstream 500", provider=name))


class FakeEmbedder:
    """Returns fixed vectors for known texts and hashed vectors otherwise."""

    def __init__(self, vectors: dict[str, list[float]] | None = None, dimensions: int = TEST_DIMENSIONS):
        self.vectors = vectors or {}
        self.calls = 0
        self._fallback = HashingEmbedder(dimensions, model="fake-embedding")

    @property
    def dimensions(self) -> int:
        return self._fallback.dimensions

    @property
    def model(self) -> str:
        return self._fallback.model

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.calls += 1
        fallback = await self._fallback.embed_texts(texts)
        return [self.vectors.get(text, vec) for text, vec in zip(texts, fallback)]

    async def embed_query(self, query: str) -> list[float]:
        return (await self.embed_texts([query]))[0]


def extraction_response(**families) -> str:
    """Provider output wrapping an entity payload in prose and a code fence."""
    return "Here is what I found:\n```json\n" + json.dumps(families) + "\n```\nLet me know!"


async def add_exemplar(
    content_store: SQLiteContentStore,
    content: str,
    action: str = "accept",
    confidence: float = 1.0,
    user_id: int = 1,
    output_type: str = "entity_extraction",
    metadata: dict | None = None,
    quality_score: float = 0.9,
) -> tuple[ContentItem, GeneratedOutput, Feedback]:
    item = await content_store.save_input(
        ContentItem(user_id=user_id, content=content, content_type="brain_dump")
    )
    output = await content_store.save_output(
        GeneratedOutput(
            input_id=item.id, content=f"output for {content}", output_type=output_type,
            quality_score=quality_score,
        )
    )
    feedback = await content_store.add_feedback(
        Feedback(
            output_id=output.id,
            user_id=user_id,
            kind="inline",
            action=action,
            signal_type="explicit",
            confidence=confidence,
            metadata=metadata or {},
        )
    )
    return item, output, feedback
