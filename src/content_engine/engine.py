"""Composition root: wires stores, providers and services into one Engine."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from content_engine.config.settings import Settings
from content_engine.embeddings.cache import EmbeddingCache
from content_engine.embeddings.cached_embedder import CachedEmbedder
from content_engine.embeddings.openai_embedder import OpenAIEmbedder
from content_engine.embeddings.service import EmbeddingService
from content_engine.exceptions import ConfigurationError
from content_engine.extraction.orchestrator import EntityExtractor
from content_engine.feedback.analytics import FeedbackAnalyticsService
from content_engine.feedback.capture import FeedbackService
from content_engine.generation.anthropic_provider import AnthropicProvider
from content_engine.generation.gateway import CompletionGateway
from content_engine.generation.gemini_provider import GeminiProvider
from content_engine.generation.openai_provider import OpenAIProvider
from content_engine.observability.logger import get_logger
from content_engine.persistence.linker import RelationshipLinker
from content_engine.pipeline.content_pipeline import ContentPipeline
from content_engine.protocols.counter import CounterStore
from content_engine.protocols.embedder import Embedder
from content_engine.protocols.llm import CompletionProvider
from content_engine.reconciliation.matcher import EntityMatcher
from content_engine.retrieval.personalization import PersonalizedRetriever
from content_engine.retrieval.similarity_search import RetrievalService
from content_engine.storage.counters import InMemoryCounterStore, SQLiteCounterStore
from content_engine.storage.sqlite_content_store import SQLiteContentStore
from content_engine.storage.sqlite_domain_store import SQLiteDomainStore
from content_engine.storage.sqlite_job_store import SQLiteJobStore
from content_engine.vectorstore.faiss_store import FAISSVectorStore

logger = get_logger("engine")


@dataclass
class Engine:
    settings: Settings
    content_store: SQLiteContentStore
    domain_store: SQLiteDomainStore
    job_store: SQLiteJobStore
    counters: CounterStore
    vector_store: FAISSVectorStore
    gateway: CompletionGateway
    extractor: EntityExtractor
    matcher: EntityMatcher
    linker: RelationshipLinker
    feedback: FeedbackService
    analytics: FeedbackAnalyticsService
    embeddings: EmbeddingService | None
    retrieval: RetrievalService
    personalization: PersonalizedRetriever
    pipeline: ContentPipeline

    def close(self) -> None:
        self.vector_store.save()
        logger.info("shutdown_complete", index_size=self.vector_store.size)


def default_providers(settings: Settings) -> list[CompletionProvider]:
    """Every provider whose API key is configured."""
    providers: list[CompletionProvider] = []
    if settings.openai_api_key:
        providers.append(OpenAIProvider(api_key=settings.openai_api_key, model=settings.openai_model))
    if settings.anthropic_api_key:
        providers.append(
            AnthropicProvider(api_key=settings.anthropic_api_key, model=settings.anthropic_model)
        )
    if settings.google_api_key:
        providers.append(GeminiProvider(api_key=settings.google_api_key, model=settings.gemini_model))
    return providers


async def default_embedder(settings: Settings) -> Embedder | None:
    if not settings.openai_api_key:
        return None
    raw_embedder = OpenAIEmbedder(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        batch_size=settings.embedding_batch_size,
        dimensions=settings.embedding_dimensions,
    )
    cache = EmbeddingCache(settings.embedding_cache_db_path, namespace=settings.embedding_model)
    await cache.initialize()
    return CachedEmbedder(delegate=raw_embedder, cache=cache)


async def build_engine(
    settings: Settings | None = None,
    providers: list[CompletionProvider] | None = None,
    embedder: Embedder | None = None,
) -> Engine:
    settings = settings or Settings()

    for path in [settings.sqlite_db_path, settings.embedding_cache_db_path]:
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    # Storage
    content_store = SQLiteContentStore(settings.sqlite_db_path)
    await content_store.initialize()
    domain_store = SQLiteDomainStore(settings.sqlite_db_path)
    await domain_store.initialize()
    job_store = SQLiteJobStore(settings.sqlite_db_path)
    await job_store.initialize()

    # Counters
    if settings.counter_backend == "memory":
        counters: CounterStore = InMemoryCounterStore(purge_every=settings.counter_purge_every)
    elif settings.counter_backend == "sqlite":
        counters = SQLiteCounterStore(settings.sqlite_db_path, purge_every=settings.counter_purge_every)
        await counters.initialize()
    else:
        raise ConfigurationError(f"Unknown counter backend: {settings.counter_backend}")

    # Gateway
    providers = default_providers(settings) if providers is None else providers
    if not providers:
        logger.warning("no_providers_configured")
    gateway = CompletionGateway(providers, counters, job_store, settings)

    # Embeddings and vector index
    vector_store = FAISSVectorStore(
        dimensions=settings.embedding_dimensions,
        index_path=settings.faiss_index_path,
    )
    embedder = embedder or await default_embedder(settings)
    embeddings = None
    if embedder is None:
        logger.warning("embeddings_disabled", reason="no embedder configured")
    else:
        embeddings = EmbeddingService(embedder, content_store, vector_store, settings)
        if vector_store.size == 0:
            # Rebuild from the embeddings table if not loaded from disk
            await embeddings.rebuild_index()

    retrieval = RetrievalService(content_store, vector_store, settings)
    personalization = PersonalizedRetriever(retrieval, content_store, settings)

    extractor = EntityExtractor(gateway, settings)
    matcher = EntityMatcher(domain_store, settings)
    linker = RelationshipLinker(domain_store, settings)

    pipeline = ContentPipeline(
        extractor=extractor,
        matcher=matcher,
        linker=linker,
        store=content_store,
        gateway=gateway,
        settings=settings,
        embeddings=embeddings,
        retriever=personalization,
    )

    engine = Engine(
        settings=settings,
        content_store=content_store,
        domain_store=domain_store,
        job_store=job_store,
        counters=counters,
        vector_store=vector_store,
        gateway=gateway,
        extractor=extractor,
        matcher=matcher,
        linker=linker,
        feedback=FeedbackService(content_store, counters, settings),
        analytics=FeedbackAnalyticsService(content_store),
        embeddings=embeddings,
        retrieval=retrieval,
        personalization=personalization,
        pipeline=pipeline,
    )
    logger.info(
        "startup_complete",
        providers=gateway.providers,
        inputs=await content_store.count_inputs(),
        index_size=vector_store.size,
    )
    return engine
