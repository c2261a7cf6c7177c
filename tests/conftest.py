"""Shared test fixtures."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest
from fakes import TEST_DIMENSIONS, FakeEmbedder, FakeProvider

from content_engine.config.settings import Settings
from content_engine.generation.gateway import CompletionGateway
from content_engine.models.domain import ContentItem, GeneratedOutput
from content_engine.storage.counters import InMemoryCounterStore
from content_engine.storage.sqlite_content_store import SQLiteContentStore
from content_engine.storage.sqlite_domain_store import SQLiteDomainStore
from content_engine.storage.sqlite_job_store import SQLiteJobStore


@pytest.fixture
def tmp_dir():
    """Create a temporary directory."""
    return tempfile.mkdtemp()


@pytest.fixture
def settings(tmp_dir):
    """Test settings with temp paths and small embeddings."""
    return Settings(
        openai_api_key="",
        anthropic_api_key="",
        google_api_key="",
        default_provider="fake",
        fast_provider="fake",
        strong_provider="fake",
        sqlite_db_path=str(Path(tmp_dir) / "test_content.db"),
        embedding_cache_db_path=str(Path(tmp_dir) / "test_cache.db"),
        faiss_index_path=str(Path(tmp_dir) / "faiss_index"),
        embedding_dimensions=TEST_DIMENSIONS,
        counter_backend="memory",
        provider_timeout_seconds=2.0,
    )


@pytest.fixture
async def content_store(settings):
    store = SQLiteContentStore(settings.sqlite_db_path)
    await store.initialize()
    return store


@pytest.fixture
async def domain_store(settings):
    store = SQLiteDomainStore(settings.sqlite_db_path)
    await store.initialize()
    return store


@pytest.fixture
async def job_store(settings):
    store = SQLiteJobStore(settings.sqlite_db_path)
    await store.initialize()
    return store


@pytest.fixture
def counters():
    return InMemoryCounterStore()


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def gateway(fake_provider, counters, job_store, settings):
    return CompletionGateway([fake_provider], counters, job_store, settings)


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
async def stored_output(content_store):
    """An input with one extraction output, ready to receive feedback."""
    item = await content_store.save_input(
        ContentItem(user_id=1, content="Sarah owns the Payments launch.", content_type="brain_dump")
    )
    return await content_store.save_output(
        GeneratedOutput(
            input_id=item.id, content="{}", output_type="entity_extraction", quality_score=0.9
        )
    )
