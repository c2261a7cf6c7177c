"""Tests for the completion gateway: routing, limits and the job ledger."""

from datetime import datetime, timezone

import pytest
from fakes import FailingProvider, FakeProvider

from content_engine.exceptions import CostLimitExceeded, ProviderError, RateLimitExceeded
from content_engine.generation.gateway import CompletionGateway
from content_engine.models.schemas import CompletionOptions

EPOCH = datetime(2000, 1, 1, tzinfo=timezone.utc)


async def test_complete_records_job(gateway, job_store):
    result = await gateway.complete("Extract entities please", CompletionOptions(max_tokens=100))
    assert result.content == '{"stakeholders": []}'
    assert result.metadata["provider"] == "fake"
    assert result.cost == pytest.approx(0.001)

    jobs = await job_store.list_since(EPOCH)
    assert len(jobs) == 1
    assert jobs[0].status == "completed"
    assert jobs[0].cost == pytest.approx(0.001)
    assert jobs[0].tokens_used == result.tokens_used
    assert jobs[0].prompt_length == len("Extract entities please")


async def test_rate_limit(counters, job_store, settings):
    settings = settings.model_copy(update={"ai_rate_limit_per_minute": 2})
    now = datetime.now(timezone.utc)
    gateway = CompletionGateway([FakeProvider()], counters, job_store, settings, clock=lambda: now)
    await gateway.complete("one")
    await gateway.complete("two")
    with pytest.raises(RateLimitExceeded) as exc_info:
        await gateway.complete("three")
    assert exc_info.value.limit == 2
    assert exc_info.value.key.startswith("ai_rate_limit:")
    # The rejected call never reached the ledger
    assert len(await job_store.list_since(EPOCH)) == 2


async def test_daily_cost_limit(counters, job_store, settings):
    settings = settings.model_copy(update={"ai_cost_limit_daily": 0.005})
    provider = FakeProvider(estimate=0.01)
    gateway = CompletionGateway([provider], counters, job_store, settings)
    with pytest.raises(CostLimitExceeded) as exc_info:
        await gateway.complete("hello")
    assert exc_info.value.period == "daily"
    assert provider.prompts == []


async def test_monthly_cost_limit(counters, job_store, settings):
    settings = settings.model_copy(
        update={"ai_cost_limit_daily": 100.0, "ai_cost_limit_monthly": 0.015}
    )
    gateway = CompletionGateway([FakeProvider(estimate=0.01, cost=0.01)], counters, job_store, settings)
    await gateway.complete("first")
    with pytest.raises(CostLimitExceeded) as exc_info:
        await gateway.complete("second")
    assert exc_info.value.period == "monthly"
    assert exc_info.value.spent == pytest.approx(0.01)


async def test_timeout_marks_job_failed(counters, job_store, settings):
    settings = settings.model_copy(update={"provider_timeout_seconds": 0.05})
    gateway = CompletionGateway([FakeProvider(delay=1.0)], counters, job_store, settings)
    with pytest.raises(ProviderError) as exc_info:
        await gateway.complete("slow prompt")
    assert exc_info.value.provider == "fake"
    assert exc_info.value.prompt_length == len("slow prompt")

    jobs = await job_store.list_since(EPOCH)
    assert jobs[0].status == "failed"
    assert "timed out" in jobs[0].error_message


async def test_provider_error_is_reraised(counters, job_store, settings):
    gateway = CompletionGateway([FailingProvider()], counters, job_store, settings)
    with pytest.raises(ProviderError):
        await gateway.complete("boom")
    jobs = await job_store.list_since(EPOCH)
    assert jobs[0].status == "failed"
    assert jobs[0].cost == 0


async def test_failed_jobs_do_not_count_towards_spend(counters, job_store, settings):
    gateway = CompletionGateway([FailingProvider()], counters, job_store, settings)
    with pytest.raises(ProviderError):
        await gateway.complete("boom")
    assert await job_store.spend_since(EPOCH) == 0


def test_routing(counters, job_store, settings):
    settings = settings.model_copy(
        update={"fast_provider": "fast", "strong_provider": "strong", "default_provider": "default"}
    )
    gateway = CompletionGateway(
        [FakeProvider(name="fast"), FakeProvider(name="strong"), FakeProvider(name="default")],
        counters,
        job_store,
        settings,
    )
    medium = "x" * 2000
    assert gateway.select_provider("short", CompletionOptions()).name == "fast"
    assert gateway.select_provider("x" * 6000, CompletionOptions()).name == "strong"
    assert gateway.select_provider(medium, CompletionOptions()).name == "default"
    assert gateway.select_provider(medium, CompletionOptions(complexity="low")).name == "fast"
    assert gateway.select_provider(medium, CompletionOptions(complexity="high")).name == "strong"
    assert gateway.select_provider(medium, CompletionOptions(provider="strong")).name == "strong"


def test_routing_falls_back_to_registered_provider(counters, job_store, settings):
    settings = settings.model_copy(
        update={"fast_provider": "openai", "strong_provider": "anthropic", "default_provider": "gemini"}
    )
    gateway = CompletionGateway([FakeProvider(name="only")], counters, job_store, settings)
    assert gateway.select_provider("short", CompletionOptions()).name == "only"


def test_explicit_unknown_provider_fails(gateway):
    with pytest.raises(ProviderError):
        gateway.select_provider("hi", CompletionOptions(provider="missing"))


async def test_usage_stats(counters, job_store, settings):
    ok = CompletionGateway([FakeProvider()], counters, job_store, settings)
    await ok.complete("fine")
    failing = CompletionGateway([FailingProvider()], counters, job_store, settings)
    with pytest.raises(ProviderError):
        await failing.complete("boom")

    stats = await ok.usage_stats("today")
    assert stats.total_requests == 2
    assert stats.success_rate == 50.0
    assert stats.total_cost == pytest.approx(0.001)
    assert stats.cost_by_provider == {"fake": pytest.approx(0.001)}
    assert stats.requests_by_status == {"processing": 0, "completed": 1, "failed": 1}
