"""Completion gateway: provider routing, rate and cost limits, and the job ledger."""

from __future__ import annotations

import asyncio
import hashlib
import time
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from content_engine.config.constants import JOB_STATUSES
from content_engine.config.settings import Settings
from content_engine.exceptions import (
    CostLimitExceeded,
    ProviderError,
    RateLimitExceeded,
)
from content_engine.models.domain import AiJob
from content_engine.models.schemas import CompletionOptions, CompletionResult, UsageStats
from content_engine.observability.logger import get_logger
from content_engine.observability.metrics import log_gateway_metrics
from content_engine.protocols.counter import CounterStore
from content_engine.protocols.llm import CompletionProvider
from content_engine.storage.sqlite_job_store import SQLiteJobStore

logger = get_logger("gateway")

RATE_LIMIT_TTL_SECONDS = 120


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CompletionGateway:
    """Single entry point for every metered completion call.

    Callers never talk to providers directly. Each call is checked against the
    per-minute rate limit and the daily/monthly budget, then recorded as a job
    whether it succeeds or fails. Failures are never retried here.
    """

    def __init__(
        self,
        providers: list[CompletionProvider],
        counters: CounterStore,
        job_store: SQLiteJobStore,
        settings: Settings,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._providers = {p.name: p for p in providers if p.is_available()}
        self._counters = counters
        self._jobs = job_store
        self._settings = settings
        self._clock = clock
        self._budget_lock = asyncio.Lock()

    @property
    def providers(self) -> list[str]:
        return sorted(self._providers)

    async def complete(
        self, prompt: str, options: CompletionOptions | None = None
    ) -> CompletionResult:
        options = options or CompletionOptions()
        provider = self.select_provider(prompt, options)
        model = options.model or provider.default_model

        await self._check_rate_limit()

        async with self._budget_lock:
            estimated = provider.estimate_cost(model, options.max_tokens)
            await self._check_cost_limit(estimated)
            job = await self._jobs.create(
                AiJob(
                    provider=provider.name,
                    model=model,
                    method=options.method,
                    prompt_hash=hashlib.sha256(prompt.encode("utf-8")).hexdigest(),
                    prompt_length=len(prompt),
                    estimated_cost=estimated,
                    options=options.model_dump(exclude_none=True),
                    user_id=options.user_id,
                    created_at=self._clock(),
                )
            )

        logger.info(
            "ai_request_started",
            job_id=job.id,
            provider=provider.name,
            model=model,
            method=options.method,
            prompt_length=len(prompt),
            estimated_cost=round(estimated, 6),
        )

        start = time.monotonic()
        try:
            completion = await asyncio.wait_for(
                provider.complete(
                    prompt,
                    model=model,
                    max_tokens=options.max_tokens,
                    temperature=options.temperature,
                ),
                timeout=self._settings.provider_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            duration_ms = (time.monotonic() - start) * 1000
            message = f"{provider.name} timed out after {self._settings.provider_timeout_seconds}s"
            await self._jobs.mark_failed(job, message, duration_ms)
            logger.error("ai_request_failed", job_id=job.id, provider=provider.name, error=message)
            raise ProviderError(message, provider=provider.name, prompt_length=len(prompt)) from e
        except ProviderError as e:
            duration_ms = (time.monotonic() - start) * 1000
            await self._jobs.mark_failed(job, str(e), duration_ms)
            logger.error("ai_request_failed", job_id=job.id, provider=provider.name, error=str(e))
            raise
        except Exception as e:
            duration_ms = (time.monotonic() - start) * 1000
            await self._jobs.mark_failed(job, str(e), duration_ms)
            logger.error("ai_request_failed", job_id=job.id, provider=provider.name, error=str(e))
            raise ProviderError(
                f"AI request failed: {e}", provider=provider.name, prompt_length=len(prompt)
            ) from e

        duration_ms = (time.monotonic() - start) * 1000
        await self._jobs.mark_completed(
            job,
            tokens_used=completion.tokens_used,
            cost=completion.cost,
            response_length=len(completion.content),
            duration_ms=duration_ms,
        )
        log_gateway_metrics(
            provider.name, completion.model, completion.tokens_used, completion.cost, duration_ms
        )

        return CompletionResult(
            content=completion.content,
            tokens_used=completion.tokens_used,
            cost=completion.cost,
            metadata={
                "provider": provider.name,
                "model": completion.model,
                "job_id": job.id,
                "input_tokens": completion.input_tokens,
                "output_tokens": completion.output_tokens,
                "duration_ms": round(duration_ms, 2),
            },
        )

    def select_provider(self, prompt: str, options: CompletionOptions) -> CompletionProvider:
        if options.provider:
            provider = self._providers.get(options.provider)
            if provider is None:
                raise ProviderError(
                    f"Provider '{options.provider}' is not configured",
                    provider=options.provider,
                    prompt_length=len(prompt),
                )
            return provider

        name = self._route(prompt, options.complexity)
        provider = self._providers.get(name) or self._providers.get(self._settings.default_provider)
        if provider is None:
            if not self._providers:
                raise ProviderError(
                    "No completion providers are configured",
                    provider=name,
                    prompt_length=len(prompt),
                )
            provider = self._providers[sorted(self._providers)[0]]
        return provider

    def _route(self, prompt: str, complexity: str | None) -> str:
        if complexity == "low" or len(prompt) < self._settings.short_prompt_chars:
            return self._settings.fast_provider
        if complexity == "high" or len(prompt) > self._settings.long_prompt_chars:
            return self._settings.strong_provider
        return self._settings.default_provider

    async def _check_rate_limit(self) -> None:
        key = f"ai_rate_limit:{self._clock().strftime('%Y-%m-%d-%H-%M')}"
        count = await self._counters.increment(key, RATE_LIMIT_TTL_SECONDS)
        limit = self._settings.ai_rate_limit_per_minute
        if count > limit:
            logger.warning("ai_rate_limited", key=key, count=count, limit=limit)
            raise RateLimitExceeded(
                f"AI rate limit of {limit} requests per minute exceeded", key=key, limit=limit
            )

    async def _check_cost_limit(self, estimated: float) -> None:
        now = self._clock()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        month_start = day_start.replace(day=1)

        daily = await self._jobs.spend_since(day_start)
        if daily + estimated > self._settings.ai_cost_limit_daily:
            logger.warning("ai_cost_limited", period="daily", spent=daily, estimated=estimated)
            raise CostLimitExceeded(
                "Daily AI cost limit would be exceeded",
                period="daily",
                spent=daily,
                limit=self._settings.ai_cost_limit_daily,
            )

        monthly = await self._jobs.spend_since(month_start)
        if monthly + estimated > self._settings.ai_cost_limit_monthly:
            logger.warning("ai_cost_limited", period="monthly", spent=monthly, estimated=estimated)
            raise CostLimitExceeded(
                "Monthly AI cost limit would be exceeded",
                period="monthly",
                spent=monthly,
                limit=self._settings.ai_cost_limit_monthly,
            )

    async def usage_stats(self, period: str = "today") -> UsageStats:
        now = self._clock()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        since = {
            "today": day_start,
            "week": day_start - timedelta(days=day_start.weekday()),
            "month": day_start.replace(day=1),
        }[period]
        jobs = await self._jobs.list_since(since)

        completed = [j for j in jobs if j.status == "completed"]
        durations = [j.duration_ms for j in jobs if j.duration_ms is not None]
        cost_by_provider: dict[str, float] = defaultdict(float)
        for job in jobs:
            cost_by_provider[job.provider] += job.cost or 0.0

        return UsageStats(
            period=period,
            total_requests=len(jobs),
            total_cost=round(sum(j.cost or 0.0 for j in jobs), 6),
            total_tokens=sum(j.tokens_used or 0 for j in jobs),
            success_rate=round(len(completed) / max(len(jobs), 1) * 100, 2),
            average_latency_ms=round(sum(durations) / len(durations), 2) if durations else 0.0,
            cost_by_provider={k: round(v, 6) for k, v in cost_by_provider.items()},
            requests_by_status={
                status: sum(1 for j in jobs if j.status == status) for status in JOB_STATUSES
            },
        )
