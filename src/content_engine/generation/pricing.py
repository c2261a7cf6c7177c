"""Per-model pricing tables (USD per 1K tokens) and cost arithmetic."""

from __future__ import annotations

OPENAI_PRICING: dict[str, dict[str, float]] = {
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    "gpt-4o": {"input": 0.0025, "output": 0.01},
    "gpt-4-turbo": {"input": 0.01, "output": 0.03},
    "gpt-3.5-turbo": {"input": 0.0005, "output": 0.0015},
}

ANTHROPIC_PRICING: dict[str, dict[str, float]] = {
    "claude-3-5-sonnet-20241022": {"input": 0.003, "output": 0.015},
    "claude-3-5-haiku-20241022": {"input": 0.0008, "output": 0.004},
    "claude-3-opus-20240229": {"input": 0.015, "output": 0.075},
    "claude-3-haiku-20240307": {"input": 0.00025, "output": 0.00125},
}

GEMINI_PRICING: dict[str, dict[str, float]] = {
    "gemini-2.0-flash": {"input": 0.0001, "output": 0.0004},
    "gemini-1.5-flash": {"input": 0.000075, "output": 0.0003},
    "gemini-1.5-pro": {"input": 0.00125, "output": 0.005},
}


def model_pricing(table: dict[str, dict[str, float]], model: str, fallback: str) -> dict[str, float]:
    return table.get(model, table[fallback])


def estimate_request_cost(pricing: dict[str, float], max_tokens: int) -> float:
    """Projected cost assuming half of ``max_tokens`` is input and half output."""
    return (max_tokens * 0.5 * pricing["input"] + max_tokens * 0.5 * pricing["output"]) / 1000


def usage_cost(pricing: dict[str, float], input_tokens: int, output_tokens: int) -> float:
    return (input_tokens / 1000) * pricing["input"] + (output_tokens / 1000) * pricing["output"]
