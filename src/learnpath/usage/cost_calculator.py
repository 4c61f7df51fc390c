"""Token cost estimates for completion calls."""

from __future__ import annotations

from collections import defaultdict

# USD per 1M tokens, keyed by dated model id
MODEL_PRICING: dict[str, dict[str, float]] = {
    "claude-haiku-4-5-20251001": {"input": 1.00, "output": 5.00},
    "claude-sonnet-4-5-20250929": {"input": 3.00, "output": 15.00},
    "claude-opus-4-1-20250805": {"input": 15.00, "output": 75.00},
}


def price_for(model_id: str) -> dict[str, float] | None:
    """Price entry for a model id; undated aliases resolve to their dated release."""
    if model_id in MODEL_PRICING:
        return MODEL_PRICING[model_id]
    for dated, pricing in MODEL_PRICING.items():
        if dated.startswith(model_id + "-"):
            return pricing
    return None


def cost_by_model(calls: list[tuple[str, int, int]]) -> dict[str, float]:
    """USD per model for (model_id, input_tokens, output_tokens) calls.

    Unpriced models are left out.
    """
    costs: dict[str, float] = defaultdict(float)
    for model_id, input_tokens, output_tokens in calls:
        pricing = price_for(model_id)
        if pricing is None:
            continue
        costs[model_id] += (
            input_tokens * pricing["input"] + output_tokens * pricing["output"]
        ) / 1_000_000
    return dict(costs)


def calculate_cost(calls: list[tuple[str, int, int]]) -> float:
    return sum(cost_by_model(calls).values())
