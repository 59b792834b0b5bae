"""Pricing lookup and per-session spend tracking."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from corvus.models import default_model, get_model_info

if TYPE_CHECKING:
    from corvus.providers.base import Message

# Flat rate (USD per 1M tokens) for models with no published pricing
FALLBACK_RATE_PER_1M = 10.0
TOKENS_PER_WORD = 1.3


@dataclass(frozen=True)
class Pricing:
    """USD per 1M tokens, input and output."""
    input_per_1m: float
    output_per_1m: float

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        return (
            input_tokens * self.input_per_1m / 1_000_000
            + output_tokens * self.output_per_1m / 1_000_000
        )


FALLBACK_PRICING = Pricing(FALLBACK_RATE_PER_1M, FALLBACK_RATE_PER_1M)


def pricing_for(provider: str, model: str) -> Pricing:
    """Registry pricing for ``model``, else the provider default's, else the flat rate."""
    info = get_model_info(provider, model)
    if info is None or not info.priced:
        try:
            info = get_model_info(provider, default_model(provider))
        except ValueError:
            info = None
    if info is None or not info.priced:
        return FALLBACK_PRICING
    return Pricing(info.input_cost_per_1m, info.output_cost_per_1m)


def estimate_tokens(messages: list[Message]) -> int:
    """Rough token count (~1.3 tokens per space-separated word).

    Every message counts at least one word, so the estimate grows strictly
    with history length.
    """
    words = sum(len(m.content.split(" ")) for m in messages)
    return math.ceil(words * TOKENS_PER_WORD)


def estimate_cost(messages: list[Message], pricing: Pricing) -> float:
    """Charge the estimated token count at both input and output rates."""
    tokens = estimate_tokens(messages)
    return pricing.cost(tokens, tokens)


@dataclass
class CostRecord:
    """A single cost event."""
    model: str
    input_tokens: int
    output_tokens: int
    cost: float
    turn: int
    estimated: bool = False


class BudgetTracker:
    """Tracks spend against a USD ceiling."""

    def __init__(self, total_budget: float, spent: float = 0.0):
        self.total_budget = total_budget
        self.spent = spent
        self.records: list[CostRecord] = []

    @property
    def remaining(self) -> float:
        return max(self.total_budget - self.spent, 0.0)

    @property
    def utilization(self) -> float:
        if self.total_budget == 0:
            return 1.0
        return self.spent / self.total_budget

    @property
    def avg_cost_per_call(self) -> float:
        if not self.records:
            return 0.0
        return sum(r.cost for r in self.records) / len(self.records)

    def record(
        self,
        model_id: str,
        input_tokens: int,
        output_tokens: int,
        pricing: Pricing,
        turn: int,
        estimated: bool = False,
    ) -> float:
        """Record a completed LLM call. Returns cost of this call."""
        cost = pricing.cost(input_tokens, output_tokens)
        self.spent += cost
        self.records.append(
            CostRecord(model_id, input_tokens, output_tokens, cost, turn, estimated)
        )
        return cost

    def can_afford(self, estimated_cost: float) -> bool:
        """True when ``estimated_cost`` fits; the ceiling itself is allowed.

        Spend is summed in binary floats, so a total that lands on the
        ceiling up to rounding error counts as fitting.
        """
        total = self.spent + estimated_cost
        return total <= self.total_budget or math.isclose(
            total, self.total_budget, rel_tol=1e-9, abs_tol=1e-12
        )

    def summary(self) -> dict:
        return {
            "total_budget": self.total_budget,
            "spent": self.spent,
            "remaining": self.remaining,
            "utilization": self.utilization,
            "total_calls": len(self.records),
            "avg_cost_per_call": self.avg_cost_per_call,
            "records": self.records,
        }
