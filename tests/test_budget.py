"""Tests for the model registry, pricing lookup and spend tracking."""

from __future__ import annotations

import pytest

from corvus.budget import (
    FALLBACK_PRICING,
    BudgetTracker,
    Pricing,
    estimate_cost,
    estimate_tokens,
    pricing_for,
)
from corvus.models import (
    MODEL_REGISTRY,
    PROVIDERS,
    default_model,
    get_model_info,
    is_valid_model,
    models_for,
)
from corvus.providers.base import Message


class TestRegistry:

    def test_every_provider_has_a_default(self):
        for provider in PROVIDERS:
            assert is_valid_model(provider, default_model(provider))

    def test_unknown_provider_has_no_default(self):
        with pytest.raises(ValueError):
            default_model("nope")

    def test_lookup_is_scoped_to_provider(self):
        assert get_model_info("openai", "gpt-4o").provider == "openai"
        assert get_model_info("anthropic", "gpt-4o") is None
        assert not is_valid_model("google", "gpt-4o")

    def test_models_for_filters(self):
        assert models_for("groq")
        assert all(m.provider == "groq" for m in models_for("groq"))
        assert sum(len(models_for(p)) for p in PROVIDERS) == len(MODEL_REGISTRY)


class TestPricing:

    def test_registry_model_uses_its_rates(self):
        info = get_model_info("openai", "gpt-4o-mini")
        assert pricing_for("openai", "gpt-4o-mini") == Pricing(
            info.input_cost_per_1m, info.output_cost_per_1m
        )

    def test_unknown_model_uses_provider_default_rates(self):
        default = get_model_info("anthropic", default_model("anthropic"))
        pricing = pricing_for("anthropic", "claude-from-the-future")
        assert pricing.input_per_1m == default.input_cost_per_1m

    def test_unknown_provider_uses_flat_rate(self):
        assert pricing_for("mystery", "m") == FALLBACK_PRICING

    def test_cost_per_million(self):
        assert Pricing(3.0, 15.0).cost(1_000_000, 1_000_000) == pytest.approx(18.0)

    def test_estimate_grows_with_history(self):
        short = [Message("user", "hello")]
        longer = short + [Message("assistant", "hi there friend")]
        assert estimate_tokens(longer) > estimate_tokens(short)
        assert estimate_cost(longer, FALLBACK_PRICING) > estimate_cost(short, FALLBACK_PRICING)

    def test_estimate_rounds_up(self):
        # 3 words * 1.3 = 3.9 -> 4
        assert estimate_tokens([Message("user", "one two three")]) == 4


class TestBudgetTracker:

    def test_ceiling_is_inclusive(self):
        tracker = BudgetTracker(0.50, spent=0.25)
        assert tracker.can_afford(0.25)
        assert not tracker.can_afford(0.2500001)

    def test_ceiling_tolerates_float_rounding(self):
        # 0.1 + 0.2 is 0.30000000000000004 in binary floats
        tracker = BudgetTracker(0.3, spent=0.1)
        assert tracker.can_afford(0.2)
        assert not tracker.can_afford(0.2001)

    def test_record_accumulates(self):
        tracker = BudgetTracker(1.0)
        cost = tracker.record("m", 1000, 1000, Pricing(1.0, 1.0), turn=1)

        assert cost == pytest.approx(0.002)
        assert tracker.spent == pytest.approx(0.002)
        assert tracker.remaining == pytest.approx(0.998)
        summary = tracker.summary()
        assert summary["total_calls"] == 1
        assert summary["records"][0].turn == 1
