"""
Unit tests for pricing calculations.

Tests cost accuracy, rounding behavior, and error handling.
"""

import pytest
from decimal import Decimal

from analytics_console.core.pricing import PRICING_TABLE, TokenUsage, estimate_cost


class TestTokenUsage:
    """Test TokenUsage dataclass."""

    def test_total_tokens_calculation(self):
        """Verify total_tokens is computed correctly."""
        usage = TokenUsage(prompt_tokens=100, completion_tokens=50)
        assert usage.total_tokens == 150


class TestPricingTable:
    """Test pricing table functionality."""

    def test_get_supported_model(self):
        """Verify pricing retrieval for supported models."""
        pricing = PRICING_TABLE.get_pricing("gpt-4")
        assert pricing.prompt_cost_per_1k == Decimal("0.03")
        assert pricing.completion_cost_per_1k == Decimal("0.06")

    def test_membership(self):
        assert "claude-3-haiku" in PRICING_TABLE
        assert "unknown-model" not in PRICING_TABLE

    def test_unsupported_model_raises_error(self):
        """Verify error for unknown models."""
        with pytest.raises(ValueError, match="Unsupported model: unknown-model"):
            PRICING_TABLE.get_pricing("unknown-model")


class TestCostEstimate:
    """Test cost estimates and rounding."""

    def test_exact_cost_gpt4(self):
        usage = TokenUsage(prompt_tokens=1000, completion_tokens=500)
        # 1000/1000 * 0.03 + 500/1000 * 0.06
        assert estimate_cost("gpt-4", usage) == Decimal("0.06")

    def test_small_costs_keep_precision(self):
        usage = TokenUsage(prompt_tokens=100, completion_tokens=0)
        # 100/1000 * 0.000075
        assert estimate_cost("gemini-1.5-flash", usage) == Decimal("0.000008")

    def test_zero_tokens(self):
        assert estimate_cost("gpt-4", TokenUsage(0, 0)) == Decimal("0")

    def test_unsupported_model(self):
        with pytest.raises(ValueError):
            estimate_cost("unknown-model", TokenUsage(1, 1))
