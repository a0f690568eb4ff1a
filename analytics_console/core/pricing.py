"""
Model pricing and cost estimation.

Used when a caller reports token counts without a cost.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_UP
from typing import Dict


@dataclass(frozen=True)
class TokenUsage:
    """Prompt and completion token counts for one request."""
    prompt_tokens: int
    completion_tokens: int

    @property
    def total_tokens(self) -> int:
        """Total tokens used (prompt + completion)."""
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a specific model, in USD."""
    prompt_cost_per_1k: Decimal
    completion_cost_per_1k: Decimal


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table for known models."""
    prices: Dict[str, ModelPricing]

    def __contains__(self, model: str) -> bool:
        return model in self.prices

    def get_pricing(self, model: str) -> ModelPricing:
        """Get pricing for a specific model.

        Args:
            model: Model identifier

        Returns:
            ModelPricing for the model

        Raises:
            ValueError: If model is not in the table
        """
        if model not in self.prices:
            raise ValueError(f"Unsupported model: {model}")
        return self.prices[model]


def _price(prompt: str, completion: str) -> ModelPricing:
    return ModelPricing(Decimal(prompt), Decimal(completion))


PRICING_TABLE = PricingTable({
    # OpenAI
    "gpt-4-turbo": _price("0.01", "0.03"),
    "gpt-4": _price("0.03", "0.06"),
    "gpt-3.5-turbo": _price("0.0015", "0.002"),
    # Anthropic
    "claude-3-opus": _price("0.015", "0.075"),
    "claude-3-sonnet": _price("0.003", "0.015"),
    "claude-3-haiku": _price("0.00025", "0.00125"),
    "claude-3-5-sonnet": _price("0.003", "0.015"),
    # Google
    "gemini-pro": _price("0.00025", "0.0005"),
    "gemini-1.5-pro": _price("0.00125", "0.00375"),
    "gemini-1.5-flash": _price("0.000075", "0.0003"),
})

COST_PRECISION = Decimal("0.000001")


def estimate_cost(model: str, usage: TokenUsage) -> Decimal:
    """Estimate the cost of a request, rounded up to a millionth of a dollar.

    Args:
        model: Model identifier
        usage: Token usage data

    Returns:
        Estimated cost in USD

    Raises:
        ValueError: If model is not in the pricing table
    """
    pricing = PRICING_TABLE.get_pricing(model)

    prompt_cost = (Decimal(usage.prompt_tokens) / Decimal("1000")) * pricing.prompt_cost_per_1k
    completion_cost = (Decimal(usage.completion_tokens) / Decimal("1000")) * pricing.completion_cost_per_1k

    return (prompt_cost + completion_cost).quantize(COST_PRECISION, rounding=ROUND_UP)
