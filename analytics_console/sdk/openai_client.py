"""
Tracked OpenAI client wrapper.

Records one usage event per successful chat completion without modifying
the response.
"""

import time
from typing import Any, Dict, List, Optional

from openai import OpenAI

from ..core.facade import AnalyticsConsole
from ..core.pricing import PRICING_TABLE, TokenUsage, estimate_cost
from ..storage.models import EventInput, EventRecord


class TrackedOpenAI:
    """OpenAI client wrapper that appends usage events to a console.

    Failed API calls record nothing and propagate unchanged. Store failures
    are loud so no usage goes missing silently.
    """

    def __init__(self, console: AnalyticsConsole, model: str, client: Optional[OpenAI] = None):
        """Initialize tracked OpenAI client.

        Args:
            console: Analytics console receiving the events (required)
            model: OpenAI model name (required)
            client: Preconfigured OpenAI client (defaults to OpenAI())

        Raises:
            ValueError: If model is missing/empty
        """
        if console is None:
            raise ValueError("console is required")
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")

        self.console = console
        self.model = model
        self.client = client or OpenAI()
        self.last_event: Optional[EventRecord] = None

    def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs: Any
    ) -> Any:
        """Create a chat completion and record its usage.

        Args:
            messages: List of message dictionaries (required)
            temperature: Sampling temperature (optional)
            max_tokens: Maximum tokens to generate (optional)
            **kwargs: Additional OpenAI parameters

        Returns:
            OpenAI chat completion response

        Raises:
            ValueError: If messages is empty or the response lacks usage
            OpenAI API errors: Propagated without modification
        """
        if not messages:
            raise ValueError("messages is required and cannot be empty")

        started = time.perf_counter()
        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs
        )
        latency_ms = int((time.perf_counter() - started) * 1000)

        usage = response.usage
        if not usage:
            raise ValueError("OpenAI response missing usage information")

        token_usage = TokenUsage(
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens
        )
        cost = estimate_cost(self.model, token_usage) if self.model in PRICING_TABLE else 0

        metadata = {"provider": "openai", "model": self.model}
        if response.id:
            metadata["request_id"] = str(response.id)

        self.last_event = self.console.append(EventInput(
            tokens=token_usage.total_tokens,
            cost=cost,
            latency_ms=latency_ms,
            metadata=metadata
        ))
        return response
