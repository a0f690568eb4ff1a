"""
Request model and JSON serialization for the HTTP boundary.

Wire names are camelCase; costs are sent as JSON numbers.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from analytics_console.core.errors import ValidationError
from analytics_console.core.pricing import PRICING_TABLE, TokenUsage, estimate_cost
from analytics_console.storage.models import (
    BreakdownStats,
    DailySummary,
    EventInput,
    EventRecord,
    SummaryStats,
)


class AppendRequest(BaseModel):
    """Body of POST /api/analytics/log.

    Either ``tokens`` or both ``promptTokens`` and ``completionTokens`` must be
    given. Range checks are left to the store so they are reported uniformly.
    """
    model_config = ConfigDict(populate_by_name=True)

    tokens: Optional[int] = None
    prompt_tokens: Optional[int] = Field(None, alias="promptTokens")
    completion_tokens: Optional[int] = Field(None, alias="completionTokens")
    cost: Optional[float] = None
    latency_ms: Optional[int] = Field(None, alias="latencyMs")
    timestamp: Optional[datetime] = None
    metadata: Optional[Dict[str, str]] = None

    def to_event_input(self) -> EventInput:
        """Resolve token totals and cost into an EventInput.

        Raises:
            ValidationError: If token counts or latency are missing
        """
        has_split = self.prompt_tokens is not None and self.completion_tokens is not None
        tokens = self.tokens
        if tokens is None:
            if not has_split:
                raise ValidationError(
                    "tokens (or promptTokens and completionTokens) is required",
                    field="tokens"
                )
            tokens = self.prompt_tokens + self.completion_tokens

        if self.latency_ms is None:
            raise ValidationError("latencyMs is required", field="latency_ms")

        cost = self.cost
        if cost is None:
            cost = 0
            model = (self.metadata or {}).get("model")
            if has_split and model in PRICING_TABLE and self.prompt_tokens >= 0 and self.completion_tokens >= 0:
                cost = estimate_cost(model, TokenUsage(self.prompt_tokens, self.completion_tokens))

        return EventInput(
            tokens=tokens,
            cost=cost,
            latency_ms=self.latency_ms,
            timestamp=self.timestamp,
            metadata=self.metadata
        )


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def record_to_dict(record: EventRecord) -> Dict:
    return {
        "id": record.id,
        "timestamp": record.timestamp.isoformat(),
        "tokens": record.tokens,
        "cost": float(record.cost),
        "latencyMs": record.latency_ms,
        "metadata": dict(record.metadata),
    }


def daily_to_dict(summary: DailySummary) -> Dict:
    data = {
        "date": summary.date.isoformat(),
        "eventCount": summary.event_count,
        "totalTokens": summary.total_tokens,
        "totalCost": float(summary.total_cost),
        "avgLatencyMs": summary.avg_latency_ms,
    }
    if summary.breakdown is not None:
        data["breakdown"] = breakdown_to_dict(summary.breakdown)
    return data


def summary_to_dict(stats: SummaryStats) -> Dict:
    return {
        "totalEvents": stats.total_events,
        "totalTokens": stats.total_tokens,
        "totalCost": float(stats.total_cost),
        "avgLatencyMs": stats.avg_latency_ms,
        "minLatencyMs": stats.min_latency_ms,
        "maxLatencyMs": stats.max_latency_ms,
        "avgTokensPerRequest": stats.avg_tokens_per_request,
        "avgCostPerRequest": float(stats.avg_cost_per_request),
        "firstTimestamp": _isoformat(stats.first_timestamp),
        "lastTimestamp": _isoformat(stats.last_timestamp),
    }


def breakdown_to_dict(groups: Dict[str, BreakdownStats]) -> Dict:
    return {
        group: {
            "requests": stats.requests,
            "tokens": stats.tokens,
            "cost": float(stats.cost),
            "avgLatencyMs": stats.avg_latency_ms,
        }
        for group, stats in groups.items()
    }


def records_to_list(records: List[EventRecord]) -> List[Dict]:
    return [record_to_dict(record) for record in records]
