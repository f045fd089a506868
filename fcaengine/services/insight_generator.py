"""
Narrative insights for deterioration predictions.

Strategy interface injected into the prediction service. The numeric
prediction never depends on it: the engine catches any generator failure
and falls back to fixed sentences built from the numbers.

Implementations:
  FallbackInsightGenerator: deterministic, no I/O (default)
  LLMInsightGenerator: OpenAI-compatible chat completions via httpx
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

import httpx
import structlog

from fcaengine.core.config import Settings
from fcaengine.schemas.prediction import HistoricalDataPoint

logger = structlog.get_logger()

SYSTEM_PROMPT = (
    "You are a building condition assessment expert. "
    "Provide insights in JSON array format."
)

INSIGHTS_SCHEMA = {
    "name": "insights",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "insights": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Array of actionable insights",
            },
        },
        "required": ["insights"],
        "additionalProperties": False,
    },
}


class InsightGenerationError(Exception):
    """The text-generation collaborator returned nothing usable."""


@dataclass(frozen=True)
class InsightContext:
    component_code: str
    history: Sequence[HistoricalDataPoint]
    deterioration_rate: float
    remaining_life: int


class InsightGenerator(Protocol):
    source: str

    async def generate(self, context: InsightContext) -> list[str]:
        ...


def fallback_insights(context: InsightContext) -> list[str]:
    if not context.history:
        return [
            "No historical data available for analysis",
            "Consider scheduling an initial assessment to establish baseline",
        ]

    return [
        f"Component deteriorating at {context.deterioration_rate:.1f}% per year",
        f"Estimated {context.remaining_life} years of remaining service life",
        "Consider planning replacement or major rehabilitation soon"
        if context.remaining_life <= 5
        else "Monitor condition annually to track deterioration trend",
    ]


class FallbackInsightGenerator:
    source = "fallback"

    async def generate(self, context: InsightContext) -> list[str]:
        return fallback_insights(context)


class LLMInsightGenerator:
    source = "generator"

    def __init__(
        self,
        api_url: str,
        api_key: str,
        model: str,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMInsightGenerator":
        return cls(
            api_url=settings.insights_api_url,
            api_key=settings.insights_api_key,
            model=settings.insights_model,
            timeout_seconds=settings.insights_timeout_seconds,
        )

    async def generate(self, context: InsightContext) -> list[str]:
        if not context.history:
            return fallback_insights(context)

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(context)},
            ],
            "response_format": {"type": "json_schema", "json_schema": INSIGHTS_SCHEMA},
        }

        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            resp = await client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            resp.raise_for_status()
            body = resp.json()

        try:
            content = body["choices"][0]["message"]["content"]
            parsed = json.loads(content)
        except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
            raise InsightGenerationError(f"Malformed completion: {e}") from e

        if not isinstance(parsed, dict) or not isinstance(parsed.get("insights"), list):
            raise InsightGenerationError("Completion is not an {\"insights\": [...]} object")

        insights = [str(i) for i in parsed["insights"] if str(i).strip()]
        if not insights:
            raise InsightGenerationError("Completion contained no insights")

        logger.info("insights_generated", component_code=context.component_code, count=len(insights))
        return insights


def build_prompt(context: InsightContext) -> str:
    data_summary = "\n".join(
        f"Age {p.age:g} years: {p.condition:g}% condition"
        + (f" - {p.observations[:100]}" if p.observations else "")
        for p in context.history
    )

    return (
        "You are a building condition assessment expert analyzing deterioration patterns.\n\n"
        f"Component: {context.component_code}\n"
        f"Historical Assessment Data:\n{data_summary}\n\n"
        f"Current Deterioration Rate: {context.deterioration_rate:.2f}% per year\n"
        f"Predicted Remaining Life: {context.remaining_life} years\n\n"
        "Provide 3-5 concise, actionable insights about this component's condition trend "
        "and maintenance recommendations. Focus on:\n"
        "1. Deterioration pattern analysis\n"
        "2. Risk factors\n"
        "3. Maintenance timing recommendations\n"
        "4. Cost-saving opportunities\n\n"
        "Format as a JSON array of strings, each insight being one sentence."
    )


def get_insight_generator(settings: Settings) -> InsightGenerator:
    if settings.insights_enabled and settings.insights_api_key:
        return LLMInsightGenerator.from_settings(settings)
    return FallbackInsightGenerator()
