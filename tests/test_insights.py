"""
Tests for narrative insight generation and its fallback path.
"""
import asyncio
import json

import httpx
import pytest

from fcaengine.core.config import Settings
from fcaengine.schemas.prediction import HistoricalDataPoint, PredictionRequest
from fcaengine.scoring.engine import evaluate_deterioration
from fcaengine.services.insight_generator import (
    FallbackInsightGenerator,
    InsightContext,
    InsightGenerationError,
    LLMInsightGenerator,
    fallback_insights,
    get_insight_generator,
)

HISTORY = [
    HistoricalDataPoint(age=0, condition=100),
    HistoricalDataPoint(age=5, condition=75, observations="Minor ponding near drains"),
]


def _context(history=HISTORY, rate=5.0, remaining_life=11) -> InsightContext:
    return InsightContext(
        component_code="B3010",
        history=history,
        deterioration_rate=rate,
        remaining_life=remaining_life,
    )


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _generator(handler) -> LLMInsightGenerator:
    return LLMInsightGenerator(
        api_url="https://llm.test/v1/chat/completions",
        api_key="sk-test",
        model="test-model",
        transport=httpx.MockTransport(handler),
    )


class _FailingGenerator:
    source = "generator"

    async def generate(self, context):
        raise InsightGenerationError("upstream unavailable")


class TestFallbackInsights:
    def test_with_history(self):
        assert fallback_insights(_context()) == [
            "Component deteriorating at 5.0% per year",
            "Estimated 11 years of remaining service life",
            "Monitor condition annually to track deterioration trend",
        ]

    def test_short_remaining_life(self):
        insights = fallback_insights(_context(remaining_life=4))
        assert insights[2] == "Consider planning replacement or major rehabilitation soon"

    def test_without_history(self):
        assert fallback_insights(_context(history=[])) == [
            "No historical data available for analysis",
            "Consider scheduling an initial assessment to establish baseline",
        ]

    def test_generator_wraps_fallback(self):
        gen = FallbackInsightGenerator()
        assert asyncio.run(gen.generate(_context())) == fallback_insights(_context())
        assert gen.source == "fallback"


class TestLLMInsightGenerator:
    def test_parses_completion(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json=_completion(json.dumps({
                "insights": ["Roof membrane ageing faster than design", "Inspect drains yearly"],
            })))

        insights = asyncio.run(_generator(handler).generate(_context()))

        assert insights == ["Roof membrane ageing faster than design", "Inspect drains yearly"]
        assert seen["auth"] == "Bearer sk-test"
        assert seen["payload"]["model"] == "test-model"
        prompt = seen["payload"]["messages"][1]["content"]
        assert "Component: B3010" in prompt
        assert "Age 5 years: 75% condition - Minor ponding near drains" in prompt
        assert "Predicted Remaining Life: 11 years" in prompt

    def test_malformed_content(self):
        def handler(request):
            return httpx.Response(200, json=_completion("not json"))

        with pytest.raises(InsightGenerationError):
            asyncio.run(_generator(handler).generate(_context()))

    def test_missing_choices(self):
        def handler(request):
            return httpx.Response(200, json={"error": "quota"})

        with pytest.raises(InsightGenerationError):
            asyncio.run(_generator(handler).generate(_context()))

    def test_bare_array_rejected(self):
        def handler(request):
            return httpx.Response(200, json=_completion(json.dumps(["Inspect drains yearly"])))

        with pytest.raises(InsightGenerationError):
            asyncio.run(_generator(handler).generate(_context()))

    def test_string_insights_rejected(self):
        def handler(request):
            return httpx.Response(200, json=_completion(json.dumps({"insights": "Inspect drains"})))

        with pytest.raises(InsightGenerationError):
            asyncio.run(_generator(handler).generate(_context()))

    def test_empty_insights_rejected(self):
        def handler(request):
            return httpx.Response(200, json=_completion(json.dumps({"insights": []})))

        with pytest.raises(InsightGenerationError):
            asyncio.run(_generator(handler).generate(_context()))

    def test_http_error_propagates(self):
        def handler(request):
            return httpx.Response(500, json={"error": "boom"})

        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(_generator(handler).generate(_context()))

    def test_empty_history_skips_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        insights = asyncio.run(_generator(handler).generate(_context(history=[])))

        assert calls == []
        assert insights[0] == "No historical data available for analysis"


class TestGeneratorSelection:
    def test_disabled_by_default(self):
        assert isinstance(get_insight_generator(Settings()), FallbackInsightGenerator)

    def test_enabled_without_key(self):
        settings = Settings(insights_enabled=True, insights_api_key="")
        assert isinstance(get_insight_generator(settings), FallbackInsightGenerator)

    def test_enabled_with_key(self):
        settings = Settings(insights_enabled=True, insights_api_key="sk-live", insights_model="m")
        gen = get_insight_generator(settings)

        assert isinstance(gen, LLMInsightGenerator)
        assert gen.model == "m"


class TestPredictionWithInsights:
    def _request(self, **kwargs) -> PredictionRequest:
        defaults = {
            "component_code": "B3010",
            "install_year": 2015,
            "current_year": 2020,
            "history": HISTORY,
        }
        defaults.update(kwargs)
        return PredictionRequest(**defaults)

    def test_failing_generator_falls_back(self):
        ok = asyncio.run(evaluate_deterioration(self._request(), FallbackInsightGenerator()))
        failed = asyncio.run(evaluate_deterioration(self._request(), _FailingGenerator()))

        assert failed.insight_source == "fallback"
        assert failed.insights == ok.insights
        assert failed.predicted_failure_year == ok.predicted_failure_year == 2031
        assert failed.confidence_score == ok.confidence_score
        assert failed.risk_level == ok.risk_level

    def test_generator_source_reported(self):
        def handler(request):
            return httpx.Response(200, json=_completion(json.dumps({"insights": ["Looks fine"]})))

        p = asyncio.run(evaluate_deterioration(self._request(), _generator(handler)))

        assert p.insights == ["Looks fine"]
        assert p.insight_source == "generator"

    def test_bare_array_falls_back(self):
        def handler(request):
            return httpx.Response(200, json=_completion(json.dumps(["Looks fine"])))

        p = asyncio.run(evaluate_deterioration(self._request(), _generator(handler)))

        assert p.insight_source == "fallback"
        assert p.insights[0] == "Component deteriorating at 5.0% per year"

    def test_empty_history_reported_as_fallback(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=_completion(json.dumps({"insights": ["Looks fine"]})))

        p = asyncio.run(evaluate_deterioration(self._request(history=[]), _generator(handler)))

        assert calls == []
        assert p.insight_source == "fallback"
        assert p.insights[0] == "No historical data available for analysis"

    def test_insights_not_requested(self):
        p = asyncio.run(evaluate_deterioration(self._request(include_insights=False), _FailingGenerator()))

        assert p.insights == []
        assert p.insight_source == "none"
        assert p.predicted_remaining_life == 11
