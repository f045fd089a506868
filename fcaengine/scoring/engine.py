"""
FCA Scoring Engine

Orchestrates the pure scoring modules for the API layer:
  1. Condition normalization          (condition.py)
  2. Component → building → portfolio CI aggregation (aggregation.py)
  3. Deterioration prediction + optional narrative insights (deterioration.py)
  4. Curve-based deterioration scenarios (curves.py)
  5. Composite priority scoring and project ranking (priority.py)

Inputs arrive fully populated in the request; nothing here touches storage.
"""
from __future__ import annotations

import time

import structlog
from prometheus_client import Counter

from fcaengine.schemas.condition import (
    BuildingComponents,
    BuildingConditionRequest,
    BuildingConditionResponse,
    CalculationResult,
    NormalizedCondition,
    NormalizeRequest,
    NormalizeResponse,
    PortfolioConditionRequest,
    PortfolioConditionResponse,
)
from fcaengine.schemas.prediction import (
    CurveRequest,
    CurveResponse,
    PatternAnalysis,
    PatternAnalysisRequest,
    PredictionRequest,
    PredictionResponse,
)
from fcaengine.schemas.priority import (
    CompositeScore,
    CompositeScoreRequest,
    RankingRequest,
    RankingResponse,
    ScenarioRequest,
    ScenarioResult,
)
from fcaengine.scoring import aggregation, curves, deterioration, priority
from fcaengine.scoring.condition import latest_by_component, normalize_condition, rating_for_ci
from fcaengine.services.insight_generator import (
    InsightContext,
    InsightGenerator,
    fallback_insights,
)

logger = structlog.get_logger()

PREDICTIONS = Counter(
    "fca_predictions_total",
    "Deterioration predictions served, by risk level",
    ["risk_level"],
)
INSIGHT_FALLBACKS = Counter(
    "fca_insight_fallbacks_total",
    "Predictions whose narrative insights fell back to fixed sentences",
)


def _elapsed_ms(t0: int) -> int:
    return int((time.perf_counter_ns() - t0) / 1_000_000)


# ═══════════════════════════════════════════════════════════════
# Condition Index
# ═══════════════════════════════════════════════════════════════

def normalize_labels(request: NormalizeRequest) -> NormalizeResponse:
    results = []
    for label in request.labels:
        ci = normalize_condition(label)
        results.append(NormalizedCondition(label=label, ci=ci, rating=rating_for_ci(ci)))
    return NormalizeResponse(results=results)


def _building_result(building: BuildingComponents, latest_only: bool) -> tuple[CalculationResult, list]:
    components = latest_by_component(building.components) if latest_only else building.components
    return aggregation.aggregate_building_ci(components, scope_id=building.building_id), components


def evaluate_building_condition(request: BuildingConditionRequest) -> BuildingConditionResponse:
    t0 = time.perf_counter_ns()

    result, components = _building_result(request.building, request.latest_only)
    systems = aggregation.aggregate_systems(components)

    logger.info(
        "building_condition_complete",
        building_id=request.building.building_id,
        ci=result.ci,
        rating=result.rating.value,
        component_count=result.component_count,
        calculation_method=result.calculation_method.value,
        elapsed_ms=_elapsed_ms(t0),
    )

    return BuildingConditionResponse(
        building_id=request.building.building_id,
        building=result,
        systems=systems,
    )


def evaluate_portfolio_condition(request: PortfolioConditionRequest) -> PortfolioConditionResponse:
    t0 = time.perf_counter_ns()

    buildings = [_building_result(b, request.latest_only)[0] for b in request.buildings]
    portfolio = aggregation.aggregate_portfolio(buildings, scope_id=request.portfolio_id)

    logger.info(
        "portfolio_condition_complete",
        portfolio_id=request.portfolio_id,
        ci=portfolio.ci,
        building_count=len(buildings),
        component_count=portfolio.component_count,
        elapsed_ms=_elapsed_ms(t0),
    )

    return PortfolioConditionResponse(
        portfolio_id=request.portfolio_id,
        portfolio=portfolio,
        rating=rating_for_ci(portfolio.ci),
        buildings=buildings,
    )


# ═══════════════════════════════════════════════════════════════
# Deterioration
# ═══════════════════════════════════════════════════════════════

async def evaluate_deterioration(
    request: PredictionRequest,
    generator: InsightGenerator,
    failure_threshold: float = deterioration.FAILURE_THRESHOLD,
) -> PredictionResponse:
    """
    Numeric prediction first; narrative insights are best-effort on top.
    """
    t0 = time.perf_counter_ns()

    prediction = deterioration.predict_deterioration(
        request.component_code,
        request.install_year,
        request.history,
        request.current_year,
        failure_threshold=failure_threshold,
    )
    PREDICTIONS.labels(risk_level=prediction.risk_level.value).inc()

    insights: list[str] = []
    source = "none"
    if request.include_insights:
        context = InsightContext(
            component_code=request.component_code,
            history=request.history,
            deterioration_rate=prediction.deterioration_rate,
            remaining_life=prediction.predicted_remaining_life,
        )
        try:
            if request.history:
                insights = await generator.generate(context)
                source = generator.source
            else:
                # Nothing to analyze: baseline-assessment sentences
                insights = fallback_insights(context)
                source = "fallback"
        except Exception as e:
            # Insights are optional: never let them fail the prediction
            logger.warning(
                "insight_generation_failed",
                component_code=request.component_code,
                error=str(e),
            )
            INSIGHT_FALLBACKS.inc()
            insights = fallback_insights(context)
            source = "fallback"

    logger.info(
        "prediction_complete",
        component_code=request.component_code,
        risk_level=prediction.risk_level.value,
        remaining_life=prediction.predicted_remaining_life,
        confidence=prediction.confidence_score,
        insight_source=source,
        elapsed_ms=_elapsed_ms(t0),
    )

    return PredictionResponse(
        **prediction.model_dump(),
        insights=insights,
        insight_source=source,
    )


def evaluate_component_patterns(request: PatternAnalysisRequest) -> PatternAnalysis:
    analysis = deterioration.analyze_component_patterns(request.components)
    logger.info(
        "pattern_analysis_complete",
        component_count=len(request.components),
        accelerated=len(analysis.accelerated_deterioration_components),
        stable=len(analysis.stable_components),
    )
    return analysis


def evaluate_curve(
    request: CurveRequest,
    failure_threshold: float = deterioration.FAILURE_THRESHOLD,
) -> CurveResponse:
    params = request.parameters or curves.curve_for(request.component_code, request.scenario)
    years_since_install = max(0, request.current_year - request.install_year)

    failure_year = curves.predict_failure_year_from_curve(
        params, request.install_year, failure_threshold, request.method,
    )

    return CurveResponse(
        component_code=request.component_code,
        scenario=request.scenario,
        method=request.method,
        current_condition=curves.interpolate_condition(params, years_since_install, request.method),
        predicted_failure_year=failure_year,
        predicted_remaining_life=max(0, failure_year - request.current_year),
        data_points=curves.generate_curve_data(
            params, request.install_year, request.years_to_project, request.method,
        ),
    )


# ═══════════════════════════════════════════════════════════════
# Prioritization
# ═══════════════════════════════════════════════════════════════

def evaluate_composite(request: CompositeScoreRequest) -> CompositeScore:
    joined = priority.join_criteria_scores(request.criteria, request.scores, request.project_id)
    result = priority.compute_composite_score(joined, project_id=request.project_id)

    logger.info(
        "composite_score_complete",
        project_id=request.project_id,
        composite_score=result.composite_score,
        scored_criteria=len(result.criteria_scores),
        active_criteria=len(joined),
    )
    return result


def evaluate_priorities(request: RankingRequest) -> RankingResponse:
    t0 = time.perf_counter_ns()

    weights = priority.validate_criteria_weights(request.criteria)
    ranked = priority.rank_projects(request.projects, request.criteria, request.scores)

    if request.min_score is not None:
        ranked = [p for p in ranked if p.composite_score >= request.min_score]
    if request.max_score is not None:
        ranked = [p for p in ranked if p.composite_score <= request.max_score]
    if request.limit is not None:
        ranked = ranked[: request.limit]

    logger.info(
        "priority_ranking_complete",
        project_count=len(request.projects),
        ranked_count=len(ranked),
        weights_balanced=weights.is_balanced,
        elapsed_ms=_elapsed_ms(t0),
    )
    return RankingResponse(projects=ranked, weights=weights)


def evaluate_scenarios(request: ScenarioRequest) -> list[ScenarioResult]:
    joined = priority.join_criteria_scores(request.criteria, request.scores, request.project_id)
    return priority.compare_weighting_scenarios(joined, request.scenarios)
