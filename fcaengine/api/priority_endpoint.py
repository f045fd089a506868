"""
POST /v1/priority/composite
POST /v1/priority/rank
POST /v1/priority/scenarios
POST /v1/priority/weights/validate

Multi-criteria capital prioritization. Criteria and their scores are
fetched by the caller; composites and ranks are recomputed every time.
"""
from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException

from fcaengine.schemas.priority import (
    CompositeScore,
    CompositeScoreRequest,
    RankingRequest,
    RankingResponse,
    ScenarioRequest,
    ScenarioResult,
    WeightValidation,
    WeightValidationRequest,
)
from fcaengine.scoring import engine, priority

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/priority", tags=["priority"])


@router.post(
    "/composite",
    response_model=CompositeScore,
    summary="Composite priority score for one project",
    description="Σ(weight × score) / 100 over the active criteria the project has been scored on.",
)
async def composite(request: CompositeScoreRequest) -> CompositeScore:
    try:
        return engine.evaluate_composite(request)
    except ValueError as e:
        logger.error("composite_score_failed", project_id=request.project_id, error=str(e))
        raise HTTPException(status_code=500, detail=f"Priority engine error: {e}")


@router.post(
    "/rank",
    response_model=RankingResponse,
    summary="Rank projects by composite priority score",
)
async def rank(request: RankingRequest) -> RankingResponse:
    try:
        return engine.evaluate_priorities(request)
    except ValueError as e:
        logger.error("priority_ranking_failed", project_count=len(request.projects), error=str(e))
        raise HTTPException(status_code=500, detail=f"Priority engine error: {e}")


@router.post(
    "/scenarios",
    response_model=list[ScenarioResult],
    summary="Compare a project's composite under alternative weightings",
)
async def scenarios(request: ScenarioRequest) -> list[ScenarioResult]:
    return engine.evaluate_scenarios(request)


@router.post(
    "/weights/validate",
    response_model=WeightValidation,
    summary="Check that active criteria weights sum to 100",
)
async def validate_weights(request: WeightValidationRequest) -> WeightValidation:
    return priority.validate_criteria_weights(request.criteria)
