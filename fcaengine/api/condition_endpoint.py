"""
POST /v1/condition/normalize
POST /v1/condition/building
POST /v1/condition/portfolio

Condition Index endpoints. The caller sends the assessment observations;
the computed CI is returned and a snapshot event is published to Kafka
(if enabled) for historical tracking.
"""
from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException

from fcaengine.schemas.condition import (
    BuildingConditionRequest,
    BuildingConditionResponse,
    NormalizeRequest,
    NormalizeResponse,
    PortfolioConditionRequest,
    PortfolioConditionResponse,
)
from fcaengine.scoring import engine
from fcaengine.services.event_publisher import publish_condition_snapshot

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/condition", tags=["condition"])


@router.post(
    "/normalize",
    response_model=NormalizeResponse,
    summary="Map condition labels to 0-100 Condition Index values",
)
async def normalize(request: NormalizeRequest) -> NormalizeResponse:
    return engine.normalize_labels(request)


@router.post(
    "/building",
    response_model=BuildingConditionResponse,
    summary="Building and system CI, weighted by repair cost",
)
async def building_condition(request: BuildingConditionRequest) -> BuildingConditionResponse:
    logger.info(
        "building_condition_started",
        building_id=request.building.building_id,
        observation_count=len(request.building.components),
    )

    try:
        response = engine.evaluate_building_condition(request)
    except Exception as e:
        logger.error("building_condition_failed", building_id=request.building.building_id, error=str(e))
        raise HTTPException(status_code=500, detail=f"Condition engine error: {e}")

    await publish_condition_snapshot(
        "building", response.building, response.building.calculation_method.value,
    )
    return response


@router.post(
    "/portfolio",
    response_model=PortfolioConditionResponse,
    summary="Portfolio CI across buildings",
    description="Equivalent to averaging every component of every building at once.",
)
async def portfolio_condition(request: PortfolioConditionRequest) -> PortfolioConditionResponse:
    logger.info(
        "portfolio_condition_started",
        portfolio_id=request.portfolio_id,
        building_count=len(request.buildings),
    )

    try:
        response = engine.evaluate_portfolio_condition(request)
    except Exception as e:
        logger.error("portfolio_condition_failed", portfolio_id=request.portfolio_id, error=str(e))
        raise HTTPException(status_code=500, detail=f"Condition engine error: {e}")

    await publish_condition_snapshot("portfolio", response.portfolio)
    return response
