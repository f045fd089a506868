"""
POST /v1/deterioration/predict
POST /v1/deterioration/patterns
POST /v1/deterioration/curve

Stateless deterioration modeling: the caller supplies each component's
assessment history and receives a fresh prediction.
"""
from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException

from fcaengine.core.config import Settings, get_settings
from fcaengine.schemas.prediction import (
    CurveRequest,
    CurveResponse,
    PatternAnalysis,
    PatternAnalysisRequest,
    PredictionRequest,
    PredictionResponse,
)
from fcaengine.scoring import engine
from fcaengine.services.insight_generator import InsightGenerator, get_insight_generator

logger = structlog.get_logger()
router = APIRouter(prefix="/v1/deterioration", tags=["deterioration"])


def insight_generator(settings: Settings = Depends(get_settings)) -> InsightGenerator:
    return get_insight_generator(settings)


@router.post(
    "/predict",
    response_model=PredictionResponse,
    summary="Predict failure year, remaining life and risk level for a component",
)
async def predict(
    request: PredictionRequest,
    generator: InsightGenerator = Depends(insight_generator),
    settings: Settings = Depends(get_settings),
) -> PredictionResponse:

    logger.info(
        "prediction_started",
        component_code=request.component_code,
        history_points=len(request.history),
    )

    try:
        return await engine.evaluate_deterioration(
            request, generator, failure_threshold=settings.failure_threshold,
        )
    except Exception as e:
        logger.error("prediction_failed", component_code=request.component_code, error=str(e))
        raise HTTPException(status_code=500, detail=f"Prediction engine error: {e}")


@router.post(
    "/patterns",
    response_model=PatternAnalysis,
    summary="Flag accelerated and stable deterioration across components",
)
async def patterns(request: PatternAnalysisRequest) -> PatternAnalysis:
    return engine.evaluate_component_patterns(request)


@router.post(
    "/curve",
    response_model=CurveResponse,
    summary="Best / design / worst case deterioration curve for a component",
)
async def curve(
    request: CurveRequest,
    settings: Settings = Depends(get_settings),
) -> CurveResponse:
    return engine.evaluate_curve(request, failure_threshold=settings.failure_threshold)
