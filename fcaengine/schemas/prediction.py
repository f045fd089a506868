"""
Deterioration prediction payloads.

The caller supplies the full historical series for one component; the
predictor is stateless and regenerates the prediction on every request.
"""
from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class InterpolationMethod(str, Enum):
    LINEAR = "linear"
    POLYNOMIAL = "polynomial"
    EXPONENTIAL = "exponential"


class CurveScenario(str, Enum):
    BEST = "best"
    DESIGN = "design"
    WORST = "worst"


# ── Inbound ──

class HistoricalDataPoint(BaseModel):
    """One past (age, condition) observation of a component."""
    age: float = Field(ge=0, description="Years since installation at assessment time")
    condition: float = Field(ge=0, le=100, description="Condition percentage")
    assessment_date: Optional[date] = None
    observations: Optional[str] = None


class PredictionRequest(BaseModel):
    """POST /v1/deterioration/predict"""
    component_code: str
    install_year: int
    current_year: int
    history: list[HistoricalDataPoint] = []
    include_insights: bool = True


class ComponentHistory(BaseModel):
    component_code: str
    component_type: Optional[str] = None
    history: list[HistoricalDataPoint] = []


class PatternAnalysisRequest(BaseModel):
    """POST /v1/deterioration/patterns"""
    components: list[ComponentHistory]


class CurveParameters(BaseModel):
    """Condition % at years 0..5 after installation."""
    param1: float = Field(100.0, ge=0, le=100)
    param2: float = Field(ge=0, le=100)
    param3: float = Field(ge=0, le=100)
    param4: float = Field(ge=0, le=100)
    param5: float = Field(ge=0, le=100)
    param6: float = Field(ge=0, le=100)

    def points(self) -> list[tuple[int, float]]:
        return list(enumerate(
            (self.param1, self.param2, self.param3, self.param4, self.param5, self.param6)
        ))


class CurveRequest(BaseModel):
    """POST /v1/deterioration/curve"""
    component_code: str
    install_year: int
    current_year: int
    scenario: CurveScenario = CurveScenario.DESIGN
    method: InterpolationMethod = InterpolationMethod.LINEAR
    parameters: Optional[CurveParameters] = Field(
        None,
        description="Custom curve; defaults to the built-in curve for the component's UNIFORMAT group",
    )
    years_to_project: int = Field(30, ge=0, le=100)


# ── Outbound ──

class MLPrediction(BaseModel):
    component_code: str
    predicted_failure_year: int
    predicted_remaining_life: int = Field(ge=0)
    current_condition_estimate: float = Field(ge=0, le=100)
    confidence_score: int = Field(ge=0, le=100)
    deterioration_rate: float = Field(ge=0.5, le=10.0, description="Condition % lost per year")
    risk_level: RiskLevel


class PredictionResponse(MLPrediction):
    insights: list[str] = []
    insight_source: str = Field("none", description="generator | fallback | none")


class PatternAnalysis(BaseModel):
    accelerated_deterioration_components: list[str]
    stable_components: list[str]
    average_deterioration_rate: float
    insights: list[str]


class CurvePoint(BaseModel):
    year: int
    condition: int


class CurveResponse(BaseModel):
    component_code: str
    scenario: CurveScenario
    method: InterpolationMethod
    current_condition: int
    predicted_failure_year: int
    predicted_remaining_life: int
    data_points: list[CurvePoint]
