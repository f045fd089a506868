"""
Condition Index payloads.

Assessment observations arrive fully populated from the assessment-entry
service; the engine never fetches them itself. Everything derived here
(ComponentCI, ScopeCI, CalculationResult) is a projection recomputed per
request and never stored as the authoritative value.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ConditionRating(str, Enum):
    """Display band for a 0-100 Condition Index."""
    EXCELLENT = "Excellent"   # [90, 100]
    GOOD = "Good"             # [75, 90)
    FAIR = "Fair"             # [50, 75)
    POOR = "Poor"             # [25, 50)
    CRITICAL = "Critical"     # [0, 25)


class CalculationMethod(str, Enum):
    WEIGHTED_AVG_BY_REPLACEMENT_COST = "weighted_avg_by_replacement_cost"
    DEFAULT = "default"


# ── Inbound ──

class AssessmentObservation(BaseModel):
    """One recorded assessment of one component."""
    id: Optional[int] = Field(None, description="Storage id, used as tie-break between same-day assessments")
    project_id: Optional[int] = None
    component_code: str = Field(description="UNIFORMAT II element code, e.g. B3010")
    condition_percentage: Optional[str] = Field(
        None,
        description='Percentage range label as entered, e.g. "75-50%"',
    )
    age: float = Field(0.0, ge=0, description="Years since installation")
    assessed_at: date
    observations: Optional[str] = None
    estimated_repair_cost: Optional[Decimal] = Field(None, description="Weight for CI aggregation")
    system_code: Optional[str] = Field(
        None,
        description="System grouping; defaults to the first three characters of component_code",
    )

    @property
    def system(self) -> str:
        return self.system_code or self.component_code[:3]


class BuildingComponents(BaseModel):
    building_id: str
    building_name: Optional[str] = None
    components: list[AssessmentObservation] = []


class NormalizeRequest(BaseModel):
    labels: list[Optional[str]]


class BuildingConditionRequest(BaseModel):
    """POST /v1/condition/building"""
    building: BuildingComponents
    latest_only: bool = Field(
        True,
        description="Reduce to the most recent observation per component before aggregating",
    )


class PortfolioConditionRequest(BaseModel):
    """POST /v1/condition/portfolio"""
    portfolio_id: str
    buildings: list[BuildingComponents]
    latest_only: bool = True


# ── Derived ──

class ComponentCI(BaseModel):
    component_code: str
    system_code: str
    ci: int = Field(ge=0, le=100)
    weight: Decimal = Field(ge=0)
    assessment_date: Optional[date] = None


class ScopeCI(BaseModel):
    """System-, building- or portfolio-level Condition Index."""
    scope_id: Optional[str] = None
    ci: float = Field(ge=0, le=100)
    component_count: int = Field(0, ge=0)
    total_weight: Decimal = Field(Decimal("0"), ge=0)
    weighted_ci_sum: Optional[Decimal] = Field(
        None,
        description="Unrounded Σ(ci × weight); lets higher levels re-aggregate exactly",
    )


class CalculationResult(ScopeCI):
    """Building-level CI with its audit breakdown."""
    calculation_method: CalculationMethod
    rating: ConditionRating
    components: list[ComponentCI] = []


# ── Outbound ──

class NormalizedCondition(BaseModel):
    label: Optional[str] = None
    ci: int
    rating: ConditionRating


class NormalizeResponse(BaseModel):
    results: list[NormalizedCondition]


class BuildingConditionResponse(BaseModel):
    building_id: str
    building: CalculationResult
    systems: list[ScopeCI]


class PortfolioConditionResponse(BaseModel):
    portfolio_id: str
    portfolio: ScopeCI
    rating: ConditionRating
    buildings: list[CalculationResult]
