"""
Multi-criteria prioritization payloads.

Criterion and CriteriaScore are the durable records owned by storage;
CompositeScore and RankedProject are always recomputed from them.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ── Durable records (as fetched by the caller) ──

class Criterion(BaseModel):
    """Administrator-defined evaluation axis. Deactivated, never deleted."""
    id: int
    name: str
    weight: float = Field(ge=0, le=100, description="Administrative weight, 0-100 scale")
    is_active: bool = True
    display_order: int = 0


class CriteriaScore(BaseModel):
    project_id: int
    criteria_id: int
    score: float = Field(ge=0, le=10)
    scored_by: Optional[int] = None
    scored_at: Optional[datetime] = None
    justification: Optional[str] = None


class ProjectRecord(BaseModel):
    project_id: int
    project_name: str
    total_cost: Optional[float] = Field(None, ge=0, description="Deferred maintenance cost")


# ── Scorer input ──

class ScoredCriterion(BaseModel):
    """One criterion joined with the project's score for it (if any)."""
    criteria_id: Optional[int] = None
    criteria_name: Optional[str] = None
    weight: float
    score: Optional[float] = None
    is_active: bool = True
    justification: Optional[str] = None


class WeightingScenario(BaseModel):
    name: str
    weights: dict[str, float] = Field(description="criteria_name → weight")


class CompositeScoreRequest(BaseModel):
    """POST /v1/priority/composite"""
    project_id: int
    criteria: list[Criterion]
    scores: list[CriteriaScore] = []


class RankingRequest(BaseModel):
    """POST /v1/priority/rank"""
    criteria: list[Criterion]
    projects: list[ProjectRecord]
    scores: list[CriteriaScore] = []
    min_score: Optional[float] = None
    max_score: Optional[float] = None
    limit: Optional[int] = Field(None, gt=0)


class ScenarioRequest(BaseModel):
    """POST /v1/priority/scenarios"""
    project_id: int
    criteria: list[Criterion]
    scores: list[CriteriaScore] = []
    scenarios: list[WeightingScenario]


class WeightValidationRequest(BaseModel):
    """POST /v1/priority/weights/validate"""
    criteria: list[Criterion]


# ── Outbound ──

class CriterionContribution(BaseModel):
    criteria_id: Optional[int] = None
    criteria_name: Optional[str] = None
    weight: float
    score: float
    weighted_score: float
    justification: Optional[str] = None


class CompositeScore(BaseModel):
    project_id: Optional[int] = None
    composite_score: float
    criteria_scores: list[CriterionContribution] = []
    total_weight: float = 0.0


class RankedProject(BaseModel):
    project_id: int
    project_name: str
    composite_score: float
    rank: int
    scored_criteria: int
    total_cost: Optional[float] = None
    cost_effectiveness_score: Optional[float] = Field(
        None,
        description="Composite score per 1,000 of deferred maintenance cost",
    )


class ScenarioResult(BaseModel):
    scenario_name: str
    composite_score: float
    criteria_scores: list[CriterionContribution]


class WeightValidation(BaseModel):
    total_weight: float
    active_count: int
    is_balanced: bool = Field(description="Active weights sum to 100")
    normalized_weights: dict[int, float] = Field(
        default_factory=dict,
        description="criteria_id → weight rescaled to sum to 100",
    )


class RankingResponse(BaseModel):
    projects: list[RankedProject]
    weights: WeightValidation
