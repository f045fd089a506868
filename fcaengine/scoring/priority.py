"""
Composite Priority Scorer

    weighted_score  = weight × score        (weight 0-100, score 0-10)
    composite_score = Σ weighted_score / 100

The divisor is fixed at 100, so the composite only stays on the 0-10 scale
while the active weights sum to 100. validate_criteria_weights() reports
drift; dashboards downstream rely on this exact formula.

Only active criteria participate. A criterion the project has not been
scored on is omitted (not counted as zero), so projects with different
scoring completeness are not strictly comparable.
"""
from __future__ import annotations

import math
from datetime import timezone
from typing import Iterable, Optional

import structlog

from fcaengine.schemas.priority import (
    CompositeScore,
    Criterion,
    CriteriaScore,
    CriterionContribution,
    ProjectRecord,
    RankedProject,
    ScenarioResult,
    ScoredCriterion,
    WeightingScenario,
    WeightValidation,
)

logger = structlog.get_logger()

WEIGHT_SCALE = 100.0
MAX_SCORE = 10.0
WEIGHT_SUM_TOLERANCE = 0.01


def compute_composite_score(
    criteria: Iterable[ScoredCriterion],
    project_id: Optional[int] = None,
) -> CompositeScore:
    contributions: list[CriterionContribution] = []
    total_weight = 0.0

    for criterion in criteria:
        if not criterion.is_active:
            continue

        weight = _clamp(criterion.weight, 0.0, WEIGHT_SCALE, "weight")
        total_weight += weight

        if criterion.score is None:
            continue

        score = _clamp(criterion.score, 0.0, MAX_SCORE, "score")
        contributions.append(CriterionContribution(
            criteria_id=criterion.criteria_id,
            criteria_name=criterion.criteria_name,
            weight=weight,
            score=score,
            weighted_score=weight * score,
            justification=criterion.justification,
        ))

    composite = sum(c.weighted_score for c in contributions) / WEIGHT_SCALE

    return CompositeScore(
        project_id=project_id,
        composite_score=composite,
        criteria_scores=contributions,
        total_weight=total_weight,
    )


def join_criteria_scores(
    criteria: Iterable[Criterion],
    scores: Iterable[CriteriaScore],
    project_id: int,
) -> list[ScoredCriterion]:
    """
    Pair each active criterion with the project's live score for it.
    Last write wins: latest scored_at, then later position in the input.
    """
    live: dict[int, CriteriaScore] = {}
    for s in scores:
        if s.project_id != project_id:
            continue
        current = live.get(s.criteria_id)
        if current is None or _scored_at(s) >= _scored_at(current):
            live[s.criteria_id] = s

    active = sorted((c for c in criteria if c.is_active), key=lambda c: (c.display_order, c.id))

    joined: list[ScoredCriterion] = []
    for c in active:
        score = live.get(c.id)
        joined.append(ScoredCriterion(
            criteria_id=c.id,
            criteria_name=c.name,
            weight=c.weight,
            score=score.score if score else None,
            justification=score.justification if score else None,
        ))
    return joined


# ═══════════════════════════════════════════════════════════════
# Weight configuration checks
# ═══════════════════════════════════════════════════════════════

def normalize_criteria_weights(criteria: Iterable[Criterion]) -> dict[int, float]:
    """Active weights rescaled to sum to 100 (unchanged when they sum to 0)."""
    active = [c for c in criteria if c.is_active]
    total = sum(c.weight for c in active)
    if total == 0:
        return {c.id: c.weight for c in active}
    return {c.id: c.weight / total * WEIGHT_SCALE for c in active}


def validate_criteria_weights(criteria: Iterable[Criterion]) -> WeightValidation:
    active = [c for c in criteria if c.is_active]
    total = sum(c.weight for c in active)
    balanced = abs(total - WEIGHT_SCALE) <= WEIGHT_SUM_TOLERANCE

    if not balanced:
        logger.warning(
            "criteria_weights_unbalanced",
            total_weight=total,
            active_count=len(active),
            expected=WEIGHT_SCALE,
        )

    return WeightValidation(
        total_weight=total,
        active_count=len(active),
        is_balanced=balanced,
        normalized_weights=normalize_criteria_weights(active),
    )


# ═══════════════════════════════════════════════════════════════
# Ranking & what-if
# ═══════════════════════════════════════════════════════════════

def rank_projects(
    projects: Iterable[ProjectRecord],
    criteria: Iterable[Criterion],
    scores: Iterable[CriteriaScore],
) -> list[RankedProject]:
    """
    Rank scored projects by composite score, highest first.
    Ties go to the lower project id. Unscored projects are left out.
    """
    criteria = list(criteria)
    scores = list(scores)

    unranked: list[tuple[ProjectRecord, CompositeScore]] = []
    for project in projects:
        joined = join_criteria_scores(criteria, scores, project.project_id)
        composite = compute_composite_score(joined, project_id=project.project_id)
        if not composite.criteria_scores:
            continue
        unranked.append((project, composite))

    unranked.sort(key=lambda pc: (-pc[1].composite_score, pc[0].project_id))

    return [
        RankedProject(
            project_id=project.project_id,
            project_name=project.project_name,
            composite_score=composite.composite_score,
            rank=rank,
            scored_criteria=len(composite.criteria_scores),
            total_cost=project.total_cost,
            cost_effectiveness_score=_cost_effectiveness(composite.composite_score, project.total_cost),
        )
        for rank, (project, composite) in enumerate(unranked, start=1)
    ]


def compare_weighting_scenarios(
    scored: Iterable[ScoredCriterion],
    scenarios: Iterable[WeightingScenario],
) -> list[ScenarioResult]:
    """
    Recompute one project's composite under alternative weight sets,
    matched by criterion name. Unscored criteria contribute 0.
    """
    by_name = {s.criteria_name: s for s in scored if s.criteria_name is not None}

    results: list[ScenarioResult] = []
    for scenario in scenarios:
        contributions: list[CriterionContribution] = []
        for name, raw_weight in scenario.weights.items():
            match = by_name.get(name)
            weight = _clamp(raw_weight, 0.0, WEIGHT_SCALE, "weight")
            score = _clamp(match.score, 0.0, MAX_SCORE, "score") if match and match.score is not None else 0.0
            contributions.append(CriterionContribution(
                criteria_id=match.criteria_id if match else None,
                criteria_name=name,
                weight=weight,
                score=score,
                weighted_score=weight * score,
                justification=match.justification if match else None,
            ))

        results.append(ScenarioResult(
            scenario_name=scenario.name,
            composite_score=sum(c.weighted_score for c in contributions) / WEIGHT_SCALE,
            criteria_scores=contributions,
        ))
    return results


# ── Helpers ──

def _clamp(value: float, low: float, high: float, field: str) -> float:
    if math.isnan(value):
        raise ValueError(f"{field} is not a number")
    return max(low, min(high, value))


def _scored_at(score: CriteriaScore) -> tuple:
    # Unstamped scores sort first; naive timestamps are taken as UTC
    ts = score.scored_at
    if ts is None:
        return (0,)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return (1, ts)


def _cost_effectiveness(composite: float, total_cost: Optional[float]) -> Optional[float]:
    if total_cost is None or total_cost <= 0:
        return None
    return composite / (total_cost / 1000)
