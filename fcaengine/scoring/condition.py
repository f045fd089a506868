"""
Condition Normalizer

Maps the free-text condition field captured during an assessment
(e.g. "100-75%", "25-0%") onto the 0-100 Condition Index scale.

Upstream data entry is inconsistent, so malformed labels never raise:
they degrade to the Fair midpoint (50).

Convention: HIGHER CI = BETTER physical condition.
"""
from __future__ import annotations

import re
from decimal import Decimal
from typing import Iterable, Optional

from fcaengine.schemas.condition import AssessmentObservation, ComponentCI, ConditionRating

DEFAULT_CONDITION_INDEX = 50

_FIRST_INTEGER = re.compile(r"\d+")

# Lower bound (inclusive) of each band, best first
RATING_BANDS = [
    (90.0, ConditionRating.EXCELLENT),
    (75.0, ConditionRating.GOOD),
    (50.0, ConditionRating.FAIR),
    (25.0, ConditionRating.POOR),
]


def normalize_condition(label: Optional[str]) -> int:
    """
    Upper bound of a percentage-range label, i.e. the first integer in it.
    """
    if not label:
        return DEFAULT_CONDITION_INDEX

    match = _FIRST_INTEGER.search(label)
    if match is None:
        return DEFAULT_CONDITION_INDEX

    return max(0, min(100, int(match.group())))


def rating_for_ci(ci: float) -> ConditionRating:
    for lower_bound, rating in RATING_BANDS:
        if ci >= lower_bound:
            return rating
    return ConditionRating.CRITICAL


def component_weight(estimated_repair_cost: Optional[Decimal]) -> Decimal:
    """
    Aggregation weight for a component. Unpriced components count as 1 so
    they still contribute instead of vanishing from the average.
    """
    if estimated_repair_cost is None:
        return Decimal(1)
    cost = max(Decimal(0), Decimal(estimated_repair_cost))
    return cost if cost > 0 else Decimal(1)


def component_ci(observation: AssessmentObservation) -> ComponentCI:
    return ComponentCI(
        component_code=observation.component_code,
        system_code=observation.system,
        ci=normalize_condition(observation.condition_percentage),
        weight=component_weight(observation.estimated_repair_cost),
        assessment_date=observation.assessed_at,
    )


def latest_by_component(observations: Iterable[AssessmentObservation]) -> list[AssessmentObservation]:
    """
    Most recent observation per component, ordered by component code.

    Recency is assessed_at; same-day ties go to the highest storage id,
    then to the greater age.
    """
    latest: dict[str, AssessmentObservation] = {}
    for obs in observations:
        current = latest.get(obs.component_code)
        if current is None or _recency_key(obs) > _recency_key(current):
            latest[obs.component_code] = obs
    return [latest[code] for code in sorted(latest)]


def _recency_key(obs: AssessmentObservation) -> tuple:
    return (obs.assessed_at, obs.id if obs.id is not None else -1, obs.age)
