"""
Hierarchical CI Aggregator

    component → system → building → portfolio

Every level is the same weighted average:

    CI = Σ(ci_i × weight_i) / Σ(weight_i)

where weight is the component's estimated repair cost (1 when unpriced).

Sums are kept as exact Decimals and carried upward unrounded
(weighted_ci_sum), so the portfolio CI is identical to flattening every
component of every building and averaging once. Rounding to 2 dp happens
only when a level reports its own CI.

A scope with zero total weight reports the Fair default (50); nothing in
the hierarchy ever divides by zero.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from itertools import groupby
from typing import Iterable, Optional

from fcaengine.schemas.condition import (
    AssessmentObservation,
    CalculationMethod,
    CalculationResult,
    ComponentCI,
    ScopeCI,
)
from fcaengine.scoring.condition import DEFAULT_CONDITION_INDEX, component_ci, rating_for_ci

_TWO_PLACES = Decimal("0.01")


def aggregate_system_ci(
    components: Iterable[AssessmentObservation],
    scope_id: Optional[str] = None,
) -> ScopeCI:
    component_cis = [component_ci(obs) for obs in components]
    weighted_sum, total_weight = _weighted_totals(component_cis)

    return ScopeCI(
        scope_id=scope_id,
        ci=_ci_from_totals(weighted_sum, total_weight),
        component_count=len(component_cis),
        total_weight=total_weight,
        weighted_ci_sum=weighted_sum,
    )


def aggregate_building_ci(
    components: Iterable[AssessmentObservation],
    scope_id: Optional[str] = None,
) -> CalculationResult:
    """
    Building CI plus the per-component breakdown used for audit/display.
    """
    component_cis = [component_ci(obs) for obs in components]
    weighted_sum, total_weight = _weighted_totals(component_cis)
    ci = _ci_from_totals(weighted_sum, total_weight)

    method = (
        CalculationMethod.WEIGHTED_AVG_BY_REPLACEMENT_COST if component_cis
        else CalculationMethod.DEFAULT
    )

    return CalculationResult(
        scope_id=scope_id,
        ci=ci,
        component_count=len(component_cis),
        total_weight=total_weight,
        weighted_ci_sum=weighted_sum,
        calculation_method=method,
        rating=rating_for_ci(ci),
        components=component_cis,
    )


def aggregate_systems(components: Iterable[AssessmentObservation]) -> list[ScopeCI]:
    """One SystemCI per system code, ordered by code."""
    ordered = sorted(components, key=lambda obs: obs.system)
    return [
        aggregate_system_ci(list(group), scope_id=system)
        for system, group in groupby(ordered, key=lambda obs: obs.system)
    ]


def aggregate_portfolio(
    buildings: Iterable[ScopeCI],
    scope_id: Optional[str] = None,
) -> ScopeCI:
    """
    Portfolio CI, each building weighted by the sum of its component weights.
    """
    weighted_sum = Decimal(0)
    total_weight = Decimal(0)
    component_count = 0

    for building in buildings:
        weighted_sum += _building_weighted_sum(building)
        total_weight += building.total_weight
        component_count += building.component_count

    return ScopeCI(
        scope_id=scope_id,
        ci=_ci_from_totals(weighted_sum, total_weight),
        component_count=component_count,
        total_weight=total_weight,
        weighted_ci_sum=weighted_sum,
    )


def aggregate_portfolio_ci(buildings: Iterable[ScopeCI]) -> float:
    return aggregate_portfolio(buildings).ci


# ═══════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════

def _weighted_totals(component_cis: list[ComponentCI]) -> tuple[Decimal, Decimal]:
    weighted_sum = Decimal(0)
    total_weight = Decimal(0)
    for c in component_cis:
        weighted_sum += Decimal(c.ci) * c.weight
        total_weight += c.weight
    return weighted_sum, total_weight


def _building_weighted_sum(building: ScopeCI) -> Decimal:
    if building.weighted_ci_sum is not None:
        return building.weighted_ci_sum
    # Hand-built scope without a carried sum: rebuild it from the rounded CI
    return Decimal(str(building.ci)) * building.total_weight


def _ci_from_totals(weighted_sum: Decimal, total_weight: Decimal) -> float:
    if total_weight <= 0:
        return float(DEFAULT_CONDITION_INDEX)
    ci = (weighted_sum / total_weight).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    return float(max(Decimal(0), min(Decimal(100), ci)))
