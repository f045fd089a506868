"""
Deterioration Trend & Risk Predictor

Stateless: a pure function of one component's historical (age, condition)
series plus an explicit current year. Every branch has a numeric default,
so empty or sparse history never raises.

Pipeline:
  1. Deterioration rate   — mean of pairwise slopes, clamped to [0.5, 10] %/yr
  2. Current condition    — trust data ≤ 2 years old, otherwise extrapolate
  3. Failure year         — linear run-down to the failure threshold (20%)
  4. Remaining life
  5. Confidence           — data volume (40) + data span (30) + recency (30)
  6. Risk level           — first match of critical → high → medium → low
"""
from __future__ import annotations

import math
from datetime import date
from typing import Iterable, Optional, Sequence

from fcaengine.schemas.prediction import (
    ComponentHistory,
    HistoricalDataPoint,
    MLPrediction,
    PatternAnalysis,
    RiskLevel,
)

DEFAULT_DETERIORATION_RATE = 2.0   # %/year when the history can't support a trend
MIN_DETERIORATION_RATE = 0.5
MAX_DETERIORATION_RATE = 10.0

DEFAULT_CONDITION_ESTIMATE = 70.0  # no history at all
RECENT_DATA_YEARS = 2              # observations this close to today are used as-is
FAILURE_THRESHOLD = 20.0           # condition % below which a component has failed

NO_DATA_CONFIDENCE = 20

# Pattern analysis bands
ACCELERATED_RATE = 4.0
STABLE_RATE = 1.5


def round_half_up(value: float) -> int:
    """Round .5 toward +infinity; Python's round() is banker's rounding."""
    return int(math.floor(value + 0.5))


# ═══════════════════════════════════════════════════════════════
# 1. DETERIORATION RATE
# ═══════════════════════════════════════════════════════════════
def calculate_deterioration_rate(series: Sequence[HistoricalDataPoint]) -> float:
    if len(series) < 2:
        return DEFAULT_DETERIORATION_RATE

    ordered = sorted(series, key=lambda p: p.age)

    rates: list[float] = []
    for earlier, later in zip(ordered, ordered[1:]):
        time_change = later.age - earlier.age
        if time_change > 0:
            rates.append((earlier.condition - later.condition) / time_change)

    if not rates:
        return DEFAULT_DETERIORATION_RATE

    avg_rate = sum(rates) / len(rates)
    return max(MIN_DETERIORATION_RATE, min(MAX_DETERIORATION_RATE, avg_rate))


def most_recent_point(series: Iterable[HistoricalDataPoint]) -> Optional[HistoricalDataPoint]:
    """Largest age wins; equal ages go to the later assessment date, then input order."""
    return max(
        series,
        key=lambda p: (p.age, p.assessment_date or date.min),
        default=None,
    )


# ═══════════════════════════════════════════════════════════════
# 2. CURRENT CONDITION
# ═══════════════════════════════════════════════════════════════
def estimate_current_condition(
    series: Sequence[HistoricalDataPoint],
    current_age: float,
    rate: Optional[float] = None,
) -> float:
    recent = most_recent_point(series)
    if recent is None:
        return DEFAULT_CONDITION_ESTIMATE

    years_elapsed = current_age - recent.age
    if years_elapsed <= RECENT_DATA_YEARS:
        return recent.condition

    if rate is None:
        rate = calculate_deterioration_rate(series)
    estimated = recent.condition - rate * years_elapsed
    return float(max(0, min(100, round_half_up(estimated))))


# ═══════════════════════════════════════════════════════════════
# 3-4. FAILURE YEAR / REMAINING LIFE
# ═══════════════════════════════════════════════════════════════
def predict_failure_year(
    current_condition: float,
    rate: float,
    current_year: int,
    failure_threshold: float = FAILURE_THRESHOLD,
) -> int:
    years_to_failure = max(0.0, (current_condition - failure_threshold) / rate)
    return current_year + round_half_up(years_to_failure)


# ═══════════════════════════════════════════════════════════════
# 5. CONFIDENCE
# ═══════════════════════════════════════════════════════════════
def calculate_confidence(series: Sequence[HistoricalDataPoint]) -> int:
    if not series:
        return NO_DATA_CONFIDENCE

    ages = [p.age for p in series]

    data_point_score = min(40.0, len(series) / 5 * 40)
    span_score = min(30.0, (max(ages) - min(ages)) / 10 * 30)
    recency_score = max(0.0, 30 - max(ages) * 2)

    return round_half_up(min(100.0, data_point_score + span_score + recency_score))


# ═══════════════════════════════════════════════════════════════
# 6. RISK LEVEL
# ═══════════════════════════════════════════════════════════════
def determine_risk_level(remaining_life: float, current_condition: float) -> RiskLevel:
    if remaining_life <= 1 or current_condition <= 20:
        return RiskLevel.CRITICAL
    if remaining_life <= 3 or current_condition <= 40:
        return RiskLevel.HIGH
    if remaining_life <= 5 or current_condition <= 60:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


# ═══════════════════════════════════════════════════════════════
# Entry points
# ═══════════════════════════════════════════════════════════════
def predict_deterioration(
    component_code: str,
    install_year: int,
    series: Sequence[HistoricalDataPoint],
    current_year: int,
    failure_threshold: float = FAILURE_THRESHOLD,
) -> MLPrediction:
    rate = calculate_deterioration_rate(series)
    current_condition = estimate_current_condition(series, current_year - install_year, rate)

    failure_year = predict_failure_year(current_condition, rate, current_year, failure_threshold)
    remaining_life = max(0, failure_year - current_year)

    return MLPrediction(
        component_code=component_code,
        predicted_failure_year=failure_year,
        predicted_remaining_life=remaining_life,
        current_condition_estimate=current_condition,
        confidence_score=calculate_confidence(series),
        deterioration_rate=rate,
        risk_level=determine_risk_level(remaining_life, current_condition),
    )


def analyze_component_patterns(components: Sequence[ComponentHistory]) -> PatternAnalysis:
    """
    Portfolio view of deterioration: which components are wearing out
    unusually fast (> 4 %/yr) and which are holding steady (< 1.5 %/yr).
    """
    rates: list[float] = []
    accelerated: list[str] = []
    stable: list[str] = []

    for component in components:
        rate = calculate_deterioration_rate(component.history)
        rates.append(rate)

        if rate > ACCELERATED_RATE:
            accelerated.append(component.component_code)
        elif rate < STABLE_RATE:
            stable.append(component.component_code)

    avg_rate = sum(rates) / len(rates) if rates else DEFAULT_DETERIORATION_RATE

    insights = [
        f"Average deterioration rate across {len(components)} components: {avg_rate:.2f}% per year",
        f"{len(accelerated)} components showing accelerated deterioration" if accelerated
        else "No components showing accelerated deterioration",
        f"{len(stable)} components in stable condition" if stable
        else "No components in stable condition",
    ]

    return PatternAnalysis(
        accelerated_deterioration_components=accelerated,
        stable_components=stable,
        average_deterioration_rate=avg_rate,
        insights=insights,
    )
