"""
Deterioration Curves (Best / Design / Worst case)

Each curve is six condition points for years 0..5 after installation.
Conditions between points are interpolated; beyond year 5 the last
segment is extrapolated. Curves are keyed by UNIFORMAT group (first three
characters of the component code), with a generic default.
"""
from __future__ import annotations

import math

from fcaengine.schemas.prediction import (
    CurveParameters,
    CurvePoint,
    CurveScenario,
    InterpolationMethod,
)
from fcaengine.scoring.deterioration import FAILURE_THRESHOLD, round_half_up

MAX_YEARS_TO_CHECK = 50


def _curve(*points: float) -> CurveParameters:
    return CurveParameters(**{f"param{i}": p for i, p in enumerate(points, start=1)})


DEFAULT_CURVES: dict[str, dict[CurveScenario, CurveParameters]] = {
    # Roofing
    "B30": {
        CurveScenario.BEST: _curve(100, 95, 90, 85, 80, 75),
        CurveScenario.DESIGN: _curve(100, 90, 80, 70, 60, 50),
        CurveScenario.WORST: _curve(100, 85, 70, 55, 40, 25),
    },
    # Exterior enclosure
    "B20": {
        CurveScenario.BEST: _curve(100, 98, 96, 94, 92, 90),
        CurveScenario.DESIGN: _curve(100, 95, 90, 85, 80, 75),
        CurveScenario.WORST: _curve(100, 92, 84, 76, 68, 60),
    },
    # HVAC
    "D30": {
        CurveScenario.BEST: _curve(100, 93, 86, 79, 72, 65),
        CurveScenario.DESIGN: _curve(100, 88, 76, 64, 52, 40),
        CurveScenario.WORST: _curve(100, 83, 66, 49, 32, 15),
    },
    # Plumbing
    "D20": {
        CurveScenario.BEST: _curve(100, 96, 92, 88, 84, 80),
        CurveScenario.DESIGN: _curve(100, 92, 84, 76, 68, 60),
        CurveScenario.WORST: _curve(100, 88, 76, 64, 52, 40),
    },
    # Electrical
    "D50": {
        CurveScenario.BEST: _curve(100, 94, 88, 82, 76, 70),
        CurveScenario.DESIGN: _curve(100, 90, 80, 70, 60, 50),
        CurveScenario.WORST: _curve(100, 86, 72, 58, 44, 30),
    },
    "default": {
        CurveScenario.BEST: _curve(100, 95, 90, 85, 80, 75),
        CurveScenario.DESIGN: _curve(100, 90, 80, 70, 60, 50),
        CurveScenario.WORST: _curve(100, 85, 70, 55, 40, 25),
    },
}


def curve_for(component_code: str, scenario: CurveScenario = CurveScenario.DESIGN) -> CurveParameters:
    curves = DEFAULT_CURVES.get(component_code[:3], DEFAULT_CURVES["default"])
    return curves[scenario]


def interpolate_condition(
    params: CurveParameters,
    years_since_install: float,
    method: InterpolationMethod = InterpolationMethod.LINEAR,
) -> int:
    points = params.points()

    for year, condition in points:
        if year == years_since_install:
            return round_half_up(condition)

    before, after = points[0], points[-1]
    for left, right in zip(points, points[1:]):
        if left[0] <= years_since_install < right[0]:
            before, after = left, right
            break

    if years_since_install > points[-1][0]:
        before, after = points[-2], points[-1]

    if method == InterpolationMethod.POLYNOMIAL:
        return _polynomial(points, years_since_install)
    if method == InterpolationMethod.EXPONENTIAL:
        return _exponential(before, after, years_since_install)
    return _linear(before, after, years_since_install)


def predict_failure_year_from_curve(
    params: CurveParameters,
    install_year: int,
    failure_threshold: float = FAILURE_THRESHOLD,
    method: InterpolationMethod = InterpolationMethod.LINEAR,
) -> int:
    """First year the curve reaches the threshold; capped at 50 years out."""
    for year in range(MAX_YEARS_TO_CHECK + 1):
        if interpolate_condition(params, year, method) <= failure_threshold:
            return install_year + year
    return install_year + MAX_YEARS_TO_CHECK


def remaining_life_from_curve(
    params: CurveParameters,
    install_year: int,
    current_year: int,
    failure_threshold: float = FAILURE_THRESHOLD,
    method: InterpolationMethod = InterpolationMethod.LINEAR,
) -> int:
    failure_year = predict_failure_year_from_curve(params, install_year, failure_threshold, method)
    return max(0, failure_year - current_year)


def generate_curve_data(
    params: CurveParameters,
    install_year: int,
    years_to_project: int = 30,
    method: InterpolationMethod = InterpolationMethod.LINEAR,
) -> list[CurvePoint]:
    return [
        CurvePoint(year=install_year + year, condition=interpolate_condition(params, year, method))
        for year in range(years_to_project + 1)
    ]


# ── Interpolation ──

def _clamp(condition: float) -> int:
    return max(0, min(100, round_half_up(condition)))


def _linear(before: tuple[int, float], after: tuple[int, float], target: float) -> int:
    slope = (after[1] - before[1]) / (after[0] - before[0])
    return _clamp(before[1] + slope * (target - before[0]))


def _polynomial(points: list[tuple[int, float]], target: float) -> int:
    """Lagrange polynomial through all six points."""
    result = 0.0
    for i, (xi, yi) in enumerate(points):
        term = yi
        for j, (xj, _) in enumerate(points):
            if i != j:
                term *= (target - xj) / (xi - xj)
        result += term
    return _clamp(result)


def _exponential(before: tuple[int, float], after: tuple[int, float], target: float) -> int:
    """C(t) = C0 · e^(-k·t); falls back to linear when a bound is non-positive."""
    if before[1] <= 0 or after[1] <= 0:
        return _linear(before, after, target)
    k = math.log(before[1] / after[1]) / (after[0] - before[0])
    return _clamp(before[1] * math.exp(-k * (target - before[0])))
