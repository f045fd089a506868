"""
Unit tests for the deterioration trend & risk predictor.
"""
from datetime import date

from fcaengine.schemas.prediction import ComponentHistory, HistoricalDataPoint, RiskLevel
from fcaengine.scoring.deterioration import (
    analyze_component_patterns,
    calculate_confidence,
    calculate_deterioration_rate,
    determine_risk_level,
    estimate_current_condition,
    most_recent_point,
    predict_deterioration,
    predict_failure_year,
    round_half_up,
)


def _series(*points) -> list[HistoricalDataPoint]:
    """(age, condition) pairs → data points."""
    return [HistoricalDataPoint(age=age, condition=cond) for age, cond in points]


class TestRoundHalfUp:
    def test_half_goes_up(self):
        assert round_half_up(82.5) == 83
        assert round_half_up(26.5) == 27
        assert round_half_up(2.4999) == 2

    def test_negative(self):
        assert round_half_up(-2.5) == -2


class TestDeteriorationRate:
    def test_two_points(self):
        assert calculate_deterioration_rate(_series((0, 100), (5, 75))) == 5.0

    def test_sorted_by_age_first(self):
        assert calculate_deterioration_rate(_series((5, 75), (0, 100))) == 5.0

    def test_mean_of_pairwise_rates(self):
        # 100→90 over 2y = 5/yr, 90→70 over 2y = 10/yr
        assert calculate_deterioration_rate(_series((0, 100), (2, 90), (4, 70))) == 7.5

    def test_sparse_history_defaults(self):
        assert calculate_deterioration_rate([]) == 2.0
        assert calculate_deterioration_rate(_series((3, 80))) == 2.0

    def test_same_age_pairs_skipped(self):
        assert calculate_deterioration_rate(_series((4, 80), (4, 60))) == 2.0
        # the zero-delta pair is ignored, the other one counts
        assert calculate_deterioration_rate(_series((0, 100), (4, 80), (4, 60))) == 5.0

    def test_clamped_high(self):
        assert calculate_deterioration_rate(_series((0, 100), (1, 50))) == 10.0

    def test_improving_condition_clamped_low(self):
        assert calculate_deterioration_rate(_series((0, 50), (5, 80))) == 0.5


class TestCurrentCondition:
    def test_no_history_default(self):
        assert estimate_current_condition([], current_age=12) == 70

    def test_recent_data_used_directly(self):
        series = _series((0, 100), (5, 75))
        assert estimate_current_condition(series, current_age=5) == 75
        assert estimate_current_condition(series, current_age=7) == 75

    def test_extrapolates_stale_data(self):
        series = _series((0, 100), (5, 75))
        # 75 - 5%/yr × 5 years
        assert estimate_current_condition(series, current_age=10) == 50

    def test_extrapolation_rounds_half_up(self):
        series = _series((0, 100), (2, 95))
        # 95 - 2.5 × 5 = 82.5
        assert estimate_current_condition(series, current_age=7) == 83

    def test_extrapolation_clamped_at_zero(self):
        series = _series((0, 100), (5, 75))
        assert estimate_current_condition(series, current_age=40) == 0

    def test_most_recent_tie_broken_by_date(self):
        series = [
            HistoricalDataPoint(age=6, condition=70, assessment_date=date(2023, 1, 10)),
            HistoricalDataPoint(age=6, condition=65, assessment_date=date(2023, 11, 2)),
        ]
        assert most_recent_point(series).condition == 65


class TestFailureYear:
    def test_linear_run_down(self):
        # (75 - 20) / 5 = 11 years
        assert predict_failure_year(75, 5.0, 2020) == 2031

    def test_rounds_half_up(self):
        # (73 - 20) / 2 = 26.5
        assert predict_failure_year(73, 2.0, 2024) == 2051

    def test_already_failed(self):
        assert predict_failure_year(12, 3.0, 2024) == 2024

    def test_custom_threshold(self):
        assert predict_failure_year(75, 5.0, 2020, failure_threshold=35) == 2028


class TestConfidence:
    def test_no_history(self):
        assert calculate_confidence([]) == 20

    def test_two_points(self):
        # volume 2/5×40 = 16, span 5/10×30 = 15, recency 30 - 5×2 = 20
        assert calculate_confidence(_series((0, 100), (5, 75))) == 51

    def test_full_marks_except_recency(self):
        series = _series((0, 100), (2.5, 95), (5, 88), (7.5, 80), (10, 71))
        # 40 + 30 + (30 - 20)
        assert calculate_confidence(series) == 80

    def test_sub_scores_capped(self):
        series = _series(*[(age, 100 - age * 3) for age in range(0, 13, 2)])
        # 7 points → 40 (cap), span 12 → 30 (cap), recency 30 - 24 = 6
        assert calculate_confidence(series) == 76

    def test_recency_decays_to_zero(self):
        # volume 8, span 0, recency 0
        assert calculate_confidence(_series((20, 40))) == 8


class TestRiskLevel:
    def test_no_remaining_life_is_critical(self):
        assert determine_risk_level(0, 95) == RiskLevel.CRITICAL
        assert determine_risk_level(1, 95) == RiskLevel.CRITICAL

    def test_failed_condition_is_critical(self):
        assert determine_risk_level(10, 20) == RiskLevel.CRITICAL

    def test_high(self):
        assert determine_risk_level(3, 90) == RiskLevel.HIGH
        assert determine_risk_level(10, 40) == RiskLevel.HIGH

    def test_medium(self):
        assert determine_risk_level(5, 90) == RiskLevel.MEDIUM
        assert determine_risk_level(10, 60) == RiskLevel.MEDIUM

    def test_low(self):
        assert determine_risk_level(10, 61) == RiskLevel.LOW
        assert determine_risk_level(6, 61) == RiskLevel.LOW


class TestPredictDeterioration:
    def test_reference_series(self):
        p = predict_deterioration("B3010", 2015, _series((0, 100), (5, 75)), current_year=2020)

        assert p.deterioration_rate == 5.0
        assert p.current_condition_estimate == 75
        assert p.predicted_failure_year == 2015 + 16
        assert p.predicted_remaining_life == 11
        assert p.confidence_score == 51
        assert p.risk_level == RiskLevel.LOW

    def test_empty_history_never_raises(self):
        p = predict_deterioration("D3040", 2000, [], current_year=2024)

        assert p.deterioration_rate == 2.0
        assert p.current_condition_estimate == 70
        # (70 - 20) / 2 = 25 years
        assert p.predicted_failure_year == 2049
        assert p.predicted_remaining_life == 25
        assert p.confidence_score == 20
        assert p.risk_level == RiskLevel.LOW

    def test_worn_out_component(self):
        series = _series((0, 100), (10, 60), (20, 25))
        p = predict_deterioration("D2010", 1990, series, current_year=2024)

        # rate 3.75, 14 stale years: 25 - 52.5 → 0
        assert p.current_condition_estimate == 0
        assert p.predicted_remaining_life == 0
        assert p.risk_level == RiskLevel.CRITICAL

    def test_idempotent(self):
        series = _series((1, 98), (4, 90), (9, 71))
        a = predict_deterioration("C3020", 2010, series, current_year=2024)
        b = predict_deterioration("C3020", 2010, series, current_year=2024)
        assert a == b


class TestPatternAnalysis:
    def test_accelerated_and_stable(self):
        analysis = analyze_component_patterns([
            ComponentHistory(component_code="B3010", history=_series((0, 100), (5, 75))),
            ComponentHistory(component_code="B2010", history=_series((0, 100), (10, 95))),
            ComponentHistory(component_code="D5010", history=[]),
        ])

        assert analysis.accelerated_deterioration_components == ["B3010"]
        assert analysis.stable_components == ["B2010"]
        # (5.0 + 0.5 + 2.0) / 3
        assert analysis.average_deterioration_rate == 2.5
        assert analysis.insights == [
            "Average deterioration rate across 3 components: 2.50% per year",
            "1 components showing accelerated deterioration",
            "1 components in stable condition",
        ]

    def test_no_components(self):
        analysis = analyze_component_patterns([])
        assert analysis.average_deterioration_rate == 2.0
        assert analysis.insights[1] == "No components showing accelerated deterioration"
        assert analysis.insights[2] == "No components in stable condition"
