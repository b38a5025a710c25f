"""Tests for the disengagement predictor."""

import pytest

from patientpulse.analytics.models import DisengagementRisk, Trend, TrendMetric
from patientpulse.analytics.prediction import count_negative_trends, predict_disengagement


def trends(*values: Trend) -> list[TrendMetric]:
    return [TrendMetric(metric=f"m{i}", score=0, trend=t) for i, t in enumerate(values)]


class TestCountNegativeTrends:

    def test_counts_declining_and_worsening(self):
        data = trends(Trend.DECLINING, Trend.WORSENING, Trend.STABLE, Trend.UNKNOWN)
        assert count_negative_trends(data) == 2

    def test_empty(self):
        assert count_negative_trends([]) == 0


class TestPredictDisengagement:

    def test_imminent(self):
        prediction = predict_disengagement(35, trends(Trend.DECLINING, Trend.DECLINING, Trend.WORSENING))
        assert prediction.risk == DisengagementRisk.IMMINENT
        assert prediction.timeframe == "2-3 weeks"
        assert prediction.confidence == 85

    def test_low_score_with_two_trends_is_likely(self):
        prediction = predict_disengagement(20, trends(Trend.DECLINING, Trend.DECLINING))
        assert prediction.risk == DisengagementRisk.LIKELY
        assert prediction.timeframe == "4-6 weeks"
        assert prediction.confidence == 70

    def test_likely(self):
        prediction = predict_disengagement(55, trends(Trend.DECLINING, Trend.WORSENING, Trend.DECLINING))
        assert prediction.risk == DisengagementRisk.LIKELY

    @pytest.mark.parametrize("score,negatives", [
        (60, 4),
        (59, 1),
        (10, 0),
        (100, 0),
    ])
    def test_low(self, score, negatives):
        prediction = predict_disengagement(score, trends(*[Trend.DECLINING] * negatives))
        assert prediction.risk == DisengagementRisk.LOW
        assert prediction.timeframe == "Not predicted"
        assert prediction.confidence == 90

    def test_returned_prediction_is_independent(self):
        first = predict_disengagement(100, [])
        first.confidence = 1
        assert predict_disengagement(100, []).confidence == 90
