"""
Disengagement Predictor — risk / timeframe / confidence from the
engagement score and the number of negative trend metrics.
"""

from __future__ import annotations

from typing import Iterable

from patientpulse.analytics.models import DisengagementRisk, Prediction, TrendMetric

# (score below, negative trends at least, prediction), first match wins
PREDICTION_RULES: list[tuple[int, int, Prediction]] = [
    (40, 3, Prediction(risk=DisengagementRisk.IMMINENT, timeframe="2-3 weeks", confidence=85)),
    (60, 2, Prediction(risk=DisengagementRisk.LIKELY, timeframe="4-6 weeks", confidence=70)),
]

NO_DISENGAGEMENT = Prediction(risk=DisengagementRisk.LOW, timeframe="Not predicted", confidence=90)


def count_negative_trends(trend_data: Iterable[TrendMetric]) -> int:
    """Number of metrics trending declining or worsening."""
    return sum(1 for t in trend_data if t.trend.is_negative)


def predict_disengagement(score: int, trend_data: Iterable[TrendMetric]) -> Prediction:
    negative = count_negative_trends(trend_data)
    for below, at_least, prediction in PREDICTION_RULES:
        if score < below and negative >= at_least:
            return prediction.model_copy()
    return NO_DISENGAGEMENT.model_copy()
