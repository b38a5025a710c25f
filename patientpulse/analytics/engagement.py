"""
Engagement Scorer — Engagement Momentum Score (0-100).

Starts at 100 and loses points across four cadence checks, each comparing
the most recent 7 days with the 7 days before:

  1. Messaging activity            up to 25
  2. Portal logins                 up to 35
  3. Health-data (vitals) syncing  up to 35
  4. Medication logging            up to 35

Each check also records a trend metric.  When the score ends below 40 with
three or more metrics declining, a rapid-disengagement alert is put at the
head of the alert list.
"""

from __future__ import annotations

import logging

from patientpulse.analytics.models import (
    Alert,
    AlertSeverity,
    EngagementLevel,
    EngagementResult,
    Trend,
    TrendMetric,
)
from patientpulse.analytics.prediction import count_negative_trends, predict_disengagement
from patientpulse.analytics.records import PatientRecordReader, within_window
from patientpulse.analytics.utils import clamp_score, round_half_up, whole_days_since

logger = logging.getLogger("analytics.engagement")

LOOKBACK_DAYS = 14
WEEK_DAYS = 7

# Metric names shown on the dashboard
MESSAGE_METRIC = "Message Activity"
PORTAL_METRIC = "Portal Activity"
HEALTH_TRACKING_METRIC = "Health Tracking"
MEDICATION_METRIC = "Medication Tracking"

NO_MESSAGES_PENALTY = 25
MESSAGE_DROP_PENALTY = 20
MESSAGE_DROP_RATIO = 0.5

# (logins below, penalty, severity, message), first match wins
LOGIN_RULES: list[tuple[int, int, AlertSeverity, str]] = [
    (2, 20, AlertSeverity.HIGH, "Very low portal engagement - less than 2 logins in 14 days"),
    (5, 10, AlertSeverity.MEDIUM, "Below average portal activity"),
]
LOGIN_SPIRAL_PENALTY = 15
LOGIN_DROP_RATIO = 0.5

# (days since sync above, penalty, severity, message template, trend score)
SYNC_RULES: list[tuple[int, int, AlertSeverity, str, float]] = [
    (5, 20, AlertSeverity.HIGH, "Health data sync stopped ({days} days ago)", 20),
    (2, 10, AlertSeverity.MEDIUM, "Irregular health data syncing", 60),
]
SYNC_OK_TREND_SCORE = 95
SYNC_DROP_PENALTY = 15
SYNC_DROP_RATIO = 0.5
NO_SYNC_PENALTY = 20

# (consistency below, penalty, severity, message template)
LOGGING_RULES: list[tuple[int, int, AlertSeverity, str]] = [
    (50, 20, AlertSeverity.CRITICAL, "Severe medication logging gaps ({pct}% logged)"),
    (70, 12, AlertSeverity.HIGH, "Medication logging inconsistency ({pct}% logged)"),
]
LOGGING_DROP_PENALTY = 15
LOGGING_DROP_RATIO = 0.7

RAPID_DISENGAGEMENT_SCORE = 40
RAPID_DISENGAGEMENT_TRENDS = 3
RAPID_DISENGAGEMENT_MESSAGE = "RAPID DISENGAGEMENT DETECTED - Immediate intervention recommended"

# (score at least, level)
LEVEL_THRESHOLDS: list[tuple[int, EngagementLevel]] = [
    (80, EngagementLevel.EXCELLENT),
    (60, EngagementLevel.GOOD),
    (40, EngagementLevel.DECLINING),
]


def engagement_level(score: int) -> EngagementLevel:
    for threshold, level in LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return EngagementLevel.CRITICAL


def _dropped(recent: int, previous: int, ratio: float) -> bool:
    """True when the recent week fell below ``ratio`` of a non-empty previous week."""
    return previous > 0 and recent < previous * ratio


class _Momentum:
    """Running score plus the alerts and trends gathered so far."""

    def __init__(self) -> None:
        self.score = 100
        self.alerts: list[Alert] = []
        self.trends: list[TrendMetric] = []

    def penalize(self, points: int, severity: AlertSeverity, message: str) -> None:
        self.score -= points
        self.alerts.append(Alert(severity=severity, message=message))

    def record(self, metric: str, score: float, trend: Trend) -> None:
        self.trends.append(TrendMetric(metric=metric, score=score, trend=trend))


class EngagementScorer:
    """
    Week-over-week engagement scoring for one patient.

    Usage:
        scorer = EngagementScorer()
        result = scorer.score("PT-1", PatientRecordReader(store, now))
    """

    def score(self, patient_id: str, reader: PatientRecordReader) -> EngagementResult:
        momentum = _Momentum()

        self._messaging(patient_id, reader, momentum)
        self._logins(patient_id, reader, momentum)
        self._vitals_sync(patient_id, reader, momentum)
        self._medication_logging(patient_id, reader, momentum)

        negative = count_negative_trends(momentum.trends)
        if momentum.score < RAPID_DISENGAGEMENT_SCORE and negative >= RAPID_DISENGAGEMENT_TRENDS:
            momentum.alerts.insert(0, Alert(
                severity=AlertSeverity.CRITICAL,
                message=RAPID_DISENGAGEMENT_MESSAGE,
            ))
            logger.warning(
                "Rapid disengagement for %s: score %d, %d declining metrics",
                patient_id, momentum.score, negative,
            )

        score = clamp_score(momentum.score)
        level = engagement_level(score)

        logger.debug(
            "Engagement for %s: %d (%s) — %d alerts",
            patient_id, score, level.value, len(momentum.alerts),
        )
        return EngagementResult(
            score=score,
            level=level,
            alerts=momentum.alerts,
            trend_data=momentum.trends,
            prediction=predict_disengagement(momentum.score, momentum.trends),
            computed_at=reader.now,
            data_quality_issues=list(reader.issues),
        )

    # ── Cadence checks ──

    @staticmethod
    def _weeks(records: list, reader: PatientRecordReader) -> tuple[int, int]:
        """(count in last 7 days, count in the 7 days before that)."""
        week_start = reader.cutoff(WEEK_DAYS)
        recent = within_window(records, week_start)
        previous = within_window(records, reader.cutoff(LOOKBACK_DAYS), until=week_start)
        return len(recent), len(previous)

    def _messaging(self, patient_id: str, reader: PatientRecordReader, momentum: _Momentum) -> None:
        messages = reader.messages(patient_id, window_days=LOOKBACK_DAYS)
        sent_by_patient = [m for m in messages if m.sender_id == patient_id]

        if not sent_by_patient:
            momentum.penalize(
                NO_MESSAGES_PENALTY, AlertSeverity.CRITICAL,
                "No communication activity detected",
            )
            momentum.record(MESSAGE_METRIC, 0, Trend.DECLINING)
            return

        # Cadence is measured over the whole conversation thread
        recent, previous = self._weeks(messages, reader)
        if recent < previous * MESSAGE_DROP_RATIO:
            momentum.penalize(
                MESSAGE_DROP_PENALTY, AlertSeverity.HIGH,
                "Significant drop in communication activity",
            )
            momentum.record(MESSAGE_METRIC, recent / max(previous, 1) * 100, Trend.DECLINING)
        else:
            momentum.record(MESSAGE_METRIC, min(recent / WEEK_DAYS * 100, 100), Trend.STABLE)

    def _logins(self, patient_id: str, reader: PatientRecordReader, momentum: _Momentum) -> None:
        sessions = reader.sessions(patient_id, window_days=LOOKBACK_DAYS)
        frequency = len(sessions)

        for below, penalty, severity, message in LOGIN_RULES:
            if frequency < below:
                momentum.penalize(penalty, severity, message)
                break

        recent, previous = self._weeks(sessions, reader)
        if _dropped(recent, previous, LOGIN_DROP_RATIO):
            momentum.penalize(
                LOGIN_SPIRAL_PENALTY, AlertSeverity.HIGH,
                "Entering disengagement spiral - declining login pattern",
            )
            momentum.record(PORTAL_METRIC, recent / WEEK_DAYS * 100, Trend.DECLINING)
        else:
            momentum.record(PORTAL_METRIC, frequency / LOOKBACK_DAYS * 100, Trend.STABLE)

    def _vitals_sync(self, patient_id: str, reader: PatientRecordReader, momentum: _Momentum) -> None:
        samples = reader.vitals_samples(patient_id)
        if not samples:
            momentum.penalize(
                NO_SYNC_PENALTY, AlertSeverity.CRITICAL,
                "No health data syncing detected",
            )
            momentum.record(HEALTH_TRACKING_METRIC, 0, Trend.DECLINING)
            return

        days_since_sync = whole_days_since(samples[0].timestamp, reader.now)
        for above, penalty, severity, template, trend_score in SYNC_RULES:
            if days_since_sync > above:
                momentum.penalize(penalty, severity, template.format(days=days_since_sync))
                momentum.record(HEALTH_TRACKING_METRIC, trend_score, Trend.DECLINING)
                break
        else:
            momentum.record(HEALTH_TRACKING_METRIC, SYNC_OK_TREND_SCORE, Trend.STABLE)

        recent, previous = self._weeks(samples, reader)
        if _dropped(recent, previous, SYNC_DROP_RATIO):
            momentum.penalize(
                SYNC_DROP_PENALTY, AlertSeverity.HIGH,
                "Health tracking engagement dropping rapidly",
            )

    def _medication_logging(self, patient_id: str, reader: PatientRecordReader, momentum: _Momentum) -> None:
        events = reader.adherence_events(patient_id, window_days=LOOKBACK_DAYS)
        active_reminders = sum(1 for r in reader.reminders(patient_id) if r.is_active)

        # One expected log per active reminder per day
        expected = active_reminders * LOOKBACK_DAYS
        if expected == 0:
            momentum.record(MEDICATION_METRIC, 0, Trend.UNKNOWN)
            return

        consistency = round_half_up(len(events) / expected * 100)
        for below, penalty, severity, template in LOGGING_RULES:
            if consistency < below:
                momentum.penalize(penalty, severity, template.format(pct=consistency))
                break

        recent, previous = self._weeks(events, reader)
        if _dropped(recent, previous, LOGGING_DROP_RATIO):
            momentum.penalize(
                LOGGING_DROP_PENALTY, AlertSeverity.CRITICAL,
                "Medication adherence tracking pattern deteriorating",
            )
            momentum.record(MEDICATION_METRIC, consistency, Trend.WORSENING)
        else:
            momentum.record(MEDICATION_METRIC, consistency, Trend.STABLE)
