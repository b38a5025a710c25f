"""Roster Summary — dashboard header counts over a computed roster."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from patientpulse.analytics.models import (
    CombinedRiskResult,
    DisengagementRisk,
    RiskLevel,
    RosterSummary,
)


def summarize_roster(
    results: Iterable[CombinedRiskResult],
    computed_at: datetime | None = None,
) -> RosterSummary:
    summary = RosterSummary(computed_at=computed_at)
    for result in results:
        summary.total += 1
        if not result.is_available:
            summary.unavailable += 1
            continue

        if result.combined_level == RiskLevel.CRITICAL:
            summary.critical += 1
        elif result.combined_level == RiskLevel.HIGH:
            summary.high += 1
        elif result.combined_level == RiskLevel.MEDIUM:
            summary.medium += 1
        else:
            summary.low += 1

        if result.engagement and result.engagement.prediction.risk != DisengagementRisk.LOW:
            summary.predicted_disengagement += 1
    return summary
