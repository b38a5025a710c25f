"""
Recommendation Generator — turns scorer output into care-team actions.

Checks run in a fixed order and each one appends independently; the list
order is the check order, not a priority sort.
"""

from __future__ import annotations

from patientpulse.analytics.models import (
    DeteriorationResult,
    EngagementResult,
    FactorCategory,
    PatientRecord,
    Recommendation,
    RecommendationCategory,
    RecommendationPriority,
    RiskLevel,
)

CLINICAL_ASSESSMENT_SCORE = 50
OUTREACH_ENGAGEMENT_SCORE = 40


def _alerts_mention(engagement: EngagementResult, phrase: str) -> bool:
    return any(phrase in a.message.lower() for a in engagement.alerts)


def generate_recommendations(
    deterioration: DeteriorationResult,
    engagement: EngagementResult,
    patient: PatientRecord | None = None,
) -> list[Recommendation]:
    recommendations: list[Recommendation] = []

    if deterioration.score >= CLINICAL_ASSESSMENT_SCORE:
        recommendations.append(Recommendation(
            priority=RecommendationPriority.URGENT,
            action="Schedule immediate clinical assessment",
            reason=f"High health deterioration risk ({deterioration.score}/100)",
            category=RecommendationCategory.CLINICAL,
        ))

    if engagement.score < OUTREACH_ENGAGEMENT_SCORE:
        recommendations.append(Recommendation(
            priority=RecommendationPriority.URGENT,
            action="Initiate immediate patient outreach call",
            reason=f"Critical engagement decline ({engagement.score}/100)",
            category=RecommendationCategory.ENGAGEMENT,
        ))

    if _alerts_mention(engagement, "disengagement spiral"):
        recommendations.append(Recommendation(
            priority=RecommendationPriority.URGENT,
            action="Activate care coordinator intervention",
            reason="Patient entering disengagement pattern - early intervention critical",
            category=RecommendationCategory.INTERVENTION,
        ))

    adherence = deterioration.factors_in(FactorCategory.ADHERENCE)
    if adherence and adherence[0].type == RiskLevel.CRITICAL:
        recommendations.append(Recommendation(
            priority=RecommendationPriority.HIGH,
            action="Review medication barriers with patient",
            reason=adherence[0].message,
            category=RecommendationCategory.ADHERENCE,
        ))

    appointments = deterioration.factors_in(FactorCategory.APPOINTMENTS)
    if appointments:
        recommendations.append(Recommendation(
            priority=RecommendationPriority.HIGH,
            action="Address appointment attendance barriers",
            reason=appointments[0].message,
            category=RecommendationCategory.APPOINTMENTS,
        ))

    critical_vitals = [
        f for f in deterioration.factors_in(FactorCategory.VITALS)
        if f.type == RiskLevel.CRITICAL
    ]
    if critical_vitals:
        recommendations.append(Recommendation(
            priority=RecommendationPriority.URGENT,
            action="Emergency vital signs assessment required",
            reason=critical_vitals[0].message,
            category=RecommendationCategory.VITALS,
        ))

    if _alerts_mention(engagement, "communication"):
        recommendations.append(Recommendation(
            priority=RecommendationPriority.MEDIUM,
            action="Re-establish communication channels",
            reason="Patient communication frequency declining",
            category=RecommendationCategory.COMMUNICATION,
        ))

    return recommendations
