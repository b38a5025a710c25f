"""
Deterioration Scorer — Health Deterioration Score (0-100).

Five independent signal groups, each capped at its own ceiling.  Every
group is evaluated; several can fire for the same patient.

  1. Medication adherence (last 30 days)      up to 30
  2. Missed appointments (last 90 days)        up to 20
  3. Latest vital signs / sync recency         up to 50
  4. Concerning lab analyses                   up to 15
  5. Post-discharge window                     up to 10

The score is the sum of fired factor weights, capped at 100.
"""

from __future__ import annotations

import logging

from patientpulse.analytics.models import (
    DeteriorationResult,
    Factor,
    FactorCategory,
    PatientRecord,
    RiskLevel,
)
from patientpulse.analytics.records import PatientRecordReader
from patientpulse.analytics.utils import clamp_score, round_half_up, whole_days_since

logger = logging.getLogger("analytics.deterioration")

ADHERENCE_WINDOW_DAYS = 30
APPOINTMENT_WINDOW_DAYS = 90

# (rate below, weight, factor type, message template), first match wins
ADHERENCE_RULES: list[tuple[int, int, RiskLevel, str]] = [
    (50, 30, RiskLevel.CRITICAL, "Critical medication adherence: {rate}%"),
    (70, 20, RiskLevel.HIGH, "Poor medication adherence: {rate}%"),
    (90, 10, RiskLevel.MEDIUM, "Below target adherence: {rate}%"),
]

# (missed at least, weight, factor type, message template), first match wins
APPOINTMENT_RULES: list[tuple[int, int, RiskLevel, str]] = [
    (3, 20, RiskLevel.HIGH, "{count} missed appointments in last 90 days"),
    (2, 15, RiskLevel.MEDIUM, "{count} missed appointments recently"),
    (1, 8, RiskLevel.LOW, "{count} missed appointment"),
]

HEART_RATE_RANGE = (50, 110)
HEART_RATE_WEIGHT = 15
OXYGEN_SATURATION_FLOOR = 92
OXYGEN_SATURATION_WEIGHT = 25
STALE_VITALS_DAYS = 7
STALE_VITALS_WEIGHT = 10
NO_VITALS_WEIGHT = 15

MIN_LAB_REPORTS_FOR_TREND = 2
CONCERN_KEYWORDS = ("abnormal", "concern", "elevated", "low")
LAB_CONCERN_WEIGHT = 15

# (days since discharge at most, weight, factor type, message template)
DISCHARGE_RULES: list[tuple[int, int, RiskLevel, str]] = [
    (7, 10, RiskLevel.MEDIUM, "{days} days post-discharge (high-risk window)"),
    (30, 5, RiskLevel.LOW, "{days} days post-discharge"),
]

# (score at least, level)
LEVEL_THRESHOLDS: list[tuple[int, RiskLevel]] = [
    (70, RiskLevel.CRITICAL),
    (50, RiskLevel.HIGH),
    (30, RiskLevel.MEDIUM),
]


def deterioration_level(score: int) -> RiskLevel:
    for threshold, level in LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return RiskLevel.LOW


class DeteriorationScorer:
    """
    Deterministic deterioration scoring over one patient's records.

    Usage:
        scorer = DeteriorationScorer()
        result = scorer.score("PT-1", PatientRecordReader(store, now))
    """

    def score(
        self,
        patient_id: str,
        reader: PatientRecordReader,
        patient: PatientRecord | None = None,
    ) -> DeteriorationResult:
        if patient is None:
            patient = reader.patient(patient_id)

        factors: list[Factor] = []

        adherence_rate, adherence_factor = self._adherence(patient_id, reader)
        if adherence_factor:
            factors.append(adherence_factor)

        appointment_factor = self._appointments(patient_id, reader)
        if appointment_factor:
            factors.append(appointment_factor)

        factors.extend(self._vitals(patient_id, reader))

        lab_factor = self._labs(patient_id, reader)
        if lab_factor:
            factors.append(lab_factor)

        discharge_factor = self._discharge(patient, reader)
        if discharge_factor:
            factors.append(discharge_factor)

        score = clamp_score(sum(f.weight for f in factors))
        level = deterioration_level(score)

        logger.debug(
            "Deterioration for %s: %d (%s) — %d factors",
            patient_id, score, level.value, len(factors),
        )
        return DeteriorationResult(
            score=score,
            level=level,
            factors=factors,
            adherence_rate=adherence_rate,
            computed_at=reader.now,
            data_quality_issues=list(reader.issues),
        )

    # ── Signal groups ──

    @staticmethod
    def _adherence(patient_id: str, reader: PatientRecordReader) -> tuple[int, Factor | None]:
        events = reader.adherence_events(patient_id, window_days=ADHERENCE_WINDOW_DAYS)
        # No logged doses is treated as nothing due, not as non-adherence
        if not events:
            return 100, None

        taken = sum(1 for e in events if e.medication_taken)
        rate = round_half_up(taken / len(events) * 100)

        for below, weight, factor_type, template in ADHERENCE_RULES:
            if rate < below:
                return rate, Factor(
                    type=factor_type,
                    message=template.format(rate=rate),
                    weight=weight,
                    category=FactorCategory.ADHERENCE,
                )
        return rate, None

    @staticmethod
    def _appointments(patient_id: str, reader: PatientRecordReader) -> Factor | None:
        since = reader.cutoff(APPOINTMENT_WINDOW_DAYS)
        recent = [a for a in reader.appointments(patient_id) if a.date >= since]

        missed = sum(
            1 for a in recent
            if a.status == "missed" or (a.status != "completed" and a.date < reader.now)
        )

        for at_least, weight, factor_type, template in APPOINTMENT_RULES:
            if missed >= at_least:
                return Factor(
                    type=factor_type,
                    message=template.format(count=missed),
                    weight=weight,
                    category=FactorCategory.APPOINTMENTS,
                )
        return None

    @staticmethod
    def _vitals(patient_id: str, reader: PatientRecordReader) -> list[Factor]:
        samples = reader.vitals_samples(patient_id)
        if not samples:
            return [Factor(
                type=RiskLevel.HIGH,
                message="No vital signs data available",
                weight=NO_VITALS_WEIGHT,
                category=FactorCategory.VITALS,
            )]

        latest = samples[0]
        factors: list[Factor] = []

        heart_rate = latest.data.heart_rate
        low, high = HEART_RATE_RANGE
        if heart_rate is not None and (heart_rate < low or heart_rate > high):
            factors.append(Factor(
                type=RiskLevel.CRITICAL,
                message=f"Abnormal heart rate: {heart_rate:g} bpm",
                weight=HEART_RATE_WEIGHT,
                category=FactorCategory.VITALS,
            ))

        spo2 = latest.data.oxygen_saturation
        if spo2 is not None and spo2 < OXYGEN_SATURATION_FLOOR:
            factors.append(Factor(
                type=RiskLevel.CRITICAL,
                message=f"Low oxygen saturation: {spo2:g}%",
                weight=OXYGEN_SATURATION_WEIGHT,
                category=FactorCategory.VITALS,
            ))

        days_since_sync = whole_days_since(latest.timestamp, reader.now)
        if days_since_sync > STALE_VITALS_DAYS:
            factors.append(Factor(
                type=RiskLevel.MEDIUM,
                message=f"No health data sync in {days_since_sync} days",
                weight=STALE_VITALS_WEIGHT,
                category=FactorCategory.VITALS,
            ))

        return factors

    @staticmethod
    def _labs(patient_id: str, reader: PatientRecordReader) -> Factor | None:
        if len(reader.lab_reports(patient_id)) < MIN_LAB_REPORTS_FOR_TREND:
            return None

        concerning = [
            a for a in reader.doctor_analyses(patient_id)
            if any(k in a.analysis_text.lower() for k in CONCERN_KEYWORDS)
        ]
        if not concerning:
            return None

        return Factor(
            type=RiskLevel.HIGH,
            message="Concerning lab result patterns detected",
            weight=LAB_CONCERN_WEIGHT,
            category=FactorCategory.LABS,
        )

    @staticmethod
    def _discharge(patient: PatientRecord | None, reader: PatientRecordReader) -> Factor | None:
        if patient is None or patient.discharge_date is None:
            return None

        days = whole_days_since(patient.discharge_date, reader.now)
        for at_most, weight, factor_type, template in DISCHARGE_RULES:
            if days <= at_most:
                return Factor(
                    type=factor_type,
                    message=template.format(days=days),
                    weight=weight,
                    category=FactorCategory.DISCHARGE,
                )
        return None
