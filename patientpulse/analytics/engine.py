"""
Analytics Engine — Risk Aggregator and public entry point.

Combines the Deterioration and Engagement scorers into one risk record per
patient and ranks the whole roster by combined risk.

  combined = round(deterioration × 0.6 + (100 − engagement) × 0.4)

Every computation captures a single evaluation instant from the injected
clock.  The engine holds no mutable state, so roster evaluation fans
patients out over a thread pool without locking.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable

from patientpulse.analytics.deterioration import DeteriorationScorer
from patientpulse.analytics.engagement import EngagementScorer
from patientpulse.analytics.errors import ConfigurationError
from patientpulse.analytics.models import (
    CombinedRiskResult,
    DeteriorationResult,
    EngagementResult,
    PatientRecord,
    RiskLevel,
)
from patientpulse.analytics.records import PatientRecordReader
from patientpulse.analytics.recommendations import generate_recommendations
from patientpulse.analytics.store import RecordStore

logger = logging.getLogger("analytics.engine")

Clock = Callable[[], datetime]

DEFAULT_MAX_WORKERS = 4

# Weights in percent
DETERIORATION_WEIGHT = 60
DISENGAGEMENT_WEIGHT = 40

# (score at least, level)
COMBINED_LEVEL_THRESHOLDS: list[tuple[int, RiskLevel]] = [
    (70, RiskLevel.CRITICAL),
    (50, RiskLevel.HIGH),
    (30, RiskLevel.MEDIUM),
]

UNAVAILABLE_MESSAGE = "Analytics unavailable"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def combine_scores(deterioration_score: int, engagement_score: int) -> int:
    """Weighted blend, rounded half-up.  Integer arithmetic keeps it exact."""
    weighted = (
        deterioration_score * DETERIORATION_WEIGHT
        + (100 - engagement_score) * DISENGAGEMENT_WEIGHT
    )
    return (weighted + 50) // 100


def combined_level(score: int) -> RiskLevel:
    for threshold, level in COMBINED_LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return RiskLevel.LOW


def _require_patient_id(patient_id: str | None) -> str:
    if patient_id is None or not str(patient_id).strip():
        raise ConfigurationError("A patient_id is required")
    return str(patient_id)


class AnalyticsEngine:
    """
    On-demand patient risk analytics over a read-only RecordStore.

    Usage:
        engine = AnalyticsEngine(JsonFileRecordStore("data/records.json"))
        ranked = engine.compute_roster_risk()
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Clock | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        if store is None:
            raise ConfigurationError("AnalyticsEngine requires a record store")
        if max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {max_workers}")
        self._store = store
        self._clock = clock or utc_now
        self._max_workers = max_workers
        self._deterioration = DeteriorationScorer()
        self._engagement = EngagementScorer()

    @property
    def store(self) -> RecordStore:
        return self._store

    def now(self) -> datetime:
        return self._clock()

    # ── Single patient ──

    def compute_deterioration(
        self, patient_id: str, now: datetime | None = None,
    ) -> DeteriorationResult:
        patient_id = _require_patient_id(patient_id)
        reader = PatientRecordReader(self._store, now or self._clock())
        return self._deterioration.score(patient_id, reader)

    def compute_engagement(
        self, patient_id: str, now: datetime | None = None,
    ) -> EngagementResult:
        patient_id = _require_patient_id(patient_id)
        reader = PatientRecordReader(self._store, now or self._clock())
        return self._engagement.score(patient_id, reader)

    def compute_combined_risk(
        self,
        patient_id: str,
        now: datetime | None = None,
        patient: PatientRecord | None = None,
    ) -> CombinedRiskResult:
        patient_id = _require_patient_id(patient_id)
        now = now or self._clock()

        deterioration_reader = PatientRecordReader(self._store, now)
        if patient is None:
            patient = deterioration_reader.patient(patient_id)

        deterioration = self._deterioration.score(patient_id, deterioration_reader, patient)
        engagement = self._engagement.score(patient_id, PatientRecordReader(self._store, now))

        score = combine_scores(deterioration.score, engagement.score)
        level = combined_level(score)

        logger.info(
            "Combined risk for %s: %d (%s) — deterioration %d, engagement %d",
            patient_id, score, level.value, deterioration.score, engagement.score,
        )
        return CombinedRiskResult(
            patient_id=patient_id,
            patient=patient,
            deterioration=deterioration,
            engagement=engagement,
            combined_score=score,
            combined_level=level,
            recommended_actions=generate_recommendations(deterioration, engagement, patient),
            computed_at=now,
        )

    # ── Roster ──

    def compute_roster_risk(self, now: datetime | None = None) -> list[CombinedRiskResult]:
        """
        Combined risk for every patient, highest first.

        A patient whose computation fails is returned as an ``unavailable``
        entry after all scored patients; it never aborts the batch.  A
        patient whose own record is invalid is still scored, without the
        record, and the issue is reported on its deterioration result.
        Failing to read the roster itself does propagate.
        """
        now = now or self._clock()
        reader = PatientRecordReader(self._store, now)
        patient_ids = reader.patient_ids()
        if not patient_ids:
            return []

        valid: dict[str, PatientRecord] = {}
        for patient in reader.patient_roster():
            valid.setdefault(patient.id, patient)

        workers = min(self._max_workers, len(patient_ids))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(
                lambda pid: self._isolated_combined_risk(pid, valid.get(pid), now),
                patient_ids,
            ))

        scored = [r for r in results if r.is_available]
        failed = [r for r in results if not r.is_available]
        scored.sort(key=lambda r: r.combined_score, reverse=True)

        logger.info(
            "Roster risk computed: %d patients, %d unavailable",
            len(results), len(failed),
        )
        return scored + failed

    def _isolated_combined_risk(
        self,
        patient_id: str,
        patient: PatientRecord | None,
        now: datetime,
    ) -> CombinedRiskResult:
        try:
            return self.compute_combined_risk(patient_id, now=now, patient=patient)
        except Exception as exc:
            logger.error(
                "Risk computation failed for patient %s: %s",
                patient_id, exc, exc_info=True,
            )
            return CombinedRiskResult.unavailable(
                patient_id=patient_id,
                patient=patient,
                error=f"{UNAVAILABLE_MESSAGE}: {exc}",
                computed_at=now,
            )
