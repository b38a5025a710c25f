"""
Record Accessors — typed, patient-scoped reads over a RecordStore.

One PatientRecordReader is built per computation with the evaluation
instant captured up front, so every "last N days" window in a single
score derives from the same ``now``.  Readers never cache: each call goes
back to the store.

Records that fail validation are logged, skipped, and collected on
``reader.issues`` so the caller can report them alongside the score.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Iterable, TypeVar

from pydantic import BaseModel, ValidationError

from patientpulse.analytics import store as collections
from patientpulse.analytics.errors import DataAccessError, DataQualityError
from patientpulse.analytics.models import (
    AdherenceEvent,
    AppointmentRecord,
    DataQualityIssue,
    DoctorAnalysisRecord,
    LabReportRecord,
    MessageRecord,
    PatientRecord,
    ReminderRecord,
    SessionRecord,
    VitalsSample,
)
from patientpulse.analytics.store import RecordStore

logger = logging.getLogger("analytics.records")

ModelT = TypeVar("ModelT", bound=BaseModel)

# Owner field for each collection: (camelCase key, snake_case fallback)
_OWNER_KEYS: dict[str, tuple[str, str]] = {
    collections.PATIENTS: ("id", "id"),
    collections.ADHERENCE_REPORTS: ("patientId", "patient_id"),
    collections.APPOINTMENTS: ("patientId", "patient_id"),
    collections.PATIENT_VITALS: ("patientId", "patient_id"),
    collections.LAB_REPORTS: ("patientId", "patient_id"),
    collections.DOCTOR_ANALYSES: ("patientId", "patient_id"),
    collections.MESSAGES: ("patientId", "patient_id"),
    collections.USER_SESSIONS: ("userId", "user_id"),
    collections.SMART_REMINDERS: ("patientId", "patient_id"),
}


def parse_record(collection: str, model: type[ModelT], raw: dict[str, Any]) -> ModelT:
    """Validate one raw record, raising DataQualityError on failure."""
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        reason = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}"
            for err in exc.errors()
        )
        raise DataQualityError(collection, reason) from exc


def within_window(records: Iterable[Any], since: datetime, until: datetime | None = None) -> list[Any]:
    """Records with ``since <= timestamp`` (and ``timestamp < until`` if given)."""
    return [
        r for r in records
        if r.timestamp >= since and (until is None or r.timestamp < until)
    ]


class PatientRecordReader:
    """
    Patient-scoped read queries, all evaluated against one instant.

    Usage:
        reader = PatientRecordReader(store, now)
        events = reader.adherence_events("PT-1", window_days=30)
        if reader.issues:
            ...
    """

    def __init__(self, store: RecordStore, now: datetime) -> None:
        self._store = store
        self._now = now
        self.issues: list[DataQualityIssue] = []

    @property
    def now(self) -> datetime:
        return self._now

    def cutoff(self, days: int) -> datetime:
        """Start of the trailing ``days``-day window ending now."""
        return self._now - timedelta(days=days)

    # ── Queries ──

    def adherence_events(self, patient_id: str, window_days: int | None = None) -> list[AdherenceEvent]:
        events = self._load(collections.ADHERENCE_REPORTS, AdherenceEvent, patient_id)
        return self._windowed(events, window_days)

    def appointments(self, patient_id: str) -> list[AppointmentRecord]:
        return self._load(collections.APPOINTMENTS, AppointmentRecord, patient_id)

    def vitals_samples(self, patient_id: str) -> list[VitalsSample]:
        """All vitals syncs for the patient, newest first."""
        samples = self._load(collections.PATIENT_VITALS, VitalsSample, patient_id)
        return sorted(samples, key=lambda s: s.timestamp, reverse=True)

    def lab_reports(self, patient_id: str) -> list[LabReportRecord]:
        return self._load(collections.LAB_REPORTS, LabReportRecord, patient_id)

    def doctor_analyses(self, patient_id: str) -> list[DoctorAnalysisRecord]:
        return self._load(collections.DOCTOR_ANALYSES, DoctorAnalysisRecord, patient_id)

    def messages(self, patient_id: str, window_days: int | None = None) -> list[MessageRecord]:
        messages = self._load(collections.MESSAGES, MessageRecord, patient_id)
        return self._windowed(messages, window_days)

    def sessions(self, patient_id: str, window_days: int | None = None) -> list[SessionRecord]:
        sessions = self._load(collections.USER_SESSIONS, SessionRecord, patient_id)
        return self._windowed(sessions, window_days)

    def reminders(self, patient_id: str) -> list[ReminderRecord]:
        return self._load(collections.SMART_REMINDERS, ReminderRecord, patient_id)

    def patient_roster(self) -> list[PatientRecord]:
        return self._load(collections.PATIENTS, PatientRecord, None)

    def patient_ids(self) -> list[str]:
        """Id of every roster entry in store order, valid or not ("" when missing)."""
        return [
            self._owner(collections.PATIENTS, raw) or ""
            for raw in self._raw_records(collections.PATIENTS)
        ]

    def patient(self, patient_id: str) -> PatientRecord | None:
        matches = self._load(collections.PATIENTS, PatientRecord, patient_id)
        return matches[0] if matches else None

    # ── Internal ──

    def _windowed(self, records: list[Any], window_days: int | None) -> list[Any]:
        if window_days is None:
            return records
        return within_window(records, self.cutoff(window_days))

    def _raw_records(self, collection: str) -> list[dict[str, Any]]:
        raw_records = self._store.get_collection(collection) or []
        for raw in raw_records:
            if not isinstance(raw, dict):
                raise DataAccessError(
                    f"Collection '{collection}' contains a {type(raw).__name__}, expected objects"
                )
        return raw_records

    @staticmethod
    def _owner(collection: str, raw: dict[str, Any]) -> str | None:
        key, fallback = _OWNER_KEYS[collection]
        owner = raw.get(key, raw.get(fallback))
        return None if owner is None else str(owner)

    def _load(
        self,
        collection: str,
        model: type[ModelT],
        patient_id: str | None,
    ) -> list[ModelT]:
        parsed: list[ModelT] = []
        for raw in self._raw_records(collection):
            owner = self._owner(collection, raw)
            if patient_id is not None and owner != patient_id:
                continue

            try:
                parsed.append(parse_record(collection, model, raw))
            except DataQualityError as exc:
                logger.warning(
                    "Skipping invalid %s record for patient %s: %s",
                    collection, owner, exc.reason,
                )
                issue = DataQualityIssue(
                    collection=collection,
                    patient_id=owner or "unknown",
                    reason=exc.reason,
                )
                # The same record can be read more than once per computation
                if issue not in self.issues:
                    self.issues.append(issue)
        return parsed
