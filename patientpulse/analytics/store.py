"""
Record Store — read-only key-value collection interface.

The portal persists every record type as a JSON array under a fixed key
(the browser-side storage layout).  The analytics engine only ever reads
those arrays; it never writes.

Two implementations:
  - InMemoryRecordStore  — collections held in a dict (tests, seeding)
  - JsonFileRecordStore  — collections read from a JSON snapshot on disk,
                           re-read on every call so scores track the file
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Protocol

from patientpulse.analytics.errors import ConfigurationError, DataAccessError

logger = logging.getLogger("analytics.store")


# Collection keys
PATIENTS = "patients"
ADHERENCE_REPORTS = "adherenceReports"
APPOINTMENTS = "appointments"
PATIENT_VITALS = "patientVitals"
LAB_REPORTS = "labReports"
DOCTOR_ANALYSES = "doctorAnalyses"
MESSAGES = "messages"
USER_SESSIONS = "userSessions"
SMART_REMINDERS = "smartReminders"


class RecordStore(Protocol):
    """Anything that can hand back a named collection of raw records."""

    def get_collection(self, name: str) -> list[dict[str, Any]] | None:
        ...


def _check_shape(name: str, collection: Any) -> list[dict[str, Any]] | None:
    if collection is None:
        return None
    if not isinstance(collection, list):
        raise DataAccessError(
            f"Collection '{name}' is {type(collection).__name__}, expected a list"
        )
    return collection


class InMemoryRecordStore:
    """Collections held in memory.  Returned lists are copies."""

    def __init__(self, collections: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self._collections: dict[str, Any] = dict(collections or {})

    def get_collection(self, name: str) -> list[dict[str, Any]] | None:
        collection = _check_shape(name, self._collections.get(name))
        if collection is None:
            return None
        return copy.deepcopy(collection)

    def set_collection(self, name: str, records: list[dict[str, Any]]) -> None:
        """Replace a collection (seeding/test helper — the engine never calls this)."""
        self._collections[name] = list(records)


class JsonFileRecordStore:
    """
    Collections read from a single JSON object on disk:

        {"patients": [...], "adherenceReports": [...], ...}

    The file is parsed on every get_collection call; nothing is cached.
    """

    def __init__(self, path: str | Path) -> None:
        if not path:
            raise ConfigurationError("JsonFileRecordStore requires a file path")
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get_collection(self, name: str) -> list[dict[str, Any]] | None:
        snapshot = self._read_snapshot()
        return _check_shape(name, snapshot.get(name))

    def _read_snapshot(self) -> dict[str, Any]:
        if not self._path.exists():
            logger.debug("Record snapshot %s not found — treating as empty", self._path)
            return {}
        try:
            content = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise DataAccessError(f"Cannot read record store {self._path}: {exc}") from exc

        if not content.strip():
            return {}

        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise DataAccessError(
                f"Record store {self._path} is not valid JSON: {exc}"
            ) from exc

        if not isinstance(data, dict):
            raise DataAccessError(
                f"Record store {self._path} must hold a JSON object of collections"
            )
        return data
