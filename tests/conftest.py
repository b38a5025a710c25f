"""
Shared fixtures for the PatientPulse service tests.

The engine runs over an in-memory store with a fixed clock so every score
below is deterministic.  The TestClient is created without entering its
context manager, so app startup (file store + background refresh) never
runs; routers get the test engine through dependency overrides.
"""

from datetime import datetime, timedelta, timezone

import pytest

from patientpulse.analytics.engine import AnalyticsEngine
from patientpulse.analytics.store import InMemoryRecordStore


NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def ago(days: float) -> str:
    return (NOW - timedelta(days=days)).isoformat()


def seed_collections() -> dict[str, list[dict]]:
    """
    Three patients:
      - PT-STABLE: active on every channel, healthy vitals  → combined 0
      - PT-QUIET:  registered but no records at all        → combined 35
      - PT-ACUTE:  low SpO2, missed doses, just discharged  → combined 57
    """
    recent = [0.5, 1.5, 2.5]
    previous = [8.5, 9.5, 10.5]
    stable = "PT-STABLE"
    return {
        "patients": [
            {"id": stable, "name": "Stable Patient"},
            {"id": "PT-QUIET", "name": "Quiet Patient"},
            {"id": "PT-ACUTE", "name": "Acute Patient", "dischargeDate": ago(3)},
        ],
        "messages": [
            {"patientId": stable, "senderId": stable, "timestamp": ago(d)}
            for d in recent + previous
        ],
        "userSessions": [
            {"userId": stable, "timestamp": ago(d)} for d in recent + previous
        ],
        "patientVitals": [
            {"patientId": stable, "timestamp": ago(d), "data": {"heartRate": 72, "oxygenSaturation": 98}}
            for d in recent + previous
        ] + [
            {"patientId": "PT-ACUTE", "timestamp": ago(1), "data": {"heartRate": 80, "oxygenSaturation": 88}},
        ],
        "adherenceReports": [
            {"patientId": "PT-ACUTE", "timestamp": ago(d), "medicationTaken": d < 2}
            for d in (1, 3, 4, 5)
        ],
    }


@pytest.fixture
def store():
    return InMemoryRecordStore(seed_collections())


@pytest.fixture
def engine(store):
    return AnalyticsEngine(store, clock=lambda: NOW)


@pytest.fixture
def client(engine):
    """TestClient wired to the fixture engine, no background scheduler."""
    from fastapi.testclient import TestClient

    from patientpulse.app import app
    from patientpulse.dependencies import get_engine, get_scheduler

    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_scheduler] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()
