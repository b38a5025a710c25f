"""
Tests for the analytics HTTP endpoints — organized by route.
Every request runs against the in-memory fixture engine.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from patientpulse.analytics.engine import AnalyticsEngine
from patientpulse.analytics.store import InMemoryRecordStore


# ────────────────────────────── Health ──────────────────────────────


class TestHealth:
    """GET / and GET /health"""

    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        data = resp.json()
        assert "status" in data
        assert "roster" in data["endpoints"]

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["service"] == "patientpulse-analytics"


# ────────────────────────────── Roster ──────────────────────────────


class TestRoster:
    """GET /api/analytics/roster, GET /api/analytics/summary"""

    def test_ranked_highest_first(self, client):
        resp = client.get("/api/analytics/roster")
        assert resp.status_code == 200
        data = resp.json()
        assert [p["patient_id"] for p in data] == ["PT-ACUTE", "PT-QUIET", "PT-STABLE"]
        assert [p["combined_score"] for p in data] == [57, 35, 0]
        assert data[0]["patient"]["name"] == "Acute Patient"

    def test_summary(self, client):
        resp = client.get("/api/analytics/summary")
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 3
        assert data["high"] == 1
        assert data["medium"] == 1
        assert data["low"] == 1
        assert data["critical"] == 0
        assert data["unavailable"] == 0
        assert data["predicted_disengagement"] == 1

    def test_serves_scheduler_snapshot(self, client, engine):
        from patientpulse.app import app
        from patientpulse.dependencies import get_scheduler

        snapshot = engine.compute_roster_risk()[:1]
        scheduler = MagicMock()
        scheduler.latest = snapshot
        scheduler.refresh_now = AsyncMock()
        app.dependency_overrides[get_scheduler] = lambda: scheduler

        resp = client.get("/api/analytics/roster")
        assert resp.status_code == 200
        assert [p["patient_id"] for p in resp.json()] == ["PT-ACUTE"]
        scheduler.refresh_now.assert_not_called()

    def test_refresh_forces_recompute(self, client, engine):
        from patientpulse.app import app
        from patientpulse.dependencies import get_scheduler

        scheduler = MagicMock()
        scheduler.latest = []
        scheduler.refresh_now = AsyncMock(return_value=engine.compute_roster_risk())
        app.dependency_overrides[get_scheduler] = lambda: scheduler

        resp = client.get("/api/analytics/roster", params={"refresh": "true"})
        assert resp.status_code == 200
        assert len(resp.json()) == 3
        scheduler.refresh_now.assert_awaited_once()

    def test_unreadable_roster_returns_503(self, client):
        from patientpulse.app import app
        from patientpulse.dependencies import get_engine

        broken = AnalyticsEngine(InMemoryRecordStore({"patients": "corrupted"}))
        app.dependency_overrides[get_engine] = lambda: broken

        resp = client.get("/api/analytics/roster")
        assert resp.status_code == 503
        assert "Analytics unavailable" in resp.json()["detail"]


# ────────────────────────────── Patient ─────────────────────────────


class TestPatient:
    """GET /api/analytics/patients/{id}[/deterioration|/engagement]"""

    def test_combined_risk(self, client):
        resp = client.get("/api/analytics/patients/PT-ACUTE")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["deterioration"]["score"] == 65
        assert data["engagement"]["score"] == 55
        assert data["combined_score"] == 57
        assert data["combined_level"] == "high"
        categories = [r["category"] for r in data["recommended_actions"]]
        assert categories == ["clinical", "adherence", "vitals", "communication"]

    def test_deterioration_only(self, client):
        resp = client.get("/api/analytics/patients/PT-ACUTE/deterioration")
        assert resp.status_code == 200
        data = resp.json()
        assert data["score"] == 65
        assert data["adherence_rate"] == 25
        messages = [f["message"] for f in data["factors"]]
        assert "Critical medication adherence: 25%" in messages
        assert "Low oxygen saturation: 88%" in messages
        assert "3 days post-discharge (high-risk window)" in messages

    def test_engagement_only(self, client):
        resp = client.get("/api/analytics/patients/PT-STABLE/engagement")
        assert resp.status_code == 200
        data = resp.json()
        assert data["score"] == 100
        assert data["level"] == "excellent"
        assert data["alerts"] == []
        assert data["prediction"]["risk"] == "low"

    def test_unknown_patient_scored_as_no_data(self, client):
        resp = client.get("/api/analytics/patients/PT-404")
        assert resp.status_code == 200
        data = resp.json()
        assert data["patient"] is None
        assert data["combined_score"] == 35

    @pytest.mark.parametrize("path", [
        "/api/analytics/patients/%20",
        "/api/analytics/patients/%20/deterioration",
        "/api/analytics/patients/%20/engagement",
    ])
    def test_blank_patient_id_returns_400(self, client, path):
        resp = client.get(path)
        assert resp.status_code == 400

    def test_store_failure_returns_503(self, client):
        from patientpulse.app import app
        from patientpulse.dependencies import get_engine

        broken = AnalyticsEngine(InMemoryRecordStore({"adherenceReports": {"x": 1}}))
        app.dependency_overrides[get_engine] = lambda: broken

        resp = client.get("/api/analytics/patients/PT-ACUTE")
        assert resp.status_code == 503
        assert "Analytics unavailable" in resp.json()["detail"]


# ────────────────────────────── Startup ─────────────────────────────


class TestUninitialized:
    """Routes before the engine is wired"""

    def test_returns_503_without_engine(self):
        from fastapi.testclient import TestClient

        from patientpulse.app import app

        app.dependency_overrides.clear()
        resp = TestClient(app).get("/api/analytics/patients/PT-1")
        assert resp.status_code == 503
        assert resp.json()["detail"] == "Analytics engine not initialized"
