"""
Analytics API — HTTP endpoints for the doctor dashboard.

Endpoints:
  GET /api/analytics/roster                         Ranked roster (latest snapshot)
  GET /api/analytics/summary                        Counts per combined risk level
  GET /api/analytics/patients/{id}                  Combined risk for one patient
  GET /api/analytics/patients/{id}/deterioration    Deterioration score only
  GET /api/analytics/patients/{id}/engagement       Engagement momentum only
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool

from patientpulse.analytics.engine import UNAVAILABLE_MESSAGE, AnalyticsEngine
from patientpulse.analytics.errors import ConfigurationError, DataAccessError
from patientpulse.analytics.models import (
    CombinedRiskResult,
    DeteriorationResult,
    EngagementResult,
    RosterSummary,
)
from patientpulse.analytics.scheduler import RiskRefreshScheduler
from patientpulse.analytics.summary import summarize_roster
from patientpulse.dependencies import get_engine, get_scheduler

logger = logging.getLogger("analytics.api")

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def _run(compute: Callable[[str], Any], patient_id: str) -> Any:
    try:
        return compute(patient_id)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except DataAccessError as exc:
        logger.error("Analytics failed for patient %s: %s", patient_id, exc)
        raise HTTPException(status_code=503, detail=f"{UNAVAILABLE_MESSAGE}: {exc}")


async def _roster(
    engine: AnalyticsEngine,
    scheduler: RiskRefreshScheduler | None,
    refresh: bool,
) -> list[CombinedRiskResult]:
    if scheduler is not None and not refresh and scheduler.latest is not None:
        return scheduler.latest

    try:
        if scheduler is not None:
            return await scheduler.refresh_now()
        return await run_in_threadpool(engine.compute_roster_risk)
    except DataAccessError as exc:
        logger.error("Roster analytics failed: %s", exc)
        raise HTTPException(status_code=503, detail=f"{UNAVAILABLE_MESSAGE}: {exc}")


# ── Endpoints ──


@router.get("/roster", response_model=list[CombinedRiskResult])
async def get_roster(
    refresh: bool = False,
    engine: AnalyticsEngine = Depends(get_engine),
    scheduler: RiskRefreshScheduler | None = Depends(get_scheduler),
):
    """Every patient ranked by combined risk, highest first."""
    return await _roster(engine, scheduler, refresh)


@router.get("/summary", response_model=RosterSummary)
async def get_summary(
    refresh: bool = False,
    engine: AnalyticsEngine = Depends(get_engine),
    scheduler: RiskRefreshScheduler | None = Depends(get_scheduler),
):
    results = await _roster(engine, scheduler, refresh)
    computed_at = results[0].computed_at if results else None
    return summarize_roster(results, computed_at=computed_at)


@router.get("/patients/{patient_id}", response_model=CombinedRiskResult)
def get_patient_risk(patient_id: str, engine: AnalyticsEngine = Depends(get_engine)):
    return _run(engine.compute_combined_risk, patient_id)


@router.get("/patients/{patient_id}/deterioration", response_model=DeteriorationResult)
def get_patient_deterioration(patient_id: str, engine: AnalyticsEngine = Depends(get_engine)):
    return _run(engine.compute_deterioration, patient_id)


@router.get("/patients/{patient_id}/engagement", response_model=EngagementResult)
def get_patient_engagement(patient_id: str, engine: AnalyticsEngine = Depends(get_engine)):
    return _run(engine.compute_engagement, patient_id)
