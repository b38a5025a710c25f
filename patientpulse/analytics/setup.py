"""
Analytics Setup — wires the record store, engine and refresh scheduler.

Called once during app startup.  If the scheduler cannot start, on-demand
endpoints keep working against the engine directly.
"""

from __future__ import annotations

import logging

from patientpulse import settings
from patientpulse.analytics.engine import AnalyticsEngine
from patientpulse.analytics.scheduler import RiskRefreshScheduler
from patientpulse.analytics.store import JsonFileRecordStore, RecordStore

logger = logging.getLogger("analytics.setup")

# Module-level singletons (set during initialize)
_engine: AnalyticsEngine | None = None
_scheduler: RiskRefreshScheduler | None = None


async def initialize_analytics(
    store: RecordStore | None = None,
    start_scheduler: bool = True,
) -> AnalyticsEngine:
    """
    Build the engine (and optionally start the refresh loop).

    Returns the AnalyticsEngine instance.
    """
    global _engine, _scheduler

    logger.info("Initializing PatientPulse analytics...")

    if store is None:
        store = JsonFileRecordStore(settings.RECORD_STORE_PATH)
        logger.info("Record store: %s", settings.RECORD_STORE_PATH)

    _engine = AnalyticsEngine(store, max_workers=settings.ANALYTICS_MAX_WORKERS)

    if start_scheduler:
        _scheduler = RiskRefreshScheduler(_engine)
        await _scheduler.start()

    return _engine


async def shutdown_analytics() -> None:
    """Gracefully stop background tasks."""
    global _scheduler
    if _scheduler:
        await _scheduler.stop()
        _scheduler = None
    logger.info("Analytics shutdown complete")


def get_engine() -> AnalyticsEngine | None:
    return _engine


def get_scheduler() -> RiskRefreshScheduler | None:
    return _scheduler
