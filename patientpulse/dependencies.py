"""
Shared FastAPI dependencies used across routers.
"""

import logging

from fastapi import HTTPException

logger = logging.getLogger("patientpulse-server")


def get_engine():
    """The AnalyticsEngine singleton (initialized during startup)."""
    from patientpulse.analytics.setup import get_engine as _get_engine
    engine = _get_engine()
    if engine is None:
        logger.error("Analytics engine requested before initialization")
        raise HTTPException(status_code=503, detail="Analytics engine not initialized")
    return engine


def get_scheduler():
    """The refresh scheduler, or None when running without one."""
    from patientpulse.analytics.setup import get_scheduler as _get_scheduler
    return _get_scheduler()
