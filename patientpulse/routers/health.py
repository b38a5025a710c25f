from fastapi import APIRouter

from patientpulse import settings

router = APIRouter()


@router.get("/")
async def root():
    return {
        "status": "PatientPulse Analytics Server is Running",
        "endpoints": {
            "roster": "/api/analytics/roster",
            "summary": "/api/analytics/summary",
            "patient": "/api/analytics/patients/{patient_id}",
            "deterioration": "/api/analytics/patients/{patient_id}/deterioration",
            "engagement": "/api/analytics/patients/{patient_id}/engagement",
        }
    }


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    from patientpulse.analytics.setup import get_engine, get_scheduler

    scheduler = get_scheduler()
    return {
        "status": "healthy",
        "service": "patientpulse-analytics",
        "port": settings.PORT,
        "engine_ready": get_engine() is not None,
        "last_refreshed": scheduler.last_refreshed if scheduler else None,
        "last_refresh_error": scheduler.last_error if scheduler else None,
    }
