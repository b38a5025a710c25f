"""
PatientPulse Analytics Server — Application Factory
"""

import os
import time
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# ── 1. Configure logging ──
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("patientpulse-server")

_startup_time = time.time()
logger.info("Server initialization started...")

# ── 2. Create FastAPI app ──
app = FastAPI(title="PatientPulse Analytics Server")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── 3. Register routers ──
from patientpulse.routers import analytics_api, health

app.include_router(health.router)
app.include_router(analytics_api.router)


# ── 4. Startup / shutdown ──
@app.on_event("startup")
async def startup_event():
    """Log startup information and wire the analytics engine"""
    port = os.environ.get("PORT", "8080")
    logger.info("=" * 60)
    logger.info("PatientPulse Analytics Server Starting")
    logger.info(f"Listening on port: {port}")

    # Dashboard stays up without background refresh; endpoints compute on demand
    try:
        from patientpulse.analytics.setup import initialize_analytics
        await initialize_analytics()
        logger.info("Analytics engine initialized")
    except Exception as e:
        logger.warning(f"Analytics failed to start — requests will return 503: {e}")

    logger.info(f"Total init time: {time.time() - _startup_time:.2f}s")
    logger.info("=" * 60)


@app.on_event("shutdown")
async def shutdown_event():
    from patientpulse.analytics.setup import shutdown_analytics
    await shutdown_analytics()
