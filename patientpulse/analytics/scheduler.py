"""
Risk Refresh Scheduler — background loop that recomputes the whole roster
at a fixed interval and keeps the latest ranking in memory.

Features:
  - In-process asyncio loop (no external dependencies)
  - Scoring runs in the default executor so the event loop stays free
  - refresh_now() for on-demand recomputation
  - A failed refresh is logged and the previous snapshot is kept

The engine itself has no timers; this is the dashboard's polling cadence.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

from patientpulse import settings
from patientpulse.analytics.engine import AnalyticsEngine
from patientpulse.analytics.errors import ConfigurationError
from patientpulse.analytics.models import CombinedRiskResult

logger = logging.getLogger("analytics.scheduler")


class RiskRefreshScheduler:
    """
    Periodically recompute roster risk.

    Usage:
        scheduler = RiskRefreshScheduler(engine)
        await scheduler.start()
        ranked = scheduler.latest

    On shutdown:
        await scheduler.stop()
    """

    def __init__(
        self,
        engine: AnalyticsEngine,
        refresh_interval: float | None = None,
    ) -> None:
        if refresh_interval is None:
            refresh_interval = settings.ANALYTICS_REFRESH_INTERVAL
        if refresh_interval <= 0:
            raise ConfigurationError(
                f"refresh_interval must be positive, got {refresh_interval}"
            )
        self._engine = engine
        self._refresh_interval = refresh_interval
        self._latest: Optional[list[CombinedRiskResult]] = None
        self._last_refreshed: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def refresh_interval(self) -> float:
        return self._refresh_interval

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def latest(self) -> Optional[list[CombinedRiskResult]]:
        """Most recent roster ranking, or None before the first refresh."""
        return self._latest

    @property
    def last_refreshed(self) -> Optional[datetime]:
        return self._last_refreshed

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    async def start(self) -> None:
        """Start the refresh loop.  The first refresh runs immediately."""
        if self._running:
            logger.warning("RiskRefreshScheduler already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._refresh_loop())
        logger.info(
            "RiskRefreshScheduler started — refreshing every %ss",
            self._refresh_interval,
        )

    async def stop(self) -> None:
        """Stop the refresh loop."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("RiskRefreshScheduler stopped")

    async def refresh_now(self) -> list[CombinedRiskResult]:
        """Recompute the roster immediately and store it as the latest snapshot."""
        loop = asyncio.get_running_loop()
        now = self._engine.now()
        results = await loop.run_in_executor(None, self._engine.compute_roster_risk, now)
        self._latest = results
        self._last_refreshed = now
        self._last_error = None
        logger.info("Roster refreshed: %d patients", len(results))
        return results

    # ── Internal ──

    async def _refresh_loop(self) -> None:
        while self._running:
            try:
                await self.refresh_now()
            except asyncio.CancelledError:
                break
            except Exception as exc:
                self._last_error = str(exc)
                logger.error("Roster refresh failed: %s", exc, exc_info=True)

            try:
                await asyncio.sleep(self._refresh_interval)
            except asyncio.CancelledError:
                break
