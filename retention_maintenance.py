"""Background retention maintenance loop.

Runs the detection cleanup once shortly after startup and then on a
fixed period for the lifetime of the API process. The runner is owned by
the FastAPI lifespan (``start()`` / ``stop()``); operators trigger an
immediate run through ``run_once()``, which shares the same cleanup path.

Scheduled and manual runs may overlap. Cleanup deletes by predicate, so
an overlapping run only repeats work that matches zero rows.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from config import get_config

logger = logging.getLogger(__name__)


class RetentionMaintenanceRunner:
    """Background loop that periodically applies the retention policy."""

    def __init__(
        self,
        initial_delay_seconds: Optional[float] = None,
        interval_seconds: Optional[float] = None,
    ):
        settings = get_config().retention
        self.initial_delay_seconds = (
            settings.initial_delay_seconds if initial_delay_seconds is None else initial_delay_seconds
        )
        self.interval_seconds = (
            settings.interval_seconds if interval_seconds is None else interval_seconds
        )
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._last_run_at: Optional[str] = None
        self._last_result: Optional[Dict[str, Any]] = None

    @staticmethod
    def is_enabled() -> bool:
        return get_config().retention.scheduler_enabled

    async def start(self) -> None:
        if self._running:
            logger.warning("Retention maintenance runner already running")
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Retention maintenance runner started (first run in %ss, then every %ss)",
            self.initial_delay_seconds, self.interval_seconds,
        )

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Retention maintenance runner stopped")

    def get_status(self) -> dict:
        return {
            "enabled": self.is_enabled(),
            "running": self._running,
            "last_run_at": self._last_run_at,
            "last_result": self._last_result,
            "initial_delay_seconds": self.initial_delay_seconds,
            "interval_seconds": self.interval_seconds,
        }

    async def run_once(self) -> Dict[str, Any]:
        """Run one cleanup in a worker thread and return its result."""
        from retention_policy import run_cleanup

        result = await asyncio.to_thread(run_cleanup)
        self._last_run_at = datetime.now(timezone.utc).isoformat()
        self._last_result = result
        return result

    async def _run_and_log(self, label: str) -> None:
        try:
            result = await self.run_once()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("%s cleanup raised unexpectedly: %s", label, e)
            return
        if result.get("error"):
            logger.warning("%s cleanup failed: %s", label, result["error"])
        else:
            logger.info(
                "%s cleanup completed: %d records deleted",
                label, result.get("deleted_count", 0),
            )

    async def _loop(self) -> None:
        try:
            await asyncio.sleep(self.initial_delay_seconds)
            await self._run_and_log("Initial")
            while self._running:
                await asyncio.sleep(self.interval_seconds)
                await self._run_and_log("Scheduled")
        except asyncio.CancelledError:
            pass


_runner: Optional[RetentionMaintenanceRunner] = None


def get_retention_maintenance_runner() -> RetentionMaintenanceRunner:
    global _runner
    if _runner is None:
        _runner = RetentionMaintenanceRunner()
    return _runner
