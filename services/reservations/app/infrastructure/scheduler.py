"""Server-owned schedule for the timeout sweeper."""
import asyncio
from datetime import timedelta
from typing import Any, Dict

from app.application.sweeper import TimeoutSweeper
from app.domain.lifecycle import utcnow
from app.infrastructure.db import SessionLocal
from shared.core import HealthStatus, get_logger

logger = get_logger(__name__)

default_sweeper = TimeoutSweeper(SessionLocal)


def get_sweeper() -> TimeoutSweeper:
    return default_sweeper


async def run_sweeper(sweeper: TimeoutSweeper, interval_seconds: float, shutdown_event: asyncio.Event) -> None:
    """
    Sweep every ``interval_seconds`` until ``shutdown_event`` is set.

    Runs with no client attached; a failed pass is logged and the loop
    keeps going.
    """
    logger.info(f"Timeout sweeper started, interval {interval_seconds}s")
    while not shutdown_event.is_set():
        try:
            await asyncio.to_thread(sweeper.sweep)
        except Exception:
            logger.exception("Sweep run failed")
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass
    logger.info("Timeout sweeper stopped")


def sweeper_probe(sweeper: TimeoutSweeper, interval_seconds: float) -> Dict[str, Any]:
    """Readiness check: warn when no sweep has completed for three intervals."""
    last_run_at = sweeper.last_run_at
    if last_run_at is None:
        return {"status": HealthStatus.WARN.value, "componentType": "scheduler", "output": "no sweep run yet"}
    lag = utcnow() - last_run_at
    status = HealthStatus.PASS if lag <= timedelta(seconds=3 * interval_seconds) else HealthStatus.WARN
    return {
        "status": status.value,
        "componentType": "scheduler",
        "observedValue": f"{lag.total_seconds():.0f}",
        "observedUnit": "s",
    }
