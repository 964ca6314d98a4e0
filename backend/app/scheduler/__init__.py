"""
Scheduler initialization and management.

One AsyncIOScheduler per application, built in the startup hook around the
application's TieredCache. Jobs live in memory; they are re-created on every
start, so there is nothing to persist.
"""

from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from prpulse.cache import TieredCache
from prpulse.config import Settings
from prpulse.logging import get_logger

from . import jobs

logger = get_logger("backend.scheduler")

JOB_DEFINITIONS = {
    "sweep_hot_cache": {
        "func": jobs.sweep_hot_cache,
        "interval_setting": "cache_hot_sweep_seconds",
        "description": "Drop expired entries from the in-process cache tier",
    },
    "cleanup_durable_cache": {
        "func": jobs.cleanup_durable_cache,
        "interval_setting": "cache_sweep_interval_seconds",
        "description": "Delete expired rows from the durable cache tier",
    },
}


def build_scheduler(cache: TieredCache, settings: Settings) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    for job_id, definition in JOB_DEFINITIONS.items():
        scheduler.add_job(
            definition["func"],
            IntervalTrigger(seconds=getattr(settings, definition["interval_setting"])),
            args=[cache],
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=30,
        )
    return scheduler


def start_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Start on the running event loop."""
    if scheduler.running:
        return
    scheduler.start()
    logger.info("scheduler_started", jobs=len(scheduler.get_jobs()))


def shutdown_scheduler(scheduler: AsyncIOScheduler) -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


def list_jobs(scheduler: AsyncIOScheduler) -> list[dict[str, Any]]:
    items = []
    for job in scheduler.get_jobs():
        next_run_time = getattr(job, "next_run_time", None)
        items.append(
            {
                "id": job.id,
                "next_run_time": next_run_time.isoformat() if next_run_time else None,
                "trigger": str(job.trigger),
                "description": JOB_DEFINITIONS.get(job.id, {}).get("description"),
            }
        )
    return items
