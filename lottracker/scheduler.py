# lottracker/scheduler.py
import os
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from .tracking import TrackedLots
from .utils import logger

REFRESH_INTERVAL_MINUTES = int(os.getenv("REFRESH_INTERVAL_MINUTES", "0"))

async def refresh_tracked(tracked: TrackedLots):
    tracked.purge_expired()
    await tracked.refresh_all()

def build_scheduler(tracked: TrackedLots, minutes: int = REFRESH_INTERVAL_MINUTES) -> Optional[AsyncIOScheduler]:
    """Periodic refresh of tracked lots; None when the interval is 0."""
    if minutes <= 0:
        return None
    scheduler = AsyncIOScheduler()
    scheduler.add_job(refresh_tracked, 'interval', minutes=minutes, args=[tracked],
                      id="refresh-tracked-lots", max_instances=1, coalesce=True)
    logger.info("Scheduler configured: refreshing tracked lots every %d min", minutes)
    return scheduler
