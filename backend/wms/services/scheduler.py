"""
Scheduled jobs
APScheduler drives the periodic low-stock sweep
"""

import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from wms.core.config import settings
from wms.db.session import SessionLocal
from wms.services.notifications import sweep_low_stock

logger = logging.getLogger(__name__)

scheduler: Optional[AsyncIOScheduler] = None


async def low_stock_job():
    """Run one low-stock sweep in its own session"""
    try:
        async with SessionLocal() as db:
            reported = await sweep_low_stock(db)
        if reported:
            logger.info(f"Low-stock sweep reported {reported} materials")
    except Exception:
        logger.exception("Low-stock sweep failed")


def init_scheduler():
    """Create and start the scheduler"""
    global scheduler

    if not settings.LOW_STOCK_SCAN_ENABLED:
        logger.info("Low-stock sweep disabled")
        return

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        low_stock_job,
        trigger=IntervalTrigger(minutes=settings.LOW_STOCK_SCAN_INTERVAL_MINUTES),
        id="low_stock_sweep",
        name="Low-stock sweep",
        replace_existing=True
    )

    scheduler.start()
    logger.info(f"Scheduler started - low-stock sweep every {settings.LOW_STOCK_SCAN_INTERVAL_MINUTES} minutes")


def shutdown_scheduler():
    global scheduler
    if scheduler:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Scheduler stopped")


def get_scheduler_status() -> dict:
    if not scheduler:
        return {
            "enabled": False,
            "running": False,
            "jobs": []
        }

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None
        })

    return {
        "enabled": settings.LOW_STOCK_SCAN_ENABLED,
        "running": scheduler.running,
        "jobs": jobs
    }
