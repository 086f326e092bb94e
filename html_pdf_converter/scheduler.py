"""APScheduler: expires idle sessions and their temp files."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from html_pdf_converter.services.sessions import SessionStore

logger = logging.getLogger(__name__)


def build_scheduler(store: SessionStore, interval_minutes: int = 5) -> AsyncIOScheduler:
    """Scheduler with a single job sweeping ``store`` every ``interval_minutes``."""
    scheduler = AsyncIOScheduler()

    async def expire_sessions():
        try:
            store.sweep()
        except Exception as e:
            logger.error("Session cleanup failed: %s", e)

    scheduler.add_job(expire_sessions, "interval", minutes=interval_minutes, id="expire_sessions")
    return scheduler
