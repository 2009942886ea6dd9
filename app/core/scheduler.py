"""Background job scheduler for playlist outbox retries."""
import logging

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlmodel import Session

from app.core.config import settings
from app.core.database import engine
from app.spotify.outbox import drain_outbox
from app.spotify.token import SpotifyTokenCache

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def outbox_job(cache: SpotifyTokenCache):
    """Background outbox retry job."""
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as http:
            with Session(engine) as session:
                await drain_outbox(session, http, cache)
    except Exception as e:
        logger.error(f"Outbox retry failed: {e}")


def start_scheduler(cache: SpotifyTokenCache):
    """Start the background scheduler."""
    scheduler.add_job(
        outbox_job,
        trigger=IntervalTrigger(minutes=settings.outbox_retry_interval_minutes),
        args=[cache],
        id="playlist_outbox",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started, retrying playlist outbox every "
        f"{settings.outbox_retry_interval_minutes} minutes"
    )


def shutdown_scheduler():
    """Graceful shutdown."""
    scheduler.shutdown(wait=False)
    logger.info("Scheduler shut down")
