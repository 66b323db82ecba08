"""Scheduled trend scanning and stale-draft monitoring."""

import asyncio
import logging
from datetime import datetime, timezone

from celery import Celery
from celery.schedules import crontab

from .models.settings import Settings

logger = logging.getLogger(__name__)

settings = Settings()

# Initialize Celery app
app = Celery("draftflow-scheduler")

# Configure Celery
app.conf.update(
    broker_url=settings.broker_url,
    result_backend=settings.broker_url,
    timezone="UTC",
    enable_utc=True,
    worker_redirect_stdouts_level=settings.log_level,
    beat_schedule={
        "scan-trends": {
            "task": "draftflow.scheduler.scan_trends_task",
            "schedule": crontab(hour=12, minute=0),  # Daily 12:00 UTC
        },
        "report-stale-drafts": {
            "task": "draftflow.scheduler.stale_drafts_task",
            "schedule": crontab(minute=30),  # Hourly
        },
    },
)


async def scan_and_store(settings: Settings) -> dict:
    """Scan every trend source once and persist what was found."""
    from .clients.trends import TrendScanner
    from .core.store import TrendStore

    trends = await TrendScanner.from_settings(settings).scan()
    added = TrendStore(settings.database_path).save_trends(trends)
    return {"scanned": len(trends), "added": added}


@app.task
def scan_trends_task() -> dict:
    """Celery task to scan trend sources."""
    logger.info("Starting scheduled trend scan")
    try:
        result = asyncio.run(scan_and_store(settings))
    except Exception as e:
        logger.error(f"Trend scan failed: {e}")
        return {
            "status": "error",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error": str(e),
        }

    logger.info(f"Trend scan finished: {result}")
    return {
        "status": "success",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **result,
    }


@app.task
def stale_drafts_task() -> dict:
    """Celery task that reports drafts stuck in generation."""
    from datetime import timedelta

    from .core.store import DraftStore

    stale = DraftStore(settings.database_path).stale_pending(
        timedelta(minutes=settings.stale_pending_minutes)
    )
    for draft in stale:
        logger.warning(
            f"Draft {draft.id} ({draft.pipeline}) pending since {draft.updated_at.isoformat()}"
        )

    return {
        "status": "warning" if stale else "success",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "stale": [draft.id for draft in stale],
    }
