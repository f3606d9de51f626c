"""
Order Timing - Celery tasks (retention purge)

The service process is the single writer of the timing queue, so the beat
task asks it to purge over HTTP instead of touching the store directly.
"""
import logging

import httpx

from app.core.celery_app import celery_app
from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


def _request_purge(client: httpx.Client) -> list[str]:
    r = client.post("/timings/purge")
    r.raise_for_status()
    return r.json().get("purged", [])


@celery_app.task(
    name="purge_expired_timings",
    bind=True,
    max_retries=3,
    default_retry_delay=30,
)
def purge_expired_timings(self) -> list[str]:
    """Remove terminal timing records older than the retention window."""
    try:
        with httpx.Client(base_url=settings.ORDER_TIMING_URL, timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
            purged = _request_purge(client)
    except httpx.HTTPError as exc:
        logger.warning("Retention purge request failed: %s", exc)
        raise self.retry(exc=exc)

    logger.info("Retention purge removed %d timing records", len(purged))
    return purged
