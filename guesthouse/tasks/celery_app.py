from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from celery import Celery
from celery.signals import worker_ready
from guesthouse.core.config import settings
from guesthouse.core.logging import configure_logging, get_logger

logger = get_logger(__name__)


def broker_url(url: str) -> str:
    """Managed Redis (rediss://) needs ssl_cert_reqs on the URL or Celery refuses to start."""
    if not url or not url.strip().lower().startswith("rediss://"):
        return url
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)
    qs.setdefault("ssl_cert_reqs", ["CERT_NONE"])
    return urlunparse(parsed._replace(query=urlencode(qs, doseq=True)))


def beat_schedule() -> dict:
    return {
        "expire-pending-bookings": {
            "task": "guesthouse.tasks.jobs.expire_pending_bookings",
            "schedule": float(settings.HOLD_EXPIRY_INTERVAL_SECONDS),
        },
    }


celery = Celery(
    "guesthouse",
    broker=broker_url(settings.REDIS_URL),
    backend=broker_url(settings.REDIS_URL),
    include=["guesthouse.tasks.jobs"],
)
celery.conf.timezone = settings.TIMEZONE
celery.conf.beat_schedule = beat_schedule()


@worker_ready.connect
def on_worker_ready(sender, **kwargs):
    # holds may have lapsed while no worker was running
    configure_logging()
    from guesthouse.tasks.jobs import expire_pending_bookings
    logger.info("worker_ready", hold_minutes=settings.PENDING_HOLD_MINUTES)
    expire_pending_bookings.delay()
