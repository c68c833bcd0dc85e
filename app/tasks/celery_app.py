from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from celery import Celery
from app.core.config import settings


def _redis_url_for_celery(url: str) -> str:
    """Celery requires ssl_cert_reqs for rediss:// (e.g. Upstash TLS)."""
    if not url or not url.strip().lower().startswith("rediss://"):
        return url
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)
    if "ssl_cert_reqs" not in qs:
        qs["ssl_cert_reqs"] = ["CERT_NONE"]
        new_query = urlencode(qs, doseq=True)
        return urlunparse(parsed._replace(query=new_query))
    return url


_redis_url = _redis_url_for_celery(settings.REDIS_URL)

celery = Celery(
    "nawabus",
    broker=_redis_url,
    backend=_redis_url,
    include=["app.tasks.jobs"],
)

celery.conf.timezone = "Africa/Luanda"

# Seat counts drift when a post-booking recompute fails; these jobs close the gap.
celery.conf.beat_schedule = {
    "reconcile-seat-counts": {
        "task": "app.tasks.jobs.reconcile_seat_counts",
        "schedule": settings.RECONCILE_INTERVAL_SECONDS,
    },
    "reconcile-paid-tickets": {
        "task": "app.tasks.jobs.reconcile_paid_tickets",
        "schedule": settings.RECONCILE_INTERVAL_SECONDS,
    },
}
