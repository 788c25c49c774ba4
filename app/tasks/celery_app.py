from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from celery import Celery
from app.core.config import settings
from app.core.logging import configure_logging


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

configure_logging()

celery = Celery(
    "aerive_reservations",
    broker=_redis_url,
    backend=_redis_url,
    include=["app.tasks.jobs"],
)

celery.conf.timezone = settings.CELERY_TIMEZONE

celery.conf.beat_schedule = {
    "expire-holds": {
        "task": "app.tasks.jobs.expire_holds",
        "schedule": settings.EXPIRE_SWEEP_SECONDS,
    },
    "ledger-consistency-hourly": {
        "task": "app.tasks.jobs.check_ledger",
        "schedule": 3600.0,
    },
}
