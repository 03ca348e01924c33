from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from celery import Celery
from celery.signals import worker_ready, setup_logging
from buspos.core.config import settings


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
    "buspos",
    broker=_redis_url,
    backend=_redis_url,
    include=["buspos.tasks.jobs"],
)

celery.conf.timezone = settings.CELERY_TIMEZONE


@setup_logging.connect
def on_setup_logging(**kwargs):
    from buspos.core.logging import configure_logging
    configure_logging()


# Reconcile once at worker start so drift left by a crash is repaired before the first beat tick
@worker_ready.connect
def on_worker_ready(sender, **kwargs):
    from buspos.tasks.jobs import reconcile_available_seats
    reconcile_available_seats.delay()

celery.conf.beat_schedule = {
    "reconcile-available-seats-every-10-minutes": {
        "task": "buspos.tasks.jobs.reconcile_available_seats",
        "schedule": 600.0,
    },
    "complete-finished-trips-every-15-minutes": {
        "task": "buspos.tasks.jobs.complete_finished_trips",
        "schedule": 900.0,
    },
}
