import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("tripdesk")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Provider bookings stuck between the provider and the local commit
    "reconcile-provider-bookings": {
        "task": "bookings.reconcile_provider_bookings",
        "schedule": crontab(minute="*/5"),
        "options": {"expires": 240},
    },
    # Unpaid cart bookings give their rooms back
    "expire-pending-bookings": {
        "task": "bookings.expire_pending_bookings",
        "schedule": crontab(minute="*"),
        "options": {"expires": 50},
    },
}

app.conf.timezone = "UTC"
