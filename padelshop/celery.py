import os

from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "padelshop.settings")

app = Celery("padelshop")

# Load Celery settings from Django settings using the CELERY_ prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks.py in all installed apps.
app.autodiscover_tasks()

app.conf.beat_schedule = {
    # Sunday 03:00, the courier catalog rarely changes
    "refresh-district-catalog": {
        "task": "shipping.tasks.refresh_district_catalog",
        "schedule": crontab(minute=0, hour=3, day_of_week="sunday"),
    },
    "sync-delivery-statuses": {
        "task": "orders.tasks.sync_delivery_statuses",
        "schedule": crontab(minute=0, hour="*/2"),
    },
    "reconcile-deliveries": {
        "task": "orders.tasks.reconcile_deliveries",
        "schedule": crontab(minute=30, hour="*/6"),
    },
}
