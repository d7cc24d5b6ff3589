from celery import Celery
from celery.schedules import crontab

from dcpayroll.core.config import settings

celery_app = Celery(
    "dcpayroll",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["dcpayroll.tasks.wage_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.TIMEZONE,
    enable_utc=True,
    beat_schedule={
        # Daily at 02:00: detect discrepancies for the trailing period
        "nightly-discrepancy-detection": {
            "task": "dcpayroll.tasks.wage_tasks.detect_discrepancies_nightly",
            "schedule": crontab(hour=2, minute=0),
        },
        # Daily at 02:30: refresh late records from the same scans
        "nightly-late-sync": {
            "task": "dcpayroll.tasks.wage_tasks.sync_late_records_nightly",
            "schedule": crontab(hour=2, minute=30),
        },
    },
)
