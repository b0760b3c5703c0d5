from celery.schedules import crontab
from decouple import config

from .base import DEBUG, REDIS_HOST, REDIS_PORT, TIME_ZONE

CELERY_REDIS_DB = config("CELERY_REDIS_DB", default=0, cast=int)

# CELERY
CELERY_BROKER_URL = config("CELERY_BROKER_URL", default=f"redis://{REDIS_HOST}:{REDIS_PORT}/{CELERY_REDIS_DB}")
CELERY_ACCEPT_CONTENT = ["application/json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TASK_IGNORE_RESULT = True
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_ALWAYS_EAGER = config("CELERY_TASK_ALWAYS_EAGER", cast=bool, default=DEBUG)
CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP = True

# Task execution settings
CELERY_TASK_TIME_LIMIT = 300
CELERY_TASK_SOFT_TIME_LIMIT = 240
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_TASK_ACKS_LATE = True

CELERY_BEAT_SCHEDULE = {
    "complete-finished-events": {
        "task": "events.tasks.complete_finished_events",
        "schedule": crontab(minute="*/15"),
    },
    "cleanup-email-logs": {
        "task": "common.tasks.cleanup_email_logs",
        "schedule": crontab(hour=3, minute=0),
    },
    "flush-expired-tokens": {
        "task": "api.tasks.flush_expired_tokens",
        "schedule": crontab(hour=4, minute=0),
    },
}
