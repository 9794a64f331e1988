# =============================================================================
# workers/config.py - Celery Worker Configuration
# =============================================================================
# Settings specific to Celery workers, including the beat schedule that
# purges orphaned storage objects.
# =============================================================================

from app.config import settings

PURGE_TASK_NAME = "workers.tasks.purge_orphaned_blobs"
MAINTENANCE_QUEUE = "maintenance"


class CeleryConfig:
    """
    Celery configuration settings.

    These are applied to the Celery app via app.config_from_object().
    """

    broker_url = settings.REDIS_URL
    result_backend = settings.REDIS_URL

    # -------------------------------------------------------------------------
    # Task Settings
    # -------------------------------------------------------------------------

    # Acknowledge after completion so a crashed purge is retried
    task_acks_late = True
    worker_prefetch_multiplier = 1

    # Purge results are only interesting for a short while
    result_expires = 3600

    task_time_limit = 600
    task_soft_time_limit = 540

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]

    # -------------------------------------------------------------------------
    # Task Routing
    # -------------------------------------------------------------------------

    task_queues = {
        "default": {
            "exchange": "default",
            "routing_key": "default",
        },
        MAINTENANCE_QUEUE: {
            "exchange": MAINTENANCE_QUEUE,
            "routing_key": MAINTENANCE_QUEUE,
        },
    }

    task_routes = {
        PURGE_TASK_NAME: {"queue": MAINTENANCE_QUEUE},
    }

    task_default_queue = "default"

    # -------------------------------------------------------------------------
    # Schedule
    # -------------------------------------------------------------------------

    beat_schedule = {
        "purge-orphaned-blobs": {
            "task": PURGE_TASK_NAME,
            "schedule": settings.ORPHAN_PURGE_INTERVAL_MINUTES * 60,
            "options": {"queue": MAINTENANCE_QUEUE},
        },
    }

    timezone = "UTC"
    enable_utc = True
