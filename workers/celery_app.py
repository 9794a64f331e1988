# =============================================================================
# workers/celery_app.py - Celery Application Configuration
# =============================================================================
# This module creates and configures the Celery application instance used
# for storage maintenance. The beat schedule in config.py runs the orphaned
# blob purge periodically.
#
# Usage:
#   # Start worker and scheduler
#   celery -A workers.celery_app worker -B --loglevel=info
#
#   # Check status
#   celery -A workers.celery_app status
# =============================================================================

import logging

from celery import Celery
from celery.signals import task_failure, task_postrun, task_prerun
from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from app.config import get_settings  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _redact(url: str) -> str:
    """Drop credentials from a broker URL for logging."""
    return url.split("@")[-1] if "@" in url else url


def create_celery_app(redis_url: str | None = None) -> Celery:
    """
    Create and configure Celery application.

    Args:
        redis_url: Broker and result backend; defaults to REDIS_URL

    Returns:
        Configured Celery app instance
    """
    redis_url = redis_url or get_settings().REDIS_URL

    app = Celery(
        "bowl_tracker_worker",
        broker=redis_url,
        backend=redis_url,
        include=["workers.tasks"],
    )
    app.config_from_object("workers.config:CeleryConfig")

    logger.info(f"Celery app created with broker: {_redact(redis_url)}")
    return app


celery_app = create_celery_app()


@celery_app.task(name="workers.healthcheck")
def healthcheck():
    """Return "OK" when a worker picks the task up."""
    return "OK"


# =============================================================================
# Celery Signals (Lifecycle Hooks)
# =============================================================================

@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, **extra):
    logger.info(f"Task started: {task.name} [{task_id}]")


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, state=None, **extra):
    logger.info(f"Task completed: {task.name} [{task_id}] - State: {state}")


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, **extra):
    logger.error(f"Task failed: {sender.name} [{task_id}] - Error: {exception}")


if __name__ == "__main__":
    celery_app.start()
