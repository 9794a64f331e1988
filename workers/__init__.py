# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and task definitions for
# background storage maintenance.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions (orphaned blob purge)
# - config.py: Worker-specific settings and the beat schedule
#
# Usage:
#   # Start worker with the scheduler embedded
#   celery -A workers.celery_app worker -B --loglevel=info
#
#   # Trigger a purge by hand (from API or a shell)
#   from workers.tasks import purge_orphaned_blobs
#   result = purge_orphaned_blobs.delay()
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
