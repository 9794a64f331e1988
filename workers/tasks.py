# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Defines background storage maintenance tasks.
#
# Tasks:
# - purge_orphaned_blobs: Remove storage objects recorded in the orphaned
#   blob ledger (left behind when a cleanup or rollback failed)
# =============================================================================

import logging
from typing import Any

from celery import shared_task

from app.config import get_settings
from core.services.storage_service import REMOVE_BATCH_SIZE, StorageService
from lib.supabase_client import SupabaseClient, SupabaseClientError

logger = logging.getLogger(__name__)


def purge_orphans(
    supabase: SupabaseClient,
    storage: StorageService,
    limit: int = REMOVE_BATCH_SIZE,
) -> dict[str, Any]:
    """
    Remove up to `limit` recorded orphans from storage and clear their
    ledger entries.

    Entries whose removal fails stay in the ledger for the next run.

    Returns:
        Dict with checked, purged and failed counts
    """
    rows = supabase.fetch_orphaned_blobs(limit=limit)
    if not rows:
        return {"checked": 0, "purged": 0, "failed": 0}

    failed_paths = set(storage.remove_many([row["path"] for row in rows]))
    cleared = [row["id"] for row in rows if row["path"] not in failed_paths]
    supabase.delete_orphaned_blobs(cleared)

    result = {
        "checked": len(rows),
        "purged": len(cleared),
        "failed": len(rows) - len(cleared),
    }
    logger.info(f"Orphan purge: {result}")
    return result


@shared_task(bind=True, name="workers.tasks.purge_orphaned_blobs")
def purge_orphaned_blobs(self, limit: int = REMOVE_BATCH_SIZE) -> dict[str, Any]:
    """
    Periodic purge of orphaned storage objects.

    Args:
        limit: Maximum ledger entries handled per run

    Returns:
        Dict with checked, purged and failed counts
    """
    settings = get_settings()
    supabase = SupabaseClient.from_settings(settings)
    storage = StorageService(supabase, settings)

    try:
        return purge_orphans(supabase, storage, limit=limit)
    except SupabaseClientError as e:
        logger.error(f"Orphan purge failed: {e}")
        raise self.retry(exc=e, countdown=60, max_retries=3)
