# =============================================================================
# tests/test_workers.py - Background Worker Tests
# =============================================================================
# Tests for the orphaned blob purge and the Celery wiring around it.
# The purge logic runs directly against the in-memory Supabase stand-in;
# no broker is needed.
# =============================================================================

from workers.config import MAINTENANCE_QUEUE, PURGE_TASK_NAME, CeleryConfig
from workers.tasks import purge_orphans


def seed_orphans(fake_supabase, paths: list[str], reason: str = "link_failed") -> None:
    for path in paths:
        fake_supabase.storage.objects[path] = {"data": b"x", "content_type": "image/jpeg"}
        fake_supabase.tables.setdefault("orphaned_blobs", []).append(
            fake_supabase.new_row("orphaned_blobs", {"path": path, "reason": reason, "bowl_id": None})
        )


class TestPurgeOrphans:
    """Tests for purge_orphans()."""

    def test_nothing_recorded(self, supabase, storage, fake_supabase):
        result = purge_orphans(supabase, storage)

        assert result == {"checked": 0, "purged": 0, "failed": 0}
        assert fake_supabase.storage.remove_calls == []

    def test_removes_objects_and_clears_ledger(self, supabase, storage, fake_supabase):
        paths = ["bowls/a/thumbnail.jpg", "bowls/a/medium.jpg"]
        seed_orphans(fake_supabase, paths)
        fake_supabase.storage.objects["bowls/keep/full.jpg"] = {"data": b"x", "content_type": "image/jpeg"}

        result = purge_orphans(supabase, storage)

        assert result == {"checked": 2, "purged": 2, "failed": 0}
        assert list(fake_supabase.storage.objects) == ["bowls/keep/full.jpg"]
        assert fake_supabase.rows("orphaned_blobs") == []

    def test_failed_removal_stays_in_ledger(self, supabase, storage, fake_supabase):
        seed_orphans(fake_supabase, ["bowls/a/full.jpg", "bowls/a/original.jpg"])
        fake_supabase.storage.fail_next_removes(1)

        result = purge_orphans(supabase, storage)

        assert result == {"checked": 2, "purged": 0, "failed": 2}
        assert len(fake_supabase.rows("orphaned_blobs")) == 2

    def test_respects_limit(self, supabase, storage, fake_supabase):
        seed_orphans(fake_supabase, [f"bowls/a/{i}.jpg" for i in range(5)])

        result = purge_orphans(supabase, storage, limit=3)

        assert result["checked"] == 3
        assert len(fake_supabase.rows("orphaned_blobs")) == 2


class TestCeleryConfig:
    """Tests for the worker schedule and routing."""

    def test_purge_is_scheduled(self, settings):
        entry = CeleryConfig.beat_schedule["purge-orphaned-blobs"]

        assert entry["task"] == PURGE_TASK_NAME
        assert entry["schedule"] == settings.ORPHAN_PURGE_INTERVAL_MINUTES * 60

    def test_purge_routed_to_maintenance_queue(self):
        assert CeleryConfig.task_routes[PURGE_TASK_NAME] == {"queue": MAINTENANCE_QUEUE}
