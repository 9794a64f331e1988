#!/usr/bin/env python3
# =============================================================================
# scripts/start_worker.py - Celery Worker Entry Point
# =============================================================================
# Starts a Celery worker with the beat scheduler embedded, so the orphaned
# blob purge runs on its interval without a separate beat process.
#
# Usage:
#   python scripts/start_worker.py
#
#   # Or use Celery CLI directly
#   celery -A workers.celery_app worker -B -Q default,maintenance --loglevel=info
#
# Prerequisites:
#   - Redis must be running
#   - Environment variables must be set (.env file)
# =============================================================================

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workers.celery_app import celery_app  # noqa: E402
from workers.config import MAINTENANCE_QUEUE  # noqa: E402


def main():
    """Start the Celery worker."""
    print("=" * 60)
    print("Bowl Tracker Maintenance Worker")
    print("=" * 60)
    print()
    print(f"Queues: default, {MAINTENANCE_QUEUE}")
    print("Press Ctrl+C to stop")
    print()

    celery_app.worker_main([
        "worker",
        "--beat",
        "--loglevel=info",
        f"--queues=default,{MAINTENANCE_QUEUE}",
        "--concurrency=1",
    ])


if __name__ == "__main__":
    main()
