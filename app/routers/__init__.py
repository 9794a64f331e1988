# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - bowls.py: Bowl creation, gallery, editing and deletion
# - images.py: Adding, deleting and reordering a bowl's photos
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import bowls
from . import images

__all__ = [
    "health",
    "bowls",
    "images",
]
