"""API routes"""

from timelink.api import dashboard, issues, sync

__all__ = ["sync", "issues", "dashboard"]
