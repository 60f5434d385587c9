"""Database models"""

from timelink.models.base import Base
from timelink.models.issue import Issue
from timelink.models.sync_log import SyncLog
from timelink.models.time_entry import TimeEntry

__all__ = [
    "Base",
    "Issue",
    "TimeEntry",
    "SyncLog",
]
