"""Sync log model"""
from sqlalchemy import Column, DateTime, Enum, Integer, Text
import enum

from timelink.models.base import Base
from timelink.models.issue import utcnow


class SyncStatus(str, enum.Enum):
    """Sync status enumeration"""
    SUCCESS = "success"
    FAILED = "failed"


class ReconcileStage(str, enum.Enum):
    """Reconciliation stages, in pipeline order"""
    ENTRIES = "entries"
    ISSUES = "issues"
    EPICS = "epics"
    PARENTS = "parents"
    PROPERTIES = "properties"


class SyncLog(Base):
    """Log of reconciliation stage runs"""

    __tablename__ = "sync_logs"

    id = Column(Integer, primary_key=True, index=True)

    stage = Column(Enum(ReconcileStage), nullable=False, index=True)
    status = Column(Enum(SyncStatus), nullable=False)
    message = Column(Text, nullable=True)
    details = Column(Text, nullable=True)  # JSON stage stats

    created_at = Column(DateTime, default=utcnow, index=True)

    def __repr__(self):
        return f"<SyncLog(stage={self.stage}, status={self.status})>"
