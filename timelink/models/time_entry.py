"""Toggl time entry model"""
from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, String

from timelink.models.base import Base
from timelink.models.issue import utcnow


class TimeEntry(Base):
    """Time entry pulled from a Toggl detailed report"""

    __tablename__ = "time_entries"

    # Toggl's entry id
    id = Column(BigInteger, primary_key=True, autoincrement=False)

    description = Column(String, nullable=True)
    user_name = Column(String, nullable=True)
    project_name = Column(String, nullable=True)

    # UTC, tz-naive
    start = Column(DateTime, nullable=False, index=True)
    end = Column(DateTime, nullable=True)
    duration_seconds = Column(Integer, nullable=True)

    # Issue key parsed from the description; issue_id once resolved
    issue_key = Column(String, nullable=True, index=True)
    issue_id = Column(Integer, ForeignKey("issues.id"), nullable=True, index=True)
    # Set when issue_key never resolved upstream; excluded from further lookups
    bad_issue_key = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<TimeEntry(id={self.id}, issue_key='{self.issue_key}', issue_id={self.issue_id})>"
