"""Mirrored Jira issue model"""
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from timelink.models.base import Base

# Properties pushed from a parent/epic onto the issues that reference it.
PROPAGATED_FIELDS = ("is_roadmap_item",)

# Hierarchy relations an issue may declare: relation -> (key column, id column)
RELATIONS = {
    "epic": ("epic_key", "epic_id"),
    "parent": ("parent_key", "parent_id"),
}


def utcnow() -> datetime:
    """UTC 'now' as tz-naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Issue(Base):
    """Local mirror of a Jira issue (leaf, epic or parent)"""

    __tablename__ = "issues"

    # Jira's numeric issue id, not generated locally
    id = Column(Integer, primary_key=True, autoincrement=False)
    key = Column(String, unique=True, nullable=False, index=True)

    summary = Column(String, nullable=True)
    issue_type = Column(String, nullable=True)
    status = Column(String, nullable=True)

    # Hierarchy: key as declared upstream, id once linked locally
    epic_key = Column(String, nullable=True, index=True)
    epic_id = Column(Integer, ForeignKey("issues.id"), nullable=True, index=True)
    parent_key = Column(String, nullable=True, index=True)
    parent_id = Column(Integer, ForeignKey("issues.id"), nullable=True, index=True)

    # Propagated properties
    is_roadmap_item = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Issue(key='{self.key}', epic_id={self.epic_id}, parent_id={self.parent_id})>"
