"""Persistence operations on the local mirror.

Every method runs in its own session and transaction, so callers may run
several of them concurrently.
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, insert, or_, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from timelink.models import Issue, SyncLog, TimeEntry
from timelink.models.issue import PROPAGATED_FIELDS, RELATIONS
from timelink.models.sync_log import ReconcileStage, SyncStatus

logger = logging.getLogger(__name__)

_ISSUE_COLUMNS = {c.name for c in Issue.__table__.columns}


def relation_columns(relation: str):
    """(key column, id column) of Issue for a hierarchy relation."""
    try:
        key_name, id_name = RELATIONS[relation]
    except KeyError:
        raise ValueError(f"Unknown relation '{relation}' (expected one of {sorted(RELATIONS)})")
    return getattr(Issue, key_name), getattr(Issue, id_name)


class MirrorStore:
    """Record-oriented access to time entries, issues and sync logs"""

    def __init__(self, sessionmaker: Optional[async_sessionmaker] = None):
        if sessionmaker is None:
            from timelink.models.base import SessionLocal

            sessionmaker = SessionLocal
        self.sessionmaker = sessionmaker

    # ------------------------------------------------------------------
    # Time entries
    # ------------------------------------------------------------------

    async def delete_entries_between(self, since: datetime, until: datetime) -> int:
        """Delete entries whose start lies in ``[since, until)`` (UTC tz-naive)."""
        async with self.sessionmaker() as db, db.begin():
            result = await db.execute(
                delete(TimeEntry).where(TimeEntry.start >= since, TimeEntry.start < until)
            )
            return result.rowcount or 0

    async def insert_entries(self, rows: List[Dict[str, Any]]) -> int:
        """Bulk-insert entries, replacing stored rows that carry the same ids."""
        if not rows:
            return 0
        async with self.sessionmaker() as db, db.begin():
            # An entry whose start moved out of the synced range is still stored under its id.
            await db.execute(delete(TimeEntry).where(TimeEntry.id.in_([row["id"] for row in rows])))
            await db.execute(insert(TimeEntry), rows)
        return len(rows)

    async def entries_with_unlinked_issue_key(self) -> List[TimeEntry]:
        """Entries carrying an issue key that is neither linked nor flagged bad."""
        async with self.sessionmaker() as db:
            result = await db.execute(
                select(TimeEntry)
                .where(
                    TimeEntry.issue_key.is_not(None),
                    TimeEntry.issue_id.is_(None),
                    TimeEntry.bad_issue_key.is_(False),
                )
                .order_by(TimeEntry.start, TimeEntry.id)
            )
            return list(result.scalars().all())

    async def set_entries_issue(self, entry_ids: Iterable[int], issue_id: int) -> int:
        return await self._update_entries(entry_ids, issue_id=issue_id)

    async def flag_entries_bad_issue_key(self, entry_ids: Iterable[int]) -> int:
        return await self._update_entries(entry_ids, bad_issue_key=True)

    async def clear_bad_issue_keys(self, issue_key: Optional[str] = None) -> int:
        """Make flagged entries eligible for issue resolution again."""
        stmt = update(TimeEntry).where(TimeEntry.bad_issue_key.is_(True))
        if issue_key:
            stmt = stmt.where(TimeEntry.issue_key == issue_key)
        async with self.sessionmaker() as db, db.begin():
            result = await db.execute(
                stmt.values(bad_issue_key=False).execution_options(synchronize_session=False)
            )
            return result.rowcount or 0

    async def _update_entries(self, entry_ids: Iterable[int], **values) -> int:
        ids = list(entry_ids)
        if not ids:
            return 0
        async with self.sessionmaker() as db, db.begin():
            result = await db.execute(
                update(TimeEntry)
                .where(TimeEntry.id.in_(ids))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount or 0

    async def list_entries(
        self,
        *,
        unlinked: Optional[bool] = None,
        bad_issue_key: Optional[bool] = None,
        limit: int = 100,
    ) -> List[TimeEntry]:
        stmt = select(TimeEntry).order_by(TimeEntry.start.desc()).limit(limit)
        if unlinked is not None:
            stmt = stmt.where(TimeEntry.issue_id.is_(None) if unlinked else TimeEntry.issue_id.is_not(None))
        if bad_issue_key is not None:
            stmt = stmt.where(TimeEntry.bad_issue_key.is_(bad_issue_key))
        async with self.sessionmaker() as db:
            return list((await db.execute(stmt)).scalars().all())

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    async def create_issue_if_missing(self, record: Dict[str, Any]) -> Tuple[int, bool]:
        """Persist a resolved remote issue unless one with its key or id exists.

        Returns ``(local id, created)``. A local issue matching the key wins over
        one matching the id.
        """
        async with self.sessionmaker() as db, db.begin():
            existing = (
                await db.execute(
                    select(Issue.id)
                    .where(or_(Issue.key == record["key"], Issue.id == record["id"]))
                    .order_by((Issue.key == record["key"]).desc())
                    .limit(1)
                )
            ).scalar()
            if existing is not None:
                if existing != record["id"]:
                    logger.warning(
                        f"Issue {record['key']} is mirrored as id={existing}, remote id is {record['id']}"
                    )
                return existing, False
            db.add(Issue(**{k: v for k, v in record.items() if k in _ISSUE_COLUMNS}))
        logger.info(f"Created issue {record['key']} (id={record['id']})")
        return record["id"], True

    async def issues_with_unlinked(self, relation: str) -> List[Issue]:
        """Issues declaring a ``relation`` key without the matching local link."""
        key_col, id_col = relation_columns(relation)
        async with self.sessionmaker() as db:
            result = await db.execute(
                select(Issue).where(key_col.is_not(None), id_col.is_(None)).order_by(Issue.id)
            )
            return list(result.scalars().all())

    async def set_issues_relation(self, issue_ids: Iterable[int], relation: str, target_id: int) -> int:
        _, id_col = relation_columns(relation)
        ids = list(issue_ids)
        if not ids:
            return 0
        async with self.sessionmaker() as db, db.begin():
            result = await db.execute(
                update(Issue)
                .where(Issue.id.in_(ids))
                .values({id_col.key: target_id})
                .execution_options(synchronize_session=False)
            )
            return result.rowcount or 0

    async def distinct_values(self, column) -> List[Any]:
        """Distinct non-null values of a mapped column."""
        async with self.sessionmaker() as db:
            result = await db.execute(select(column).where(column.is_not(None)).distinct())
            return [row[0] for row in result.all()]

    async def issues_by_ids(self, ids: Iterable[int]) -> List[Issue]:
        ids = list(ids)
        if not ids:
            return []
        async with self.sessionmaker() as db:
            result = await db.execute(select(Issue).where(Issue.id.in_(ids)).order_by(Issue.id))
            return list(result.scalars().all())

    async def update_issues_from_related(self, relation: str, related: Issue) -> int:
        """Copy ``related``'s propagated fields onto every issue pointing at it."""
        _, id_col = relation_columns(relation)
        values = {name: getattr(related, name) for name in PROPAGATED_FIELDS}
        async with self.sessionmaker() as db, db.begin():
            result = await db.execute(
                update(Issue)
                .where(id_col == related.id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount or 0

    async def get_issue_by_key(self, key: str) -> Optional[Issue]:
        async with self.sessionmaker() as db:
            return (await db.execute(select(Issue).where(Issue.key == key))).scalars().first()

    async def list_issues(self, *, limit: int = 100, roadmap_only: bool = False) -> List[Issue]:
        stmt = select(Issue).order_by(Issue.key).limit(limit)
        if roadmap_only:
            stmt = stmt.where(Issue.is_roadmap_item.is_(True))
        async with self.sessionmaker() as db:
            return list((await db.execute(stmt)).scalars().all())

    # ------------------------------------------------------------------
    # Sync logs
    # ------------------------------------------------------------------

    async def add_log(
        self,
        stage: ReconcileStage,
        status: SyncStatus,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        async with self.sessionmaker() as db, db.begin():
            db.add(
                SyncLog(
                    stage=stage,
                    status=status,
                    message=message,
                    details=json.dumps(details, default=str) if details is not None else None,
                )
            )

    async def list_logs(self, *, limit: int = 100, stage: Optional[ReconcileStage] = None) -> List[SyncLog]:
        stmt = select(SyncLog).order_by(SyncLog.created_at.desc(), SyncLog.id.desc()).limit(limit)
        if stage is not None:
            stmt = stmt.where(SyncLog.stage == stage)
        async with self.sessionmaker() as db:
            return list((await db.execute(stmt)).scalars().all())
