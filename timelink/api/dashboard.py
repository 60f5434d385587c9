"""Dashboard and statistics endpoints"""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from timelink.models import Issue, SyncLog, TimeEntry
from timelink.models.base import get_db
from timelink.models.sync_log import ReconcileStage, SyncStatus

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


async def _count(db: AsyncSession, model, *criteria) -> int:
    return (await db.execute(select(func.count()).select_from(model).where(*criteria))).scalar_one()


@router.get("/stats")
async def get_dashboard_stats(db: AsyncSession = Depends(get_db)):
    """Get dashboard statistics"""
    # Mirror state
    total_entries = await _count(db, TimeEntry)
    linked_entries = await _count(db, TimeEntry, TimeEntry.issue_id.is_not(None))
    flagged_entries = await _count(db, TimeEntry, TimeEntry.bad_issue_key.is_(True))
    total_issues = await _count(db, Issue)
    unlinked_epics = await _count(db, Issue, Issue.epic_key.is_not(None), Issue.epic_id.is_(None))
    unlinked_parents = await _count(db, Issue, Issue.parent_key.is_not(None), Issue.parent_id.is_(None))

    # Recent stage runs (last 24 hours)
    last_24h = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(hours=24)
    recent_successes = await _count(
        db, SyncLog, SyncLog.created_at >= last_24h, SyncLog.status == SyncStatus.SUCCESS
    )
    recent_failures = await _count(
        db, SyncLog, SyncLog.created_at >= last_24h, SyncLog.status == SyncStatus.FAILED
    )

    # Last run per stage
    stage_stats = []
    for stage in ReconcileStage:
        last_log = (
            await db.execute(
                select(SyncLog).where(SyncLog.stage == stage).order_by(SyncLog.created_at.desc()).limit(1)
            )
        ).scalars().first()
        stage_stats.append(
            {
                "stage": stage.value,
                "last_run_at": last_log.created_at if last_log else None,
                "last_status": last_log.status.value if last_log else None,
            }
        )

    return {
        "total_entries": total_entries,
        "linked_entries": linked_entries,
        "unlinked_entries": total_entries - linked_entries - flagged_entries,
        "flagged_entries": flagged_entries,
        "total_issues": total_issues,
        "unlinked_epics": unlinked_epics,
        "unlinked_parents": unlinked_parents,
        "recent_successes": recent_successes,
        "recent_failures": recent_failures,
        "stages": stage_stats,
    }
