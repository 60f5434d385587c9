"""Shared endpoint dependencies"""
from datetime import date

from fastapi import HTTPException

from timelink.config import settings
from timelink.dates import DateRange
from timelink.services import JiraClient, MirrorStore, Reconciler, TogglClient


def get_store() -> MirrorStore:
    return MirrorStore()


async def get_reconciler():
    """Reconciler bound to the configured remote accounts"""
    try:
        toggl = TogglClient.from_settings()
    except ValueError as e:
        # Missing Toggl credentials
        raise HTTPException(status_code=503, detail=str(e))
    async with toggl:
        try:
            jira = JiraClient.from_settings()
        except ValueError as e:
            raise HTTPException(status_code=503, detail=str(e))
        async with jira:
            yield Reconciler(
                MirrorStore(),
                toggl.fetch_detailed_report,
                jira.fetch_issue_by_key,
                batch_size=settings.resolve_batch_size,
            )


def parse_range(since: date | None, until: date | None) -> DateRange | None:
    if since is None and until is None:
        return None
    if since is None or until is None:
        raise HTTPException(status_code=400, detail="Both 'since' and 'until' are required")
    try:
        return DateRange.from_values(since, until)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
