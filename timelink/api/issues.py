"""Mirror views: issues and time entries"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from timelink.api.deps import get_store
from timelink.services import MirrorStore

router = APIRouter(prefix="/api", tags=["mirror"])


class IssueResponse(BaseModel):
    id: int
    key: str
    summary: Optional[str] = None
    issue_type: Optional[str] = None
    status: Optional[str] = None
    epic_key: Optional[str] = None
    epic_id: Optional[int] = None
    parent_key: Optional[str] = None
    parent_id: Optional[int] = None
    is_roadmap_item: bool

    class Config:
        from_attributes = True


class TimeEntryResponse(BaseModel):
    id: int
    description: Optional[str] = None
    user_name: Optional[str] = None
    project_name: Optional[str] = None
    start: datetime
    end: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    issue_key: Optional[str] = None
    issue_id: Optional[int] = None
    bad_issue_key: bool

    class Config:
        from_attributes = True


@router.get("/issues", response_model=List[IssueResponse])
async def list_issues(limit: int = 100, roadmap_only: bool = False, store: MirrorStore = Depends(get_store)):
    """List mirrored issues"""
    return await store.list_issues(limit=limit, roadmap_only=roadmap_only)


@router.get("/issues/{key}", response_model=IssueResponse)
async def get_issue(key: str, store: MirrorStore = Depends(get_store)):
    """Get a mirrored issue by key"""
    issue = await store.get_issue_by_key(key)
    if not issue:
        raise HTTPException(status_code=404, detail="Issue not found")
    return issue


@router.get("/entries", response_model=List[TimeEntryResponse])
async def list_entries(
    unlinked: Optional[bool] = None,
    bad_issue_key: Optional[bool] = None,
    limit: int = 100,
    store: MirrorStore = Depends(get_store),
):
    """List time entries, newest first"""
    return await store.list_entries(unlinked=unlinked, bad_issue_key=bad_issue_key, limit=limit)


@router.post("/entries/clear-bad-keys")
async def clear_bad_keys(issue_key: Optional[str] = None, store: MirrorStore = Depends(get_store)):
    """Clear the bad-issue-key flag so those entries are looked up again"""
    cleared = await store.clear_bad_issue_keys(issue_key)
    return {"cleared": cleared}
