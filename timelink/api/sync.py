"""Reconciliation endpoints"""
import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from timelink.api.deps import get_reconciler, get_store, parse_range
from timelink.models.sync_log import ReconcileStage, SyncStatus
from timelink.services import MirrorStore, Reconciler
from timelink.services.http_client import RemoteApiError
from timelink.services.reconciler import parse_stages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


class SyncLogResponse(BaseModel):
    id: int
    stage: ReconcileStage
    status: SyncStatus
    message: Optional[str] = None
    details: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


async def _run(coro):
    """Await a stage, mapping failures onto HTTP errors"""
    try:
        return await coro
    except RemoteApiError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Reconciliation request failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/run")
async def run_pass(
    since: Optional[date] = None,
    until: Optional[date] = None,
    stages: Optional[str] = None,
    reconciler: Reconciler = Depends(get_reconciler),
):
    """Run a reconciliation pass (time entries are only synced when a range is given)"""
    date_range = parse_range(since, until)
    try:
        selected = parse_stages(stages)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return await _run(reconciler.run_pass(date_range, selected))


@router.post("/entries")
async def sync_entries(
    since: date,
    until: date,
    reconciler: Reconciler = Depends(get_reconciler),
):
    """Replace the time entries of a date range from Toggl"""
    date_range = parse_range(since, until)
    saved = await _run(reconciler.run_pass(date_range, [ReconcileStage.ENTRIES]))
    return {"saved": saved[ReconcileStage.ENTRIES.value]}


@router.post("/{stage}")
async def run_stage(stage: ReconcileStage, reconciler: Reconciler = Depends(get_reconciler)):
    """Run a single linking/propagation stage"""
    if stage == ReconcileStage.ENTRIES:
        raise HTTPException(status_code=400, detail="Use /api/sync/entries with a date range")
    result = await _run(reconciler.run_pass(None, [stage]))
    return result[stage.value]


@router.get("/logs", response_model=List[SyncLogResponse])
async def list_sync_logs(
    limit: int = 100,
    stage: Optional[ReconcileStage] = None,
    store: MirrorStore = Depends(get_store),
):
    """List recent stage runs"""
    return await store.list_logs(limit=limit, stage=stage)
