"""Services"""

from contextlib import asynccontextmanager

from timelink.config import settings
from timelink.services.jira_client import JiraClient
from timelink.services.reconciler import Reconciler
from timelink.services.store import MirrorStore
from timelink.services.toggl_client import TogglClient


@asynccontextmanager
async def open_reconciler(store: MirrorStore = None):
    """Reconciler wired to the configured Toggl and Jira accounts."""
    async with TogglClient.from_settings() as toggl, JiraClient.from_settings() as jira:
        yield Reconciler(
            store or MirrorStore(),
            toggl.fetch_detailed_report,
            jira.fetch_issue_by_key,
            batch_size=settings.resolve_batch_size,
        )


__all__ = ["JiraClient", "MirrorStore", "Reconciler", "TogglClient", "open_reconciler"]
