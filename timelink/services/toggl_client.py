"""Toggl Reports API client"""
import logging
import re
from typing import Any, Dict, List, Optional

from timelink.config import settings
from timelink.dates import DateRange, to_utc
from timelink.services.http_client import RemoteApiError, RemoteClient

logger = logging.getLogger(__name__)

# Jira issue key embedded in free text, e.g. "AB-123 fix login"
ISSUE_KEY_RE = re.compile(r"\b([A-Z][A-Z0-9]+-\d+)\b")


class TogglApiError(RemoteApiError):
    service = "Toggl"


def extract_issue_key(description: Optional[str]) -> Optional[str]:
    """Return the first issue key found in a description, if any."""
    if not description:
        return None
    m = ISSUE_KEY_RE.search(description)
    return m.group(1) if m else None


def entry_from_report_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Map a detailed-report line item onto TimeEntry column values."""
    dur_ms = item.get("dur")
    return {
        "id": int(item["id"]),
        "description": item.get("description"),
        "user_name": item.get("user"),
        "project_name": item.get("project"),
        "start": to_utc(item["start"]),
        "end": to_utc(item.get("end")),
        "duration_seconds": int(dur_ms) // 1000 if dur_ms is not None else None,
        "issue_key": extract_issue_key(item.get("description")),
    }


class TogglClient(RemoteClient):
    """Read-only access to Toggl detailed reports"""

    error_class = TogglApiError

    def __init__(
        self,
        api_token: str,
        workspace_id: int,
        *,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        **kwargs,
    ):
        if not api_token or not workspace_id:
            raise ValueError("Toggl api token and workspace id are required")
        # Toggl takes the token as username with the literal password "api_token".
        super().__init__(base_url or settings.toggl_reports_url, auth=(api_token, "api_token"), **kwargs)
        self.workspace_id = workspace_id
        self.user_agent = user_agent or settings.toggl_user_agent

    @classmethod
    def from_settings(cls) -> "TogglClient":
        return cls(
            settings.toggl_api_token,
            settings.toggl_workspace_id,
            timeout=settings.http_timeout_seconds,
        )

    async def fetch_detailed_report(self, date_range: DateRange) -> List[Dict[str, Any]]:
        """Fetch every detailed-report line item for the range (all pages)."""
        since, until = date_range.report_dates()
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            payload = await self.get_json(
                "/details",
                params={
                    "workspace_id": self.workspace_id,
                    "user_agent": self.user_agent,
                    "since": since.isoformat(),
                    "until": until.isoformat(),
                    "page": page,
                },
            )
            data = payload.get("data") or []
            items.extend(data)
            total = int(payload.get("total_count") or 0)
            if not data or len(items) >= total:
                break
            page += 1
        logger.info(f"Fetched {len(items)} Toggl report items for {date_range}")
        return items
