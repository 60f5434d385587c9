"""Jira REST API client"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from timelink.config import settings
from timelink.services.http_client import RemoteApiError, RemoteClient

logger = logging.getLogger(__name__)

ROADMAP_LABEL = "roadmap"


class JiraApiError(RemoteApiError):
    service = "Jira"


def _truthy_field(value: Any) -> bool:
    """Interpret a Jira custom field value as a flag (checkbox, select or bool)."""
    if isinstance(value, list):
        return any(_truthy_field(v) for v in value)
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, str):
        return value.strip().lower() in {"yes", "true", "1", "y", "roadmap"}
    return bool(value)


def issue_from_payload(
    payload: Dict[str, Any],
    *,
    epic_link_field: Optional[str] = None,
    roadmap_field: Optional[str] = None,
) -> Dict[str, Any]:
    """Normalize a Jira issue document onto Issue column values."""
    fields = payload.get("fields") or {}
    parent = fields.get("parent") or {}
    epic_key = fields.get(epic_link_field) if epic_link_field else None
    labels = [str(label).lower() for label in (fields.get("labels") or [])]
    is_roadmap = ROADMAP_LABEL in labels
    if roadmap_field and not is_roadmap:
        is_roadmap = _truthy_field(fields.get(roadmap_field))
    return {
        "id": int(payload["id"]),
        "key": payload["key"],
        "summary": fields.get("summary"),
        "issue_type": (fields.get("issuetype") or {}).get("name"),
        "status": (fields.get("status") or {}).get("name"),
        "epic_key": epic_key if isinstance(epic_key, str) and epic_key else None,
        "parent_key": parent.get("key"),
        "is_roadmap_item": is_roadmap,
    }


class JiraClient(RemoteClient):
    """Read-only access to Jira issues"""

    error_class = JiraApiError

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        *,
        epic_link_field: Optional[str] = None,
        roadmap_field: Optional[str] = None,
        **kwargs,
    ):
        if not base_url or not email or not api_token:
            raise ValueError("Jira base url, email and api token are required")
        super().__init__(base_url, auth=(email, api_token), **kwargs)
        self.epic_link_field = epic_link_field
        self.roadmap_field = roadmap_field

    @classmethod
    def from_settings(cls) -> "JiraClient":
        return cls(
            settings.jira_base_url,
            settings.jira_email,
            settings.jira_api_token,
            epic_link_field=settings.jira_epic_link_field,
            roadmap_field=settings.jira_roadmap_field,
            timeout=settings.http_timeout_seconds,
        )

    def _requested_fields(self) -> str:
        fields = ["summary", "issuetype", "status", "parent", "labels"]
        for extra in (self.epic_link_field, self.roadmap_field):
            if extra:
                fields.append(extra)
        return ",".join(fields)

    async def fetch_issue_by_key(self, key: str) -> Optional[Dict[str, Any]]:
        """Get an issue by key, returning None when Jira does not know it."""
        try:
            payload = await self.get_json(
                f"/rest/api/2/issue/{quote(key, safe='')}",
                params={"fields": self._requested_fields()},
            )
        except JiraApiError as e:
            if e.status_code == 404:
                return None
            raise
        return issue_from_payload(
            payload,
            epic_link_field=self.epic_link_field,
            roadmap_field=self.roadmap_field,
        )
