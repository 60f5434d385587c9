"""Application configuration"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Database
    database_url: str = "sqlite+aiosqlite:///./timelink.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Toggl (time tracking source)
    toggl_api_token: str | None = None
    toggl_workspace_id: int | None = None
    toggl_user_agent: str = "timelink"
    toggl_reports_url: str = "https://api.track.toggl.com/reports/api/v2"

    # Jira (issue tracker source)
    jira_base_url: str | None = None
    jira_email: str | None = None
    jira_api_token: str | None = None
    # Custom field holding the epic key ("Epic Link" on most Jira Cloud sites).
    jira_epic_link_field: str = "customfield_10014"
    # Custom field flagging roadmap items. If empty, only the "roadmap" label counts.
    jira_roadmap_field: str | None = None

    # Reconciliation
    # Remote lookups are made this many keys at a time; batches run one after another.
    resolve_batch_size: int = 10
    # Timezone used to interpret naive dates/datetimes (CLI and API inputs).
    timezone: str = "UTC"
    http_timeout_seconds: float = 30.0

    # Scheduler
    sync_enabled: bool = True
    sync_interval_minutes: int = 60
    sync_lookback_days: int = 7

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
