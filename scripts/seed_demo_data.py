"""Seed a demo SQLite DB with sample TimeLink data.

This is intended for docs and local demos.
It does NOT contact Toggl or Jira: a fixed report and a small in-memory issue
catalog stand in for them, and the regular reconciliation pass runs on top.

Usage:
  python scripts/seed_demo_data.py --db ./data/demo_timelink.db --overwrite
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


def _sqlite_url_for_path(db_path: Path) -> str:
    # Absolute path: "sqlite+aiosqlite:///" + "/abs/path" gives the four slashes SQLAlchemy expects
    p = db_path.expanduser().resolve()
    return f"sqlite+aiosqlite:///{p}"


# Demo Jira catalog: key -> normalized issue record
DEMO_ISSUES = {
    "PLAT-1": {"id": 1001, "key": "PLAT-1", "summary": "Platform roadmap", "issue_type": "Epic",
               "status": "In Progress", "epic_key": None, "parent_key": None, "is_roadmap_item": True},
    "PLAT-2": {"id": 1002, "key": "PLAT-2", "summary": "Billing revamp", "issue_type": "Story",
               "status": "In Progress", "epic_key": "PLAT-1", "parent_key": None, "is_roadmap_item": False},
    "PLAT-3": {"id": 1003, "key": "PLAT-3", "summary": "Invoice PDF export", "issue_type": "Sub-task",
               "status": "To Do", "epic_key": None, "parent_key": "PLAT-2", "is_roadmap_item": False},
    "OPS-7": {"id": 2007, "key": "OPS-7", "summary": "Rotate certificates", "issue_type": "Task",
              "status": "Done", "epic_key": None, "parent_key": None, "is_roadmap_item": False},
}


def _demo_report(day: date) -> list[dict]:
    def item(entry_id: int, hour: int, hours: int, description: str) -> dict:
        start = f"{day.isoformat()}T{hour:02d}:00:00+00:00"
        end = f"{day.isoformat()}T{hour + hours:02d}:00:00+00:00"
        return {"id": entry_id, "description": description, "start": start, "end": end,
                "dur": hours * 3600 * 1000, "user": "Alice", "project": "Platform"}

    return [
        item(1, 8, 2, "PLAT-3 invoice layout"),
        item(2, 10, 1, "PLAT-3 review"),
        item(3, 11, 1, "OPS-7 certificates"),
        item(4, 13, 2, "NOPE-404 unknown ticket"),
        item(5, 15, 1, "standup"),
    ]


@dataclass(frozen=True)
class SeedResult:
    db_path: Path
    stats: dict


async def _seed(day: date) -> dict:
    from timelink.dates import DateRange  # noqa: WPS433
    from timelink.models.base import engine, init_db  # noqa: WPS433
    from timelink.services import MirrorStore, Reconciler  # noqa: WPS433

    async def fetch_report(date_range):
        return _demo_report(day)

    async def fetch_issue(key):
        return DEMO_ISSUES.get(key)

    await init_db()
    try:
        reconciler = Reconciler(MirrorStore(), fetch_report, fetch_issue)
        return await reconciler.run_pass(DateRange.from_values(day, day + timedelta(days=1)))
    finally:
        await engine.dispose()


def seed_demo_db(db_path: Path, overwrite: bool = False) -> SeedResult:
    db_path = db_path.expanduser().resolve()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    if overwrite and db_path.exists():
        db_path.unlink()

    # IMPORTANT: DATABASE_URL must be set before importing timelink.* modules
    os.environ["DATABASE_URL"] = _sqlite_url_for_path(db_path)
    os.environ.setdefault("LOG_LEVEL", "WARNING")
    os.environ.setdefault("TIMEZONE", "UTC")

    stats = asyncio.run(_seed(date.today() - timedelta(days=1)))
    return SeedResult(db_path=db_path, stats=stats)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a demo TimeLink SQLite DB")
    parser.add_argument(
        "--db",
        default="./data/demo_timelink.db",
        help="Path to SQLite DB file to create (default: ./data/demo_timelink.db)",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Delete existing DB file first",
    )
    args = parser.parse_args()

    result = seed_demo_db(Path(args.db), overwrite=bool(args.overwrite))
    print(f"Seeded demo DB at: {result.db_path}")
    print(result.stats)


if __name__ == "__main__":
    main()
