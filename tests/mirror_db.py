"""Test helpers: a throwaway SQLite mirror and recording fake remotes"""
import asyncio
import tempfile
import unittest
from collections import Counter
from datetime import datetime
from pathlib import Path


def issue_record(id, key, **fields):
    """A normalized Jira issue record, as the Jira client returns it."""
    record = {
        "id": id,
        "key": key,
        "summary": f"Summary of {key}",
        "issue_type": "Story",
        "status": "To Do",
        "epic_key": None,
        "parent_key": None,
        "is_roadmap_item": False,
    }
    record.update(fields)
    return record


def entry_row(id, issue_key=None, start=None, **fields):
    row = {
        "id": id,
        "description": f"{issue_key or 'misc'} work",
        "start": start or datetime(2025, 1, 6, 9, 0),
        "issue_key": issue_key,
    }
    row.update(fields)
    return row


class RecordingFetch:
    """Fake single-key fetch that records concurrency and chunk boundaries."""

    def __init__(self, records=None, failing=()):
        self.records = dict(records or {})
        self.failing = set(failing)
        self.started = []
        self.finished = []
        self.finished_at_start = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, key):
        self.started.append(key)
        self.finished_at_start.append(len(self.finished))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        self.in_flight -= 1
        self.finished.append(key)
        if key in self.failing:
            raise RuntimeError(f"boom for {key}")
        return self.records.get(key)

    def chunk_sizes(self):
        """Sizes of the groups of fetches that started together."""
        counts = Counter(self.finished_at_start)
        return [counts[k] for k in sorted(counts)]


class MirrorTestCase(unittest.IsolatedAsyncioTestCase):
    """Runs each test against a fresh SQLite file."""

    async def asyncSetUp(self):
        # Import here so unittest discovery doesn't fail if deps are missing
        from timelink.models.base import build_engine, build_sessionmaker, init_db
        from timelink.services.store import MirrorStore

        self._tmp = tempfile.TemporaryDirectory()
        db_path = Path(self._tmp.name) / "mirror.db"
        self.engine = build_engine(f"sqlite+aiosqlite:///{db_path}")
        await init_db(self.engine)
        self.store = MirrorStore(build_sessionmaker(self.engine))

    async def asyncTearDown(self):
        await self.engine.dispose()
        self._tmp.cleanup()

    async def all_entries(self):
        return sorted(await self.store.list_entries(limit=10_000), key=lambda e: e.id)

    async def issue(self, key):
        return await self.store.get_issue_by_key(key)
