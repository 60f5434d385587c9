"""Reconciliation of Toggl time entries with the Jira issue mirror"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from timelink.config import settings
from timelink.dates import DateRange
from timelink.models.sync_log import ReconcileStage, SyncStatus
from timelink.services.resolver import resolve_in_batches
from timelink.services.store import MirrorStore, relation_columns
from timelink.services.toggl_client import entry_from_report_item

logger = logging.getLogger(__name__)

# Pipeline order; each stage can also be run on its own.
STAGE_ORDER = (
    ReconcileStage.ENTRIES,
    ReconcileStage.ISSUES,
    ReconcileStage.EPICS,
    ReconcileStage.PARENTS,
    ReconcileStage.PROPERTIES,
)


def group_by_key(rows: Iterable[Any], attr: str) -> Dict[str, List[Any]]:
    """Group rows by an attribute value, keeping first-seen key order."""
    groups: Dict[str, List[Any]] = {}
    for row in rows:
        groups.setdefault(getattr(row, attr), []).append(row)
    return groups


def parse_stages(value: Optional[str]) -> Optional[List[ReconcileStage]]:
    """Parse a comma-separated stage list ("entries,issues"); None/empty means all."""
    if not value:
        return None
    stages = []
    for name in value.split(","):
        name = name.strip().lower()
        if not name:
            continue
        try:
            stages.append(ReconcileStage(name))
        except ValueError:
            raise ValueError(f"Unknown stage '{name}' (expected one of {[s.value for s in STAGE_ORDER]})")
    return stages


class Reconciler:
    """Runs the reconciliation stages against a store and two remote sources"""

    def __init__(
        self,
        store: MirrorStore,
        fetch_report: Callable[[DateRange], Awaitable[List[Dict[str, Any]]]],
        fetch_issue: Callable[[str], Awaitable[Optional[Dict[str, Any]]]],
        *,
        batch_size: Optional[int] = None,
    ):
        self.store = store
        self.fetch_report = fetch_report
        self.fetch_issue = fetch_issue
        self.batch_size = settings.resolve_batch_size if batch_size is None else batch_size
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")

    async def _resolve(self, keys: List[str]) -> List[Optional[Dict[str, Any]]]:
        return await resolve_in_batches(keys, self.fetch_issue, self.batch_size)

    async def _persist_issues(self, records: Sequence[Optional[Dict[str, Any]]]):
        """Mirror resolved records one at a time, in resolution order.

        Returns the local id for each record (None where unresolved) and the
        number of issues created.
        """
        local_ids: List[Optional[int]] = []
        created = 0
        for record in records:
            if not record:
                local_ids.append(None)
                continue
            issue_id, was_created = await self.store.create_issue_if_missing(record)
            local_ids.append(issue_id)
            created += was_created
        return local_ids, created

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def sync_entries(self, date_range: DateRange) -> int:
        """Replace the stored time entries of a range with a fresh report.

        The delete is committed before the report is fetched: if the fetch fails
        the range stays empty until the next successful run.
        """
        removed = await self.store.delete_entries_between(date_range.utc_since, date_range.utc_until)
        logger.info(f"Removed {removed} time entries in {date_range}")

        report = await self.fetch_report(date_range)

        rows: Dict[int, Dict[str, Any]] = {}
        for item in report:
            row = entry_from_report_item(item)
            if row["id"] in rows:
                continue
            if not date_range.contains(row["start"]):
                logger.debug(f"Skipping entry {row['id']} outside {date_range}")
                continue
            rows[row["id"]] = row

        saved = await self.store.insert_entries(list(rows.values()))
        logger.info(f"Saved {saved} time entries for {date_range}")
        return saved

    async def link_issues(self) -> Dict[str, int]:
        """Attach time entries to issues resolved from their issue keys."""
        entries = await self.store.entries_with_unlinked_issue_key()
        grouped = group_by_key(entries, "issue_key")
        issue_keys = list(grouped)
        stats = {"keys": len(issue_keys), "resolved": 0, "created": 0, "entries_linked": 0, "entries_flagged": 0}
        if not issue_keys:
            return stats

        issues = await self._resolve(issue_keys)
        local_ids, stats["created"] = await self._persist_issues(issues)

        async def _apply(issue_key: str, issue_id: Optional[int]):
            entry_ids = [entry.id for entry in grouped[issue_key]]
            if issue_id is not None:
                linked = await self.store.set_entries_issue(entry_ids, issue_id)
                stats["entries_linked"] += linked
            else:
                logger.warning(f"Flagging {len(entry_ids)} time entries with unknown issue key {issue_key}")
                flagged = await self.store.flag_entries_bad_issue_key(entry_ids)
                stats["entries_flagged"] += flagged

        await asyncio.gather(*(_apply(key, issue_id) for key, issue_id in zip(issue_keys, local_ids)))
        stats["resolved"] = sum(1 for issue in issues if issue)
        logger.info(f"Issue linking finished: {stats}")
        return stats

    async def link_hierarchy(self, relation: str) -> Dict[str, int]:
        """Link issues to their ``relation`` ("epic" or "parent") issue.

        Keys that do not resolve are left unlinked and retried on the next run.
        """
        key_col, _ = relation_columns(relation)
        issues = await self.store.issues_with_unlinked(relation)
        grouped = group_by_key(issues, key_col.key)
        keys = list(grouped)
        stats = {"keys": len(keys), "resolved": 0, "created": 0, "issues_linked": 0}
        if not keys:
            return stats

        related = await self._resolve(keys)
        local_ids, stats["created"] = await self._persist_issues(related)

        async def _apply(key: str, target_id: int):
            issue_ids = [issue.id for issue in grouped[key]]
            linked = await self.store.set_issues_relation(issue_ids, relation, target_id)
            stats["issues_linked"] += linked

        await asyncio.gather(
            *(_apply(key, target_id) for key, target_id in zip(keys, local_ids) if target_id is not None)
        )
        stats["resolved"] = sum(1 for record in related if record)
        unresolved = stats["keys"] - stats["resolved"]
        if unresolved:
            logger.warning(f"{unresolved} {relation} keys did not resolve; they will be retried next run")
        logger.info(f"{relation.capitalize()} linking finished: {stats}")
        return stats

    async def link_epics(self) -> Dict[str, int]:
        return await self.link_hierarchy("epic")

    async def link_parents(self) -> Dict[str, int]:
        return await self.link_hierarchy("parent")

    async def _propagate_from(self, relation: str) -> int:
        _, id_col = relation_columns(relation)
        ancestor_ids = await self.store.distinct_values(id_col)
        ancestors = await self.store.issues_by_ids(ancestor_ids)
        await asyncio.gather(*(self.store.update_issues_from_related(relation, a) for a in ancestors))
        return len(ancestors)

    async def propagate_properties(self) -> Dict[str, int]:
        """Push parent, then epic, properties onto child issues.

        The epic pass starts only after every parent update has completed, so
        an issue with both a parent and an epic ends up with the epic's values.
        """
        stats = {"parents": await self._propagate_from("parent")}
        stats["epics"] = await self._propagate_from("epic")
        logger.info(f"Property propagation finished: {stats}")
        return stats

    # ------------------------------------------------------------------
    # Full pass
    # ------------------------------------------------------------------

    async def run_stage(self, stage: ReconcileStage, date_range: Optional[DateRange] = None) -> Any:
        if stage == ReconcileStage.ENTRIES:
            if date_range is None:
                raise ValueError("A date range is required to sync time entries")
            return await self.sync_entries(date_range)
        if stage == ReconcileStage.ISSUES:
            return await self.link_issues()
        if stage == ReconcileStage.EPICS:
            return await self.link_epics()
        if stage == ReconcileStage.PARENTS:
            return await self.link_parents()
        return await self.propagate_properties()

    async def run_pass(
        self,
        date_range: Optional[DateRange] = None,
        stages: Optional[Iterable[ReconcileStage]] = None,
    ) -> Dict[str, Any]:
        """Run the selected stages in pipeline order, logging each to sync_logs.

        Without a date range the entries stage is skipped, unless it was asked
        for by name, which is an error. A failing stage is recorded and
        re-raised; stages already run stay committed.
        """
        if stages is None:
            selected = set(STAGE_ORDER)
            if date_range is None:
                selected.discard(ReconcileStage.ENTRIES)
        else:
            selected = set(stages)
            if date_range is None and ReconcileStage.ENTRIES in selected:
                raise ValueError("A date range is required to sync time entries")

        results: Dict[str, Any] = {}
        for stage in STAGE_ORDER:
            if stage not in selected:
                continue
            logger.info(f"Starting stage {stage.value}")
            try:
                result = await self.run_stage(stage, date_range)
            except Exception as e:
                logger.error(f"Stage {stage.value} failed: {e}")
                await self.store.add_log(stage, SyncStatus.FAILED, message=str(e))
                raise
            results[stage.value] = result
            await self.store.add_log(
                stage,
                SyncStatus.SUCCESS,
                message=f"Stage {stage.value} completed",
                details=result if isinstance(result, dict) else {"saved": result},
            )
        return results
