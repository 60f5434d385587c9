"""Run a TimeLink reconciliation pass from the command line.

Usage:
  python scripts/run_reconcile.py --since 2025-01-01 --until 2025-02-01
  python scripts/run_reconcile.py --lookback-days 7
  python scripts/run_reconcile.py --stages issues,epics,parents,properties
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Reconcile Toggl time entries with Jira issues.")
    p.add_argument("--since", help="Start date (inclusive), YYYY-MM-DD")
    p.add_argument("--until", help="End date (exclusive), YYYY-MM-DD")
    p.add_argument(
        "--lookback-days",
        type=int,
        default=None,
        help="Sync the last N days instead of --since/--until",
    )
    p.add_argument(
        "--stages",
        default=None,
        help="Comma-separated subset of: entries,issues,epics,parents,properties (default: all)",
    )
    return p.parse_args(argv)


async def _run(args: argparse.Namespace, open_reconciler=None) -> dict:
    from timelink.dates import DateRange  # noqa: WPS433
    from timelink.models.base import engine, init_db  # noqa: WPS433
    from timelink.services.reconciler import parse_stages  # noqa: WPS433

    if open_reconciler is None:
        from timelink.services import open_reconciler  # noqa: WPS433

    if args.lookback_days is not None:
        date_range = DateRange.last_days(args.lookback_days)
    elif args.since or args.until:
        if not (args.since and args.until):
            raise ValueError("--since and --until must be given together")
        date_range = DateRange.from_values(args.since, args.until)
    else:
        date_range = None

    stages = parse_stages(args.stages)

    await init_db()
    try:
        async with open_reconciler() as reconciler:
            return await reconciler.run_pass(date_range, stages)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from timelink.config import settings  # noqa: WPS433

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        result = asyncio.run(_run(args))
    except Exception as e:
        logging.getLogger("timelink.cli").error(f"Reconciliation failed: {e}")
        return 1
    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
