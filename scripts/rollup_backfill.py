#!/usr/bin/env python3
"""
Re-run metric rollups for a date range.

Run: python scripts/rollup_backfill.py --start 2012-08-01 --end 2012-08-15 [--interval daily]

Each window in [start, end) is rolled up for every resource of every known
database. Existing rollup records are overwritten, so the script is safe to
run repeatedly.

Exit codes:
  0 - All windows rolled up
  1 - Some resources failed (see log output)
  2 - Backfill failed (configuration or database connection error)
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

try:
    import structlog
    from app import database
    from app.models import VmdbDatabase
    from app.services.vmdb_metrics import RollupScheduler
    from app.services.vmdb_metrics.intervals import SOURCE_INTERVALS, iter_windows
except ImportError as e:
    print(f"ERROR: Failed to import required modules: {e}")
    print("Make sure you're running from the project root and dependencies are installed.")
    sys.exit(2)


def parse_date(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD[THH:MM:SS]")


def main():
    """Main backfill script entry point"""
    parser = argparse.ArgumentParser(
        description="Re-run VMDB metric rollups for a date range"
    )
    parser.add_argument("--start", type=parse_date, required=True, help="First day to roll up (UTC)")
    parser.add_argument("--end", type=parse_date, required=True, help="End of range, exclusive (UTC)")
    parser.add_argument(
        "--interval",
        choices=sorted(SOURCE_INTERVALS),
        default="daily",
        help="Rollup interval (default: daily)"
    )
    args = parser.parse_args()

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer()
        ]
    )

    if args.end <= args.start:
        print("ERROR: --end must be after --start")
        sys.exit(2)

    try:
        database.init_db()
        if database.SessionLocal is None:
            print("ERROR: Database not configured. Set DATABASE_URL environment variable.")
            sys.exit(2)
    except Exception as e:
        print(f"ERROR: Failed to connect to database: {e}")
        sys.exit(2)

    windows = list(iter_windows(args.interval, args.start, args.end))
    print(f"Rolling up {len(windows)} {args.interval} window(s) from {windows[0].date()}...")

    rolled_up = 0
    empty = 0
    failures = 0

    db = database.SessionLocal()
    try:
        for vmdb_database in db.query(VmdbDatabase).order_by(VmdbDatabase.name).all():
            scheduler = RollupScheduler(db, vmdb_database, intervals=[args.interval])
            for window_start in windows:
                result = scheduler.run(window_start)
                rolled_up += result["rolled_up"]
                empty += result["empty"]
                failures += len(result["failed"])
    except Exception as e:
        print(f"ERROR: Backfill failed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(2)
    finally:
        db.close()

    print("")
    print(f"Records written:   {rolled_up}")
    print(f"Empty windows:     {empty}")
    print(f"Failed resources:  {failures}")

    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
