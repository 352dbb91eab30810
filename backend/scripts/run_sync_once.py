#!/usr/bin/env python3
"""
Run one scheduled sync tick (and optionally the recovery pass) without starting the server.
  cd backend && poetry run python scripts/run_sync_once.py [--recovery]
"""
import argparse
import logging
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from app.scheduler.channel_sync_job import run_scheduled_sync, run_sync_recovery


def main():
    parser = argparse.ArgumentParser(description="Run one channel sync tick")
    parser.add_argument("--recovery", action="store_true", help="also retry failed syncs that are due")
    parser.add_argument("--workers", type=int, default=None, help="override SYNC_MAX_WORKERS")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    result = run_scheduled_sync(max_workers=args.workers)
    print(f"Sync tick: selected={result['selected']} succeeded={result['succeeded']} failed={result['failed']}")
    if args.recovery:
        recovered = run_sync_recovery()
        print(f"Recovery: due={recovered['due']} recovered={recovered['recovered']}")
    return 0 if result["failed"] == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
