#!/usr/bin/env python3
"""
Clear reservation state and the PMS forward queue (TRUNCATE). Sync logs are kept.
Run with backend stopped to avoid locks: cd backend && poetry run python scripts/reset_sync_state.py
"""
import sys
from pathlib import Path

# backend/scripts/ -> backend/
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import text

from app.db.session import engine
from app.db.tables import SYNC_STATE_TABLE_NAMES


def main():
    tables = ", ".join(SYNC_STATE_TABLE_NAMES)
    print(f"Connecting to DB and truncating {tables} ...")
    with engine.connect() as conn:
        conn.execute(text(f"TRUNCATE TABLE {tables} RESTART IDENTITY CASCADE"))
        conn.commit()
    print("Done. Next webhook for an existing reservation is treated as a first delivery.")


if __name__ == "__main__":
    main()
