#!/usr/bin/env python3
"""
Quick checks so the backend can start. Run from backend/:
  poetry run python scripts/check_backend.py
"""
import os
import sys
from pathlib import Path

# Run from backend/
backend_dir = Path(__file__).resolve().parent.parent
os.chdir(backend_dir)
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def main():
    errors = []

    # 1) .env
    if not (backend_dir / ".env").exists():
        errors.append("backend/.env missing. Set DATABASE_URL (and PMS_* when forwarding is on).")
    else:
        print("OK  .env exists")

    # 2) DB connection and migrated tables
    try:
        from sqlalchemy import inspect

        from app.db.session import engine
        from app.db.tables import ALL_TABLE_NAMES

        with engine.connect() as conn:
            present = set(inspect(conn).get_table_names())
        missing = [t for t in ALL_TABLE_NAMES if t not in present]
        if missing:
            errors.append(f"Tables missing (run: alembic upgrade head): {', '.join(missing)}")
            print("FAIL Tables missing:", ", ".join(missing))
        else:
            print("OK  Database connection and tables")
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    # 3) App import (catches missing deps, bad imports) and adapter registry
    try:
        from app.main import app  # noqa: F401
        from app.services.channels import registry

        print("OK  App import (app.main)")
        print("OK  Channel adapters:", ", ".join(registry.list_supported()))
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)

    # 4) PMS forwarding configuration
    try:
        from app.config import settings

        if settings.pms_reservation_forward and not settings.pms_reservation_create_url:
            errors.append("PMS_RESERVATION_FORWARD is on but PMS_RESERVATION_CREATE_URL is empty.")
            print("FAIL PMS forwarding URL missing")
    except Exception as e:
        errors.append(f"Settings: {e}")

    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        return 1

    print("\nAll checks passed. Start with: uvicorn app.main:app --reload --port 8000")
    return 0


if __name__ == "__main__":
    sys.exit(main())
