#!/usr/bin/env python3
"""
Create or update OTA configuration rows from environment variables, one per channel type:
  <CHANNEL>_API_KEY, <CHANNEL>_API_SECRET, <CHANNEL>_ACCESS_TOKEN, <CHANNEL>_BASE_URL
e.g. BOOKING_COM_API_KEY=... EXPEDIA_ACCESS_TOKEN=...
Channel types with none of these set are skipped.

Run from backend: poetry run python scripts/seed_ota_configurations.py
"""
import os
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from dotenv import load_dotenv

load_dotenv(backend_dir / ".env")

from app.db.session import SessionLocal
from app.models.enums import ChannelType
from app.services.ota_config_service import upsert_configuration

_FIELDS = ("api_key", "api_secret", "access_token", "base_url")


def main():
    db = SessionLocal()
    try:
        for channel_type in ChannelType:
            values = {f: os.getenv(f"{channel_type.value}_{f.upper()}", "").strip() or None for f in _FIELDS}
            if not any(values.values()):
                continue
            row = upsert_configuration(db, channel_type.value, **values)
            print(f"  {row.channel_type}: saved ({', '.join(k for k, v in values.items() if v)})")
    except Exception as e:
        db.rollback()
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()
    print("Done.")


if __name__ == "__main__":
    main()
