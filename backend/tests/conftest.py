import os
import tempfile
from datetime import date, timedelta
from pathlib import Path

# Settings and the engine are built at import time: point them at a throwaway SQLite file first.
_DB_DIR = Path(tempfile.mkdtemp(prefix="channel_sync_tests_"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ["PMS_RESERVATION_FORWARD"] = "false"
os.environ["PMS_RESERVATION_CREATE_URL"] = ""

import pytest

import app.models  # noqa: F401  (registers every table on Base.metadata)
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models.enums import IntegrationStatus
from app.services import channel_store
from app.services.channels import registry
from app.services.channels.http_adapter import HttpChannelAdapter
from app.services.channels.types import ConnectionResult

FAKE_CHANNEL = "EXPEDIA"


class FakeAdapter(HttpChannelAdapter):
    """
    Records every push instead of calling a vendor. Webhook parsing is the real shared parser.
    fail_rooms: channel room ids / internal room type ids whose pushes raise.
    fail_everything: every push raises.
    """

    channel_type = FAKE_CHANNEL
    display_name = "Fake Expedia"
    default_base_url = "https://fake.invalid"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls = []
        self.fail_rooms = set()
        self.fail_everything = False
        self.connection_ok = True

    def _maybe_fail(self, kind, key):
        if self.fail_everything or key in self.fail_rooms:
            raise RuntimeError(f"{kind} rejected for {key}")

    def test_connection(self, integration):
        if self.connection_ok:
            return ConnectionResult(True)
        return ConnectionResult(False, "rejected by fake channel")

    def update_inventory(self, integration, mapping):
        self._maybe_fail("inventory", mapping.channel_room_type_id)
        self.calls.append(("inventory", integration.id, mapping.channel_room_type_id))

    def update_rates(self, integration, rate_plan):
        self._maybe_fail("rates", rate_plan.channel_rate_plan_id)
        self.calls.append(("rates", integration.id, rate_plan.channel_rate_plan_id))

    def update_availability(self, integration, availability):
        self._maybe_fail("availability", availability.roomtype_id)
        self.calls.append(("availability", integration.id, availability.roomtype_id, availability.date))

    def create_reservation(self, integration, reservation):
        self._maybe_fail("reservation", "create")
        self.calls.append(("create_reservation", integration.id, reservation))
        return {"reservationId": "CH-1", "status": "confirmed"}

    def update_reservation(self, integration, reservation_id, updates):
        self._maybe_fail("reservation", "update")
        self.calls.append(("update_reservation", integration.id, reservation_id))
        return {"reservationId": reservation_id, "status": "modified"}

    def cancel_reservation(self, integration, reservation_id):
        self._maybe_fail("reservation", "cancel")
        self.calls.append(("cancel_reservation", integration.id, reservation_id))
        return {"reservationId": reservation_id, "status": "cancelled"}


@pytest.fixture(scope="session", autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def session_factory():
    return SessionLocal


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_adapter():
    """Swap the fake in for FAKE_CHANNEL; every resolve() returns this same instance."""
    adapter = FakeAdapter()
    previous = registry._factories.get(FAKE_CHANNEL)
    registry.register(FAKE_CHANNEL, lambda **kwargs: adapter)
    yield adapter
    registry.register(FAKE_CHANNEL, previous)


@pytest.fixture
def make_integration(db):
    def _make(**overrides):
        fields = {
            "hotel_id": 1,
            "channel_type": FAKE_CHANNEL,
            "channel_name": "Expedia",
            "channel_property_id": "PROP-1",
            "credentials": {"access_token": "token"},
            "status": IntegrationStatus.ACTIVE,
        }
        fields.update(overrides)
        return channel_store.create_integration(db, **fields)

    return _make


@pytest.fixture
def make_mapping(db):
    def _make(integration, channel_room_type_id, roomtype_id, **overrides):
        fields = {
            "roomtype_id": roomtype_id,
            "channel_room_type_id": channel_room_type_id,
            "channel_room_type_name": f"Room {channel_room_type_id}",
        }
        fields.update(overrides)
        return channel_store.create_mapping(db, integration.id, **fields)

    return _make


@pytest.fixture
def seed_availability(db):
    """Rows for [start, start + days) with the given counts; returns them in date order."""

    def _seed(integration, roomtype_id, start: date, days: int, total=10, occupied=0, **fields):
        rows = [
            channel_store.upsert_availability_row(
                db,
                integration.id,
                roomtype_id,
                start + timedelta(days=offset),
                total_rooms=total,
                occupied_rooms=occupied,
                **fields,
            )
            for offset in range(days)
        ]
        db.commit()
        return rows

    return _seed
