from datetime import date

import pytest
from fastapi.testclient import TestClient

from app.api.routes.webhooks import extract_hotel_id
from app.main import app
from app.services import channel_store


@pytest.fixture
def client():
    # No context manager: the lifespan (and its scheduler) is not started
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_create_and_read_integration(client, fake_adapter):
    r = client.post(
        "/integrations",
        json={"hotel_id": 12, "channel_type": "EXPEDIA", "credentials": {"access_token": "secret-token"}},
    )
    assert r.status_code == 200
    created = r.json()["integration"]
    assert created["status"] == "ACTIVE"
    assert created["credential_keys"] == ["access_token"]
    assert "secret-token" not in r.text

    r = client.get(f"/integrations/{created['id']}")
    assert r.json()["integration"]["channel_property_id"] == created["channel_property_id"]
    assert client.get("/integrations", params={"hotel_id": 12}).json()["count"] == 1

    r = client.post("/integrations", json={"hotel_id": 12, "channel_type": "EXPEDIA"})
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "INTEGRATION_CONFLICT"


def test_unknown_integration_is_404(client):
    r = client.get("/integrations/999")
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "INTEGRATION_NOT_FOUND"


def test_rejected_connection_is_400(client, fake_adapter):
    fake_adapter.connection_ok = False
    r = client.post("/integrations", json={"hotel_id": 12, "channel_type": "EXPEDIA"})
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "CONNECTION_TEST_FAILED"


def test_mappings_and_availability(client, fake_adapter, make_integration):
    integration = make_integration()
    r = client.post(
        f"/integrations/{integration.id}/mappings",
        json={"roomtype_id": 7, "channel_room_type_id": "DLX-1", "channel_room_type_name": "Deluxe"},
    )
    assert r.status_code == 200
    assert client.get(f"/integrations/{integration.id}/mappings").json()["mappings"][0]["roomtype_id"] == 7

    r = client.put(
        f"/integrations/{integration.id}/availability",
        json={"roomtype_id": 7, "date": "2025-02-10", "total_rooms": 10, "occupied_rooms": 2},
    )
    assert r.status_code == 200
    assert r.json()["availability"]["available_rooms"] == 8

    r = client.get(
        f"/integrations/{integration.id}/availability",
        params={"start_date": "2025-02-10", "end_date": "2025-02-10"},
    )
    assert [a["date"] for a in r.json()["availability"]] == ["2025-02-10"]

    r = client.get(
        f"/integrations/{integration.id}/availability",
        params={"start_date": "2025-02-11", "end_date": "2025-02-10"},
    )
    assert r.status_code == 422


def test_mapping_can_be_corrected(client, db, fake_adapter, make_integration, make_mapping):
    integration = make_integration()
    deluxe = make_mapping(integration, "DLX-1", 7)
    make_mapping(integration, "STD-1", 3)

    r = client.put(
        f"/integrations/{integration.id}/mappings/{deluxe.id}",
        json={"channel_room_type_id": " DLX-2 ", "channel_room_type_name": "Deluxe King"},
    )
    assert r.status_code == 200
    assert r.json()["mapping"]["channel_room_type_id"] == "DLX-2"
    db.expire_all()
    assert channel_store.find_mapping_by_channel_room_type_id(db, integration.id, "DLX-2").roomtype_id == 7

    r = client.put(f"/integrations/{integration.id}/mappings/{deluxe.id}", json={"channel_room_type_id": "STD-1"})
    assert r.status_code == 409

    r = client.put(f"/integrations/{integration.id}/mappings/999", json={"is_active": False})
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "NOT_FOUND"


def test_rate_plan_can_be_updated(client, fake_adapter, make_integration):
    integration = make_integration()
    r = client.post(
        f"/integrations/{integration.id}/rate-plans",
        json={"roomtype_id": 7, "channel_rate_plan_id": "BAR", "channel_rate_plan_name": "Best rate", "base_rate": 150},
    )
    plan_id = r.json()["rate_plan"]["id"]

    r = client.put(f"/integrations/{integration.id}/rate-plans/{plan_id}", json={"base_rate": 175, "min_stay": 2})
    assert r.status_code == 200
    assert r.json()["rate_plan"]["base_rate"] == 175.0
    assert r.json()["rate_plan"]["min_stay"] == 2
    assert r.json()["rate_plan"]["channel_rate_plan_id"] == "BAR"

    assert client.put(f"/integrations/{integration.id}/rate-plans/999", json={"base_rate": 1}).status_code == 404


def test_deactivated_integration_is_kept_but_not_synced(client, db, fake_adapter, make_integration):
    integration = make_integration()
    client.post(f"/sync/{integration.id}", json={"operation_type": "FULL_SYNC"})

    r = client.delete(f"/integrations/{integration.id}")
    assert r.status_code == 200
    assert r.json()["integration"]["status"] == "INACTIVE"

    db.expire_all()
    assert channel_store.find_integrations_needing_sync(db, staleness_minutes=0) == []
    assert client.get(f"/sync/{integration.id}/logs").json()["count"] == 1
    assert client.post(f"/sync/{integration.id}").status_code == 400

    r = client.post(f"/integrations/{integration.id}/onboard")
    assert r.json()["integration"]["status"] == "ACTIVE"


def test_manual_sync_logs_and_statistics(client, fake_adapter, make_integration):
    integration = make_integration()
    r = client.post(f"/sync/{integration.id}", json={"operation_type": "FULL_SYNC"})
    assert r.status_code == 200
    assert r.json()["sync_log"]["status"] == "SUCCESS"

    logs = client.get(f"/sync/{integration.id}/logs").json()
    assert logs["count"] == 1
    assert client.get(f"/sync/{integration.id}/logs", params={"limit": 10_000}).status_code == 422

    stats = client.get("/sync/statistics", params={"integration_id": integration.id}).json()
    assert stats["total"] == 1
    assert stats["success_rate"] == 100.0


def test_manual_sync_of_inactive_integration_is_400(client, fake_adapter, make_integration):
    integration = make_integration(status="INACTIVE")
    r = client.post(f"/sync/{integration.id}")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "INTEGRATION_NOT_ACTIVE"


def test_webhook_round_trip(client, db, fake_adapter, make_integration, make_mapping, seed_availability):
    integration = make_integration(hotel_id=12)
    make_mapping(integration, "DLX-1", 7)
    seed_availability(integration, 7, date(2025, 2, 10), days=3, occupied=2)

    r = client.post(
        "/webhooks/expedia",
        json={
            "hotel_id": 12,
            "event": "reservation",
            "room_type_id": "DLX-1",
            "check_in": "2025-02-10",
            "check_out": "2025-02-12",
            "rooms": 1,
        },
    )
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["availability"]["dates_updated"] == ["2025-02-10", "2025-02-11"]

    db.expire_all()
    row = channel_store.find_availability_for_day(db, integration.id, 7, date(2025, 2, 10))
    assert row.occupied_rooms == 3


def test_webhook_hotel_id_can_be_nested(client, fake_adapter, make_integration):
    make_integration(hotel_id=12)
    r = client.post("/webhooks/EXPEDIA", json={"event": "review", "data": {"hotel_id": "12"}})
    assert r.status_code == 200


def test_webhook_errors(client, fake_adapter, make_integration):
    make_integration(hotel_id=12)
    assert client.post("/webhooks/EXPEDIA", json={"event": "reservation"}).status_code == 422
    assert client.post("/webhooks/TRIVAGO", json={"hotel_id": 12}).status_code == 400
    assert client.post("/webhooks/EXPEDIA", json={"hotel_id": 99}).status_code == 404


def test_channel_types_and_configuration(client):
    types = client.get("/channels/types").json()["channel_types"]
    assert {t["channel_type"] for t in types} >= {"BOOKING_COM", "HOTELBEDS", "SEVEN"}
    assert all(t["features"] for t in types)

    r = client.put("/channels/configurations/BOOKING_COM", json={"api_key": "k", "api_secret": "s"})
    assert r.status_code == 200
    assert r.json()["configuration"]["has_api_key"] is True

    r = client.post("/channels/configurations/BOOKING_COM/test")
    assert r.json()["configuration"]["test_status"] == "SUCCESS"
    assert client.post("/channels/configurations/AGODA/test").status_code == 404


def test_webhook_hotel_id_zero_is_not_treated_as_missing(client, fake_adapter):
    assert extract_hotel_id({"hotel_id": 0, "hotelId": 12}) == 0
    assert extract_hotel_id({"hotelId": "", "data": {"hotelId": "12"}}) == 12
    assert client.post("/webhooks/EXPEDIA", json={"hotel_id": 0, "event": "review"}).status_code == 404
