import pytest

from app.core.errors import UnsupportedChannelError
from app.models.enums import ChannelType
from app.models.ota_configuration import OtaConfiguration
from app.services.channels import registry
from app.services.channels.expedia import ExpediaAdapter


def test_every_channel_type_is_registered():
    assert set(registry.list_supported()) == {t.value for t in ChannelType}


def test_resolve_accepts_enum_members():
    assert isinstance(registry.resolve(ChannelType.EXPEDIA), ExpediaAdapter)


def test_unknown_channel_type_raises():
    with pytest.raises(UnsupportedChannelError):
        registry.resolve("TRIVAGO")


def test_active_configuration_supplies_base_url_and_credentials():
    config = OtaConfiguration(
        channel_type="EXPEDIA", base_url="https://sandbox.example.com", access_token=" tok ", is_active=True
    )
    adapter = registry.resolve("EXPEDIA", config)
    assert adapter._base_url == "https://sandbox.example.com"
    assert adapter._fallback_credentials == {"access_token": "tok"}


def test_inactive_configuration_is_ignored():
    config = OtaConfiguration(channel_type="EXPEDIA", base_url="https://sandbox.example.com", is_active=False)
    adapter = registry.resolve("EXPEDIA", config)
    assert adapter._base_url == ExpediaAdapter.default_base_url


def test_display_names_and_features():
    assert registry.display_name("BOOKING_COM") == "Booking.com"
    assert registry.display_name("NEW_VENDOR") == "NEW_VENDOR"
    assert "Calendar sync" in registry.features_of(ChannelType.AIRBNB)


def test_features_fall_back_for_uncurated_types():
    assert registry.features_of("NEW_VENDOR") == registry.GENERIC_FEATURES
    # Callers get a copy
    registry.features_of("NEW_VENDOR").append("mutated")
    assert "mutated" not in registry.GENERIC_FEATURES
