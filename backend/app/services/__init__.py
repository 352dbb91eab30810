"""Service layer: channel store, onboarding, OTA configuration, PMS forwarding, channel adapters and the sync engine."""
