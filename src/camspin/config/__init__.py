"""Configuration for CamSpin."""

from .settings import (
    Settings,
    PhysicsSettings,
    StripSettings,
    SpinSettings,
    CaptureSettings,
    StoreSettings,
    get_settings,
)

__all__ = [
    "Settings",
    "PhysicsSettings",
    "StripSettings",
    "SpinSettings",
    "CaptureSettings",
    "StoreSettings",
    "get_settings",
]
