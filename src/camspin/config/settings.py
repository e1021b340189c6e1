"""
Application settings using Pydantic.

Settings are loaded from environment variables with .env file support.
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PhysicsSettings(BaseSettings):
    """Strip physics constants (per-tick units)."""

    # Spin
    max_speed: float = Field(default=40.0, gt=0)
    acceleration: float = Field(default=1.5, gt=0)

    # Idle drift
    idle_damping: float = Field(default=0.98, gt=0.0, lt=1.0)
    idle_epsilon: float = Field(default=0.1, ge=0.0)

    # Deceleration onto target
    decel_damping: float = Field(default=0.95, gt=0.0, lt=1.0)
    restoring_force: float = Field(default=0.02, gt=0.0, lt=1.0)
    max_decel_speed: float = Field(default=15.0, gt=0)

    # Landing thresholds
    land_distance: float = Field(default=5.0, gt=0)
    land_velocity: float = Field(default=2.0, gt=0)


class StripSettings(BaseSettings):
    """Card strip geometry in pixels."""

    card_width: float = Field(default=220.0, gt=0)
    card_height: float = Field(default=320.0, gt=0)
    gap: float = Field(default=40.0, ge=0)
    viewport_width: float = Field(default=1280.0, gt=0)

    @property
    def item_width(self) -> float:
        """Width of one card slot including the gap."""
        return self.card_width + self.gap


class SpinSettings(BaseSettings):
    """Shuffle round settings."""

    min_players: int = Field(default=2, ge=2)

    # Natural stop fires after a random duration in this range (seconds)
    min_duration: float = Field(default=3.0, gt=0)
    max_duration: float = Field(default=5.0, gt=0)

    # Extra full strip cycles before landing
    natural_extra_cycles: int = Field(default=2, ge=0)
    early_stop_extra_cycles: int = Field(default=1, ge=0)

    @model_validator(mode="after")
    def _check_duration(self) -> "SpinSettings":
        if self.min_duration > self.max_duration:
            raise ValueError("min_duration must not exceed max_duration")
        return self


class CaptureSettings(BaseSettings):
    """Camera frame upload settings."""

    capture_interval: float = Field(default=0.4, gt=0)  # ~2.5 fps
    frame_width: int = 320
    frame_height: int = 240
    jpeg_quality: int = Field(default=70, ge=1, le=95)


class StoreSettings(BaseSettings):
    """Shared room store interaction."""

    max_retries: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=0.5, ge=0.0)
    room_code_length: int = Field(default=4, ge=3)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CAMSPIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    debug: bool = False

    # Rendering
    fps: int = Field(default=60, ge=1)

    # Rejoin record location
    session_file: str = "~/.camspin/session.json"

    # Nested settings
    physics: PhysicsSettings = Field(default_factory=PhysicsSettings)
    strip: StripSettings = Field(default_factory=StripSettings)
    spin: SpinSettings = Field(default_factory=SpinSettings)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
