"""Application configuration via environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path("data")


class Settings(BaseSettings):
    """Pulse settings loaded from environment variables (prefix ``PULSE_``)."""

    model_config = SettingsConfigDict(
        env_prefix="PULSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    log_json: bool = False

    # Static GTFS reference tables
    routes_file: Path = DEFAULT_DATA_DIR / "routes.txt"
    trips_file: Path = DEFAULT_DATA_DIR / "trips.txt"
    stops_file: Path = DEFAULT_DATA_DIR / "stops.txt"

    # GTFS-RT sources: a local file wins over the URL when it exists
    trip_updates_local: Optional[Path] = DEFAULT_DATA_DIR / "tripupdates.pb"
    trip_updates_url: Optional[str] = Field(
        default="https://metrolinx.tmix.se/gtfs-realtime-sarnia/tripupdates.pb",
        validation_alias=AliasChoices("PULSE_TRIP_UPDATES_URL", "TRIP_UPDATES_URL"),
    )
    alerts_local: Optional[Path] = DEFAULT_DATA_DIR / "alerts.pb"
    alerts_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("PULSE_ALERTS_URL", "SERVICE_ALERTS_URL"),
    )
    realtime_timeout_ms: int = Field(default=12_000, ge=100, le=120_000)

    # Status thresholds
    delay_minutes_threshold: int = Field(default=5, ge=0)
    percent_delayed_threshold: float = Field(default=0.20, ge=0.0, le=1.0)
    major_delay_minutes: int = Field(default=15, ge=0)

    # Output
    output_file: Path = DEFAULT_DATA_DIR / "route_status.json"
    debug_sample_limit: int = Field(default=10, ge=0)

    @property
    def realtime_timeout_sec(self) -> float:
        """Realtime fetch timeout in seconds, as httpx expects it."""
        return self.realtime_timeout_ms / 1000

    def with_static_dir(self, static_dir: Path) -> "Settings":
        """Return a copy whose reference tables and local feeds live in ``static_dir``."""
        return self.model_copy(
            update={
                "routes_file": static_dir / "routes.txt",
                "trips_file": static_dir / "trips.txt",
                "stops_file": static_dir / "stops.txt",
                "trip_updates_local": static_dir / "tripupdates.pb",
                "alerts_local": static_dir / "alerts.pb",
            }
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
