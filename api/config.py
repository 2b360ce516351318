"""Configuration management using Pydantic Settings."""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden using environment variables or .env file.
    """

    # Source corpus layout
    data_dir: str = Field(
        default="public",
        description="Root directory holding the location JSON corpus"
    )
    us_states_dir: str = Field(
        default="us_states",
        description="Directory (under data_dir) with one us_state_<name>.json per state"
    )
    single_location_dir: str = Field(
        default="internationalLocationsS",
        description="Directory (under data_dir) with <country>_single_location.json files"
    )
    multi_location_dir: str = Field(
        default="InternationalLocationsR",
        description="Directory (under data_dir) with <country>_multi_locations.json files"
    )
    combined_file: str = Field(
        default="international_locations.json",
        description="Combined fallback document aggregating all international data"
    )
    skipped_index_file: str = Field(
        default="country_s_urls.json",
        description="Index file in the multi-location directory that holds no locations"
    )
    us_geojson_file: str = Field(
        default="us-states.json",
        description="GeoJSON boundary file for US states"
    )
    world_geojson_file: str = Field(
        default="world-countries.json",
        description="GeoJSON boundary file for world countries"
    )

    # Map image enrichment
    static_map_url: str = Field(
        default="https://www.mapito.net/staticmap/",
        description="Remote static-map provider endpoint"
    )
    static_map_zoom: int = Field(
        default=15,
        description="Zoom level requested from the static-map provider"
    )
    map_image_width: int = Field(
        default=800,
        description="Map thumbnail width in pixels"
    )
    map_image_height: int = Field(
        default=400,
        description="Map thumbnail height in pixels"
    )
    map_fetch_timeout_seconds: float = Field(
        default=10.0,
        description="Per-image timeout for the remote static-map request"
    )
    map_fetch_retries: int = Field(
        default=2,
        description="Retries for transient static-map provider errors"
    )
    enrichment_batch_size: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Number of map images produced concurrently per batch"
    )
    enrichment_batch_delay_seconds: float = Field(
        default=0.5,
        description="Pause between enrichment batches"
    )

    # Export / print pipeline
    export_timeout_seconds: float = Field(
        default=300.0,
        description="Deadline for a single country or state export"
    )
    export_all_timeout_seconds: float = Field(
        default=600.0,
        description="Deadline for the all-international export"
    )
    browser_args: List[str] = Field(
        default=["--no-sandbox", "--disable-setuid-sandbox"],
        description="Chromium launch flags (sandbox flags are required in containers)"
    )
    page_load_timeout_ms: int = Field(
        default=120000,
        description="Timeout for loading HTML content until the network is idle"
    )
    print_timeout_seconds: float = Field(
        default=120.0,
        description="Timeout for the print-to-PDF step"
    )
    map_settle_ms: int = Field(
        default=3000,
        description="Extra wait after network idle before printing overview maps"
    )

    # Application Settings
    app_name: str = Field(
        default="Mailbox Directory Export API",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode flag (adds tracebacks to error bodies)"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_file: str = Field(
        default="logs/api.log",
        description="Path to log file"
    )

    class Config:
        """Pydantic config."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

        # Allow extra fields from environment
        extra = "ignore"

        # Example values for documentation
        json_schema_extra = {
            "example": {
                "data_dir": "public",
                "enrichment_batch_size": 5,
                "export_timeout_seconds": 300,
                "debug": False,
                "log_level": "INFO"
            }
        }


# Create a singleton instance
settings = Settings()
