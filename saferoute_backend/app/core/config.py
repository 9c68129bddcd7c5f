"""
SafeRoute — Application Configuration
Uses pydantic-settings to load from .env file and environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Central configuration loaded from environment variables / .env file."""

    # ── MongoDB ──
    mongodb_uri: str = Field(
        default="mongodb://localhost:27017/saferoute",
        description="MongoDB connection string for the community feedback store",
    )
    mongodb_db_name: str = Field(default="saferoute", description="Database name")

    # ── API Server ──
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    debug: bool = Field(default=True)

    # ── CORS ──
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:8080"],
        description="Browser origins allowed to call the API (JSON list in env)",
    )

    # ── Community Feedback ──
    feedback_cooldown_hours: float = Field(
        default=24.0, description="Hours a user must wait before re-rating the same grid cell"
    )
    store_timeout_seconds: float = Field(
        default=5.0, description="Default timeout for a single community store call"
    )
    store_max_retries: int = Field(
        default=10, ge=1, description="Attempts to create a new grid cell when concurrent upserts collide"
    )
    area_reports_limit: int = Field(default=10, ge=1, le=100)

    # ── Route Sampling ──
    route_sample_interval: int = Field(
        default=5, ge=1, description="Keep every Nth decoded polyline vertex"
    )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


# Singleton instance
settings = Settings()
