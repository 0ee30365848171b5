"""
Application configuration using Pydantic settings.
"""
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Scoring Configuration
    default_score_formula: str = Field(
        default="area_based_v1",
        description="Score formula used when a request does not name one"
    )

    # Pricing Configuration
    base_points_per_hour: float = Field(
        default=50.0,
        description="Production rate of a single climber with manual equipment"
    )
    per_person_wage: float = Field(
        default=35.0,
        description="Hourly wage per crew member used for labor cost"
    )
    min_effective_rate: float = Field(
        default=0.01,
        description="Lower clamp for the effective points-per-hour rate"
    )
    rate_table_path: Optional[str] = Field(
        default=None,
        description="Optional JSON file replacing the built-in rate table"
    )

    # Calculation Cache
    cache_ttl_seconds: float = Field(
        default=60.0,
        description="Age in seconds after which a cached result is recomputed"
    )
    cache_max_entries: int = Field(
        default=2048,
        description="Maximum number of cached results kept in memory"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum requests per minute per client"
    )
    rate_limit_enabled: bool = Field(
        default=True,
        description="Apply the per-client request limit"
    )

    # Application Settings
    app_name: str = Field(
        default="TreeShop Estimating Engine",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Return tracebacks from unhandled errors instead of a generic 500"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
