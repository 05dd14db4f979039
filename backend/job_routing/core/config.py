"""
Application configuration settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Job Route Efficiency Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/api/v1"
    MAX_JOBS_PER_REQUEST: int = 500

    # Clustering
    CLUSTER_RADIUS_MILES: float = 8.0
    CLUSTER_WORKERS: int = 4  # Worker pool size for per-cluster ordering/scoring

    # Drive time estimation (straight-line approximation, no road network)
    AVERAGE_SPEED_MPH: float = 28.0  # Mixed urban/suburban
    STOP_OVERHEAD_MINUTES: float = 3.0  # Parking, unloading

    # Anchor matching
    MAX_DETOUR_MINUTES: float = 15.0  # One-way from the anchor

    # Efficiency scoring
    HOME_BASE_LATITUDE: Optional[float] = None
    HOME_BASE_LONGITUDE: Optional[float] = None
    DENSITY_NORMALIZER: float = 20.0  # Jobs per mile treated as "maximally dense"

    # API Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_CLUSTER: str = "60/minute"
    RATE_LIMIT_DEFAULT: str = "200/minute"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Observability
    METRICS_ENABLED: bool = True
    METRICS_PATH: str = "/metrics"

    def validate_production_settings(self) -> None:
        """Validate critical settings for production environment."""
        import logging
        import warnings

        logger = logging.getLogger(__name__)

        if self.ENVIRONMENT == "production":
            if self.DEBUG:
                raise ValueError("DEBUG must be False in production")

            insecure_origins = [o for o in self.CORS_ORIGINS if "localhost" in o or "127.0.0.1" in o]
            if insecure_origins:
                warnings.warn(
                    f"CORS_ORIGINS contains localhost entries: {insecure_origins}. "
                    "Consider removing for production.",
                    UserWarning,
                )

            if self.HOME_BASE_LATITUDE is None or self.HOME_BASE_LONGITUDE is None:
                logger.warning(
                    "HOME_BASE_LATITUDE/HOME_BASE_LONGITUDE not configured. "
                    "Drive time saved uses the synthetic pairwise baseline."
                )

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
