"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./assettrack.db"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute, 0 disables)
    RATE_LIMIT_API: int = 120
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # Identity issuance
    DEFAULT_IDENTITY_NAMESPACE: str = "1"  # Used when a customer key is missing or malformed
    IDENTITY_SEQUENCE_WIDTH: int = 0  # 0 keeps the plain "<namespace>-<n>" form
    IDENTITY_CLAIM_MAX_ATTEMPTS: int = 3

    # Job numbers
    JOB_NUMBER_MAX_ATTEMPTS: int = 3

    # Catalog search
    CATALOG_SEARCH_MIN_CHARS: int = 2
    CATALOG_SEARCH_LIMIT: int = 50
    CATALOG_SEARCH_MAX_WORKERS: int = 4

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()
