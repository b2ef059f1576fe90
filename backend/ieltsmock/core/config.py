"""
Application configuration settings.
"""

from typing import List, Literal, Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "IELTS Mock Exam API"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # API
    API_V1_PREFIX: str = "/v1"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
    ]

    # Database
    DATABASE_URL: str = "sqlite:///./ieltsmock.db"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10  # Number of connections to maintain
    DB_POOL_MAX_OVERFLOW: int = 20  # Max extra connections when pool exhausted
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for available connection
    DB_POOL_RECYCLE: int = 3600  # Recycle connections after 1 hour

    # Scoring
    # Listening/Reading band tables are defined against a fixed 40-item scale
    # regardless of how many questions a particular test actually carries.
    BAND_TABLE_SCALE: int = Field(
        default=40,
        gt=0,
        description="Item count the Listening/Reading band tables are defined against",
    )
    # Writing Task 2 carries twice the weight of Task 1 when only task bands
    # are supplied by the grader.
    WRITING_TASK2_WEIGHT: int = Field(
        default=2,
        ge=1,
        description="Relative weight of Task 2 against Task 1 (weight 1)",
    )
    # Recompute the cached assignment Result after an instructor grades a
    # Writing/Speaking session.
    MATERIALIZE_ON_GRADE: bool = True

    # OpenTelemetry metrics (no-op unless an SDK meter provider is installed)
    OTEL_METRICS_ENABLED: bool = False
    OTEL_SERVICE_NAME: str = "ieltsmock-backend"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @model_validator(mode="after")
    def validate_database_url(self) -> Self:
        """Reject an empty DATABASE_URL in production."""
        if self.ENV == "production" and not self.DATABASE_URL:
            raise ValueError("DATABASE_URL must be set when ENV=production")
        if self.ENV == "production" and self.DATABASE_URL.startswith("sqlite"):
            raise ValueError(
                "SQLite is not supported in production; set DATABASE_URL to a "
                "PostgreSQL connection string"
            )
        return self


settings = Settings()
