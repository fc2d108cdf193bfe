"""Configuration management for family-tasks."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Configuration
    sqlite_db_path: str = Field(default="data/family_tasks.sqlite3", description="SQLite document store path")
    media_root: str = Field(default="data/uploads", description="Root directory for per-task media files")

    # Calendar Configuration
    timezone: str = Field(default="UTC", description="IANA timezone used to decide what 'today' is")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name")

    # Recurrence Configuration
    generate_on_startup: bool = Field(
        default=True, description="Generate today's recurring task instances when the app starts"
    )

    @property
    def is_production(self) -> bool:
        """Return True when running in production."""
        return self.environment.lower() == "production"


# Application Constants
class Constants:
    """Application-wide constants."""

    # Document collections
    TASKS_COLLECTION: str = "todo_tasks"
    PERIODIC_TASKS_COLLECTION: str = "periodic_tasks"
    TASK_INDEX_COLLECTION: str = "task_index"
    PERIODIC_INDEX_COLLECTION: str = "periodic_index"

    # Singleton document ids
    MONTHLY_INDEX_DOC_ID: str = "monthly"
    PERIODIC_INDEX_DOC_ID: str = "rules"

    # Month bucket key format
    MONTH_KEY_FORMAT: str = "%Y-%m"

    # Id prefixes
    PERIODIC_TASK_ID_PREFIX: str = "pt_"

    # Recurrence limits
    WEEKDAY_MIN: int = 0  # Monday
    WEEKDAY_MAX: int = 6  # Sunday
    MONTH_DAY_MIN: int = 1
    MONTH_DAY_MAX: int = 31

    # Preview limits
    MAX_PREVIEW_OCCURRENCES: int = 366
    MAX_BACKFILL_DAYS: int = 3660  # ~10 years


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
