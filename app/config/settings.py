import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    SQLite is only meant for local development; set DATABASE_URL to a
    PostgreSQL connection string everywhere else.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "coaching.db"
    db_url = f"sqlite:///{db_path.resolve()}"
    logger.warning(f"Using SQLite database (LOCAL DEV ONLY): {db_url}")
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    strict_archive: bool = Field(
        default=True,
        validation_alias="STRICT_ARCHIVE",
        description="Archiving an already archived plan raises instead of being a no-op",
    )
    missing_day_label: str = Field(
        default="Día eliminado",
        validation_alias="MISSING_DAY_LABEL",
        description="Label shown for scheduled strength sessions whose day no longer exists",
    )
    max_program_weeks: int = Field(default=52, validation_alias="MAX_PROGRAM_WEEKS")
    default_program_weeks: int = Field(default=4, validation_alias="DEFAULT_PROGRAM_WEEKS")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("max_program_weeks", "default_program_weeks")
    @classmethod
    def validate_weeks(cls, value: int) -> int:
        """Program week bounds must be positive."""
        if value < 1:
            raise ValueError("Program weeks must be at least 1")
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
