"""Configuration management for fuzzyrank."""

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

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/fuzzyrank.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Fuzzy Search Configuration
    fuzzy_default_column: str = Field(
        default="name", description="Column searched when a request does not name any columns"
    )
    fuzzy_debug_logging: bool = Field(
        default=False, description="Emit search plan and failure diagnostics for every request"
    )


# Application Constants
class Constants:
    """Application-wide constants."""

    # Permutation bounds
    MAX_PERMUTATION_TERM_LENGTH: int = 10  # Longer terms produce no typo variants
    MAX_OMISSION_TERM_LENGTH: int = 5  # Omissions and substitutions only for short terms

    # Record store access
    ID_FIELD: str = "id"
    SCAN_PAGE_SIZE: int = 500  # Page size used when scanning the base filtered set
    ID_FETCH_CHUNK_SIZE: int = 500  # Max ids bound per "id IN (...)" query

    # Schema fallback when column discovery fails
    FALLBACK_COLUMNS: tuple[str, ...] = ("id", "created", "updated")


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
