"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://catalog:catalog_dev_password@db:5432/catalog"
    auto_create_tables: bool = False

    # Authentication: bearer token -> editor name (JSON in the environment)
    editor_tokens: dict[str, str] = {"dev-editor-token-change-in-production": "editor"}

    # Querying
    default_page_size: int = 12
    max_page_size: int = 100
    quick_search_limit: int = 20

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
