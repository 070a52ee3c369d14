"""
Application Configuration

Settings are read from environment variables (and an optional .env file)
through pydantic-settings. Database credentials have no defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

DEFAULT_SCHOOL_IMAGE_URL = (
    "https://images.unsplash.com/photo-1580582932707-520aed937b7b?w=400&h=300&fit=crop"
)


class Settings(BaseSettings):
    """Runtime settings for the School Directory API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    python_env: str = "development"
    log_level: str = "INFO"

    # Database
    database_url: str | None = None
    db_driver: str = "postgresql+asyncpg"
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str | None = None
    db_password: str | None = None
    db_name: str = "school_management"
    db_ssl: bool = False
    db_echo: bool = False

    # Images
    image_mode: Literal["upload", "default"] = "upload"
    upload_dir: str = "public/schoolImages"
    max_image_bytes: int = 5 * 1024 * 1024
    default_image_url: str = DEFAULT_SCHOOL_IMAGE_URL

    # CORS
    cors_origins: str = "*"

    @property
    def is_development(self) -> bool:
        return self.python_env == "development"

    @property
    def is_production(self) -> bool:
        return self.python_env == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def database_connection_url(self) -> URL:
        """
        Build the SQLAlchemy URL for the store.

        DATABASE_URL wins when set; otherwise the URL is assembled from the
        DB_* parts so the password never needs escaping by hand.
        """
        if self.database_url:
            return make_url(self.database_url)
        return URL.create(
            drivername=self.db_driver,
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()


settings = get_settings()
