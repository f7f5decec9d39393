"""
Centralized configuration for the Theatre Stock backend.

All environment variables and settings should be defined here
to avoid duplication across modules.
"""
import os
from dataclasses import replace
from functools import lru_cache

from theatre.stock_import import Config, default_config, load_config


class Settings:
    """Application settings loaded from environment variables."""

    # CORS - comma-separated list of allowed origins
    ALLOWED_ORIGINS: list = os.environ.get(
        "ALLOWED_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173"
    ).split(",")

    # Database
    DB_PATH: str = os.environ.get("THEATRE_DB_PATH", "data/theatre_stock.db")

    # Import engine: config file (empty = shipped config) and write group override (0 = use config)
    IMPORT_CONFIG: str = os.environ.get("THEATRE_IMPORT_CONFIG", "")
    WRITE_GROUP_SIZE: int = int(os.environ.get("THEATRE_WRITE_GROUP_SIZE", "0"))

    # Rows echoed back by the import preview
    PREVIEW_ROWS: int = 20


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


@lru_cache
def get_import_config() -> Config:
    """Engine config for this service, with the environment's write group size applied."""
    current = get_settings()
    config = load_config(current.IMPORT_CONFIG) if current.IMPORT_CONFIG else default_config()
    if current.WRITE_GROUP_SIZE:
        # Config.__post_init__ rejects sizes outside 1..500
        config = replace(config, settings=replace(config.settings, write_group_size=current.WRITE_GROUP_SIZE))
    return config


# Singleton instance for easy import
settings = get_settings()
