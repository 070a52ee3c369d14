"""
Core module - Configuration, logging, database and image storage.
"""

from school_directory.core.config import Settings, get_settings, settings
from school_directory.core.database import (
    Base,
    DatabaseGateway,
    StoreError,
    StoreErrorKind,
    close_db,
    get_db,
    init_db,
)
from school_directory.core.logging import configure_logging
from school_directory.core.storage import ImageStore, get_image_store

__all__ = [
    # Config
    "Settings",
    "settings",
    "get_settings",
    # Logging
    "configure_logging",
    # Database
    "Base",
    "DatabaseGateway",
    "StoreError",
    "StoreErrorKind",
    "get_db",
    "init_db",
    "close_db",
    # Images
    "ImageStore",
    "get_image_store",
]
