"""
Database package for the Theatre Stock backend.

    from backend.core.db import get_db, list_items, SqliteInventoryStore
"""

# Base - connection, initialization
from .base import (
    DB_PATH,
    get_db,
    init_db,
    create_schema,
)

# Items
from .items import (
    list_items,
    get_item,
    count_items,
)

# Storages
from .storages import (
    list_storages,
    get_storage,
)

# Activities
from .activities import (
    log_activity,
    list_activities,
)

# Engine store
from .store import SqliteInventoryStore

__all__ = [
    "DB_PATH",
    "get_db",
    "init_db",
    "create_schema",
    "list_items",
    "get_item",
    "count_items",
    "list_storages",
    "get_storage",
    "log_activity",
    "list_activities",
    "SqliteInventoryStore",
]
