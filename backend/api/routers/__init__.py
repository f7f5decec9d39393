"""
API Routers package.

Each module contains a FastAPI router for a specific domain.
"""

from .imports import router as imports_router
from .items import router as items_router
from .storages import router as storages_router
from .activities import router as activities_router

__all__ = [
    "imports_router",
    "items_router",
    "storages_router",
    "activities_router",
]
