"""
Storages API router.
"""
from fastapi import APIRouter

from backend.core.db import list_storages

router = APIRouter(prefix="/api/storages", tags=["Storages"])


@router.get("")
def get_storages():
    """List storages with the number of items placed in each."""
    storages = list_storages()
    return {"storages": storages, "count": len(storages)}
