"""
Activity log API router.
"""
from fastapi import APIRouter, Query

from backend.core.db import list_activities

router = APIRouter(prefix="/api/activities", tags=["Activities"])


@router.get("")
def get_activities(limit: int = Query(50, ge=1, le=500)):
    """Most recent imports, bulk edits and bulk deletes."""
    return {"activities": list_activities(limit=limit)}
