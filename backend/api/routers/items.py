"""
Items API router - listing, CSV export, bulk edit and bulk delete.
"""
from dataclasses import asdict
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse

from backend.api.models import BulkApplyRequest, BulkDeleteRequest
from backend.core.config import get_import_config
from backend.core.db import SqliteInventoryStore, list_items, list_storages
from theatre.stock_import import (
    BatchCommitError,
    BulkMutationEngine,
    BulkOperation,
    BulkValidationError,
    StorageRecord,
    export_inventory_csv,
    stock_level,
)

router = APIRouter(prefix="/api/items", tags=["Items"])

STOCK_LEVELS = {"below", "over", "ok"}


def _engine() -> BulkMutationEngine:
    return BulkMutationEngine(SqliteInventoryStore(), get_import_config())


@router.get("")
def get_items(level: Optional[str] = Query(None)):
    """List items with their stock level; optionally only one level."""
    if level is not None and level not in STOCK_LEVELS:
        raise HTTPException(status_code=400, detail=f"level must be one of {', '.join(sorted(STOCK_LEVELS))}")

    items = []
    for item in list_items():
        item["stock_level"] = stock_level(item)
        if level is None or item["stock_level"] == level:
            items.append(item)
    return {"items": items, "count": len(items)}


@router.get("/export")
def export_items():
    """Download the inventory as CSV."""
    storages = [StorageRecord(id=s["id"], name=s["name"], room=s["room"]) for s in list_storages()]
    content = export_inventory_csv(list_items(), storages)
    filename = f"theatre_inventory_{datetime.now().strftime('%Y%m%d')}.csv"

    def iterfile():
        yield content

    return StreamingResponse(
        iterfile(),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""}
    )


@router.post("/bulk")
def bulk_apply(request: BulkApplyRequest):
    """Apply one field edit to every selected item."""
    try:
        operation = BulkOperation.from_dict(request.operation.model_dump())
        result = _engine().apply(request.ids, operation)
    except BulkValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BatchCommitError as e:
        raise HTTPException(status_code=502, detail=e.to_dict())
    return asdict(result)


@router.post("/bulk-delete")
def bulk_delete(request: BulkDeleteRequest):
    """Delete every selected item."""
    try:
        result = _engine().delete(request.ids)
    except BulkValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BatchCommitError as e:
        raise HTTPException(status_code=502, detail=e.to_dict())
    return asdict(result)
