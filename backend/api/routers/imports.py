"""
Import API router - preview an upload, then commit it with a confirmed mapping.
"""
import logging
from dataclasses import asdict

from fastapi import APIRouter, File, HTTPException, UploadFile

from backend.api.models import ImportCommitRequest
from backend.core.config import get_import_config, settings
from backend.core.db import SqliteInventoryStore
from theatre.stock_import import (
    BatchCommitError,
    ColumnMapping,
    HeaderMapper,
    ImportValidationError,
    parse_bytes,
    parse_grid,
    run_import,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/import", tags=["Import"])


@router.post("/preview")
async def preview_import(file: UploadFile = File(...)):
    """
    Parse an uploaded CSV/XLSX and suggest a column mapping.

    Nothing is written; the client sends headers, rows and the edited
    mapping back to /api/import/commit.
    """
    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    try:
        table = parse_bytes(contents, file.filename or "")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.warning(f"Could not read upload {file.filename}: {e}")
        raise HTTPException(status_code=400, detail=f"Could not read file: {e}")

    if not any(table.headers):
        raise HTTPException(status_code=400, detail="File has no header row")

    mapping = HeaderMapper(get_import_config().header_aliases).suggest_mapping(table.headers)
    logger.info(f"Previewed {file.filename}: {len(table.rows)} rows, {len(mapping.columns)} fields mapped")

    return {
        "filename": file.filename,
        "headers": table.headers,
        "row_count": len(table.rows),
        "preview": table.rows[:settings.PREVIEW_ROWS],
        "rows": table.rows,
        "suggested_mapping": mapping.to_dict(),
    }


@router.post("/commit")
def commit_import(request: ImportCommitRequest):
    """
    Normalize, reconcile and write the table.

    400 for input errors (nothing written). 502 when a write group fails;
    the detail says how many groups were committed before it.
    """
    try:
        mapping = ColumnMapping.from_dict(request.mapping)
        table = parse_grid([request.headers, *request.rows])
        result = run_import(
            SqliteInventoryStore(),
            table,
            mapping,
            desc_only=request.desc_only,
            config=get_import_config(),
            dry_run=request.dry_run,
        )
    except ImportValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BatchCommitError as e:
        raise HTTPException(status_code=502, detail=e.to_dict())

    return asdict(result)
