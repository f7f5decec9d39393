"""
Pydantic request/response models for the API.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


# ============== Import ==============

class ImportCommitRequest(BaseModel):
    """Table echoed back from the preview plus the operator-confirmed mapping."""
    headers: List[str]
    rows: List[List[Any]]
    mapping: Dict[str, Optional[int]]  # field name -> column index, null = unmapped
    desc_only: bool = False
    dry_run: bool = False


# ============== Bulk edits ==============

class BulkOperationRequest(BaseModel):
    field: str
    op: str
    tags: List[str] = Field(default_factory=list)
    value: str = ""
    storage_id: Optional[str] = None
    create_storage: bool = False
    room: str = ""
    new_storage_name: str = ""
    drawer: str = ""
    slot: str = ""


class BulkApplyRequest(BaseModel):
    ids: List[str]
    operation: BulkOperationRequest


class BulkDeleteRequest(BaseModel):
    ids: List[str]
