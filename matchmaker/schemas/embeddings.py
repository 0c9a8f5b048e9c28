"""
Embedding maintenance request and response schemas
"""

from typing import Any, List, Optional

from pydantic import BaseModel, field_validator


class BackfillRequest(BaseModel):
    """Backfill request; no ids means every profile"""

    ids: Optional[List[int]] = None

    @field_validator("ids", mode="before")
    @classmethod
    def ignore_non_list_ids(cls, value: Any) -> Optional[List[Any]]:
        if not isinstance(value, list) or not value:
            return None
        return value


class SyncRequest(BaseModel):
    """Sync request for profiles flagged as dirty"""

    limit: Optional[int] = None


class EmbeddingFailure(BaseModel):
    id: int
    error: str


class EmbeddingJobResult(BaseModel):
    """Outcome of a backfill or sync run.

    Backfill reports ``total``; sync reports ``checked``.
    """

    updated: int
    total: Optional[int] = None
    checked: Optional[int] = None
    message: str
    errors: Optional[List[EmbeddingFailure]] = None
