"""Embedding maintenance endpoints.

Both endpoints use the service-role database connection. They accept an
optional JSON body; a missing or unparsable body means "use the defaults".
"""

import json
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Request
from matchmaker.core.dependencies import get_embedding_sync_service
from matchmaker.core.errors import InternalServerError, InvalidRequestError, MatchmakerError
from matchmaker.schemas.embeddings import BackfillRequest, EmbeddingJobResult, SyncRequest
from matchmaker.services.embedding_sync import EmbeddingSyncService
from pydantic import ValidationError

router = APIRouter(prefix="/api/embeddings", tags=["embeddings"])
logger = structlog.get_logger(__name__)


async def _read_optional_json(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        logger.debug("embeddings_body_unparsable", path=request.url.path)
        return {}
    return body if isinstance(body, dict) else {}


@router.post("", response_model=EmbeddingJobResult, response_model_exclude_none=True)
async def backfill_embeddings(
    request: Request,
    service: EmbeddingSyncService = Depends(get_embedding_sync_service),
) -> EmbeddingJobResult:
    """Generate embeddings for all profiles, or only for ``ids``."""
    try:
        payload = BackfillRequest.model_validate(await _read_optional_json(request))
    except ValidationError as exc:
        raise InvalidRequestError("Invalid request", str(exc.errors()[0]["msg"])) from exc

    try:
        return await service.backfill(payload.ids)
    except MatchmakerError as exc:
        raise InternalServerError(f"Failed to fetch profiles: {exc.message}", exc.details) from exc
    except Exception as exc:
        logger.error("embedding_backfill_failed", error=str(exc), exc_info=True)
        raise InternalServerError("An error occurred while processing embeddings", str(exc)) from exc


@router.post("/sync", response_model=EmbeddingJobResult, response_model_exclude_none=True)
async def sync_embeddings(
    request: Request,
    service: EmbeddingSyncService = Depends(get_embedding_sync_service),
) -> EmbeddingJobResult:
    """Regenerate embeddings for profiles flagged as dirty (cron or "Sync Now")."""
    try:
        payload = SyncRequest.model_validate(await _read_optional_json(request))
    except ValidationError as exc:
        raise InvalidRequestError("Invalid request", str(exc.errors()[0]["msg"])) from exc

    try:
        return await service.sync(payload.limit)
    except MatchmakerError as exc:
        raise InternalServerError(f"Failed to fetch profiles: {exc.message}", exc.details) from exc
    except Exception as exc:
        logger.error("embedding_sync_failed", error=str(exc), exc_info=True)
        raise InternalServerError("An error occurred while syncing embeddings", str(exc)) from exc
