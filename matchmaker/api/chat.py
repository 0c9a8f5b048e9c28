"""Chat search endpoints.

``POST /api/chat`` runs one conversational search turn. The service keeps
no conversation state: the client sends the history (and, for refinements,
the earlier result set) with every turn, so ``POST /api/reset`` only
acknowledges that the client cleared its own state.
"""

import structlog
from fastapi import APIRouter, Depends, Request
from matchmaker.core.config import settings
from matchmaker.core.dependencies import get_search_service
from matchmaker.core.errors import InternalServerError, MatchmakerError
from matchmaker.core.rate_limit import limiter
from matchmaker.schemas.search import ChatResponse, ResetResponse, SearchRequest
from matchmaker.services.search_service import SearchService

router = APIRouter(prefix="/api", tags=["chat"])
logger = structlog.get_logger(__name__)

RESET_MESSAGE = "Conversation cleared. New search started."


@router.post("/chat", response_model=ChatResponse)
@limiter.limit(settings.CHAT_RATE_LIMIT)
async def chat(
    request: Request,
    payload: SearchRequest,
    service: SearchService = Depends(get_search_service),
) -> ChatResponse:
    """Search (or refine) and summarise the matches."""
    logger.info(
        "chat_request_received",
        is_refinement=payload.is_refinement,
        existing_results=len(payload.existing_results),
        history_turns=len(payload.conversation_history),
    )
    try:
        return await service.chat(payload)
    except MatchmakerError:
        raise
    except Exception as exc:
        logger.error("chat_request_failed", error_type=type(exc).__name__, error=str(exc), exc_info=True)
        raise InternalServerError("An error occurred while processing your request", str(exc)) from exc


@router.post("/reset", response_model=ResetResponse)
async def reset_conversation() -> ResetResponse:
    return ResetResponse(message=RESET_MESSAGE)
