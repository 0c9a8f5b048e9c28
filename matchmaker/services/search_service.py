"""Conversational search orchestration.

A chat turn is either a *new search* or a *refinement*:

- New search: embed the query, run the hybrid search procedure with the
  requested filters, and summarise the ranked rows.
- Refinement: the client sends back the result set of its first search and
  the model narrows it down; the database is not queried again.

Either way the full result list is returned to the client and only the top
``MAX_RESULTS_FOR_AI`` rows are shown to the model.
"""
from __future__ import annotations

from typing import List, Optional

import structlog
from matchmaker.core.config import get_settings
from matchmaker.core.errors import InvalidRequestError
from matchmaker.schemas.search import ChatResponse, ProfileMatch, SearchRequest
from matchmaker.services.llm_client import LLMClient
from matchmaker.services.profile_repository import HybridSearchParams, ProfileRepository
from matchmaker.services.prompts import (
    AppliedFilters,
    build_messages,
    build_system_prompt,
    build_user_prompt,
    format_result_for_llm,
)

logger = structlog.get_logger(__name__)


class SearchService:
    """Runs one chat turn end to end."""

    def __init__(self, repository: ProfileRepository, llm_client: LLMClient) -> None:
        self.repository = repository
        self.llm_client = llm_client
        self.settings = get_settings()

    async def chat(self, request: SearchRequest) -> ChatResponse:
        message = request.message
        if not isinstance(message, str) or not message.strip():
            raise InvalidRequestError("Message is required and must be a non-empty string")

        if request.is_refinement and request.existing_results:
            logger.info("chat_refinement_started", existing_count=len(request.existing_results))
            results = list(request.existing_results)
        else:
            results = await self._search(request)

        formatted = [format_result_for_llm(match.model_dump()) for match in results]
        results_for_ai = formatted[: self.settings.MAX_RESULTS_FOR_AI]
        logger.debug("chat_results_formatted", total=len(formatted), sent_to_llm=len(results_for_ai))

        system_prompt = build_system_prompt(
            is_refinement=request.is_refinement,
            total=len(results),
            shown=len(results_for_ai),
            max_results_for_ai=self.settings.MAX_RESULTS_FOR_AI,
        )
        user_prompt = build_user_prompt(message, self._applied_filters(request), len(results), results_for_ai)
        messages = build_messages(
            system_prompt,
            [turn.model_dump() for turn in request.conversation_history],
            user_prompt,
        )

        llm_response = await self.llm_client.complete(messages)
        logger.info(
            "llm_summary_generated",
            is_refinement=request.is_refinement,
            result_count=len(results),
            tokens=llm_response.used_tokens,
        )
        return ChatResponse(answer=llm_response.text, results=results)

    async def _search(self, request: SearchRequest) -> List[ProfileMatch]:
        selected_states = self._selected_states(request)
        state = request.state or None
        if not state and len(selected_states) == 1:
            state = selected_states[0]

        logger.info("chat_search_started", message_length=len(request.message))
        query_embedding = await self.llm_client.embed(request.message)

        params = HybridSearchParams(
            query_text=request.message,
            query_embedding=query_embedding,
            alpha=request.alpha if request.alpha is not None else self.settings.SEARCH_DEFAULT_ALPHA,
            match_count=request.top_k or self.settings.SEARCH_DEFAULT_TOP_K,
            gender=request.gender or None,
            min_age=request.min_age or None,
            max_age=request.max_age or None,
            state=state,
        )
        rows = await self.repository.hybrid_search(params)

        if len(selected_states) > 1:
            rows = [row for row in rows if (row.get("state") or "").upper() in selected_states]
            logger.debug("chat_results_filtered_by_state", states=selected_states, remaining=len(rows))

        return [ProfileMatch.model_validate(row) for row in rows]

    @staticmethod
    def _selected_states(request: SearchRequest) -> List[str]:
        return [state.strip().upper() for state in request.states or [] if state and state.strip()]

    @staticmethod
    def _applied_filters(request: SearchRequest) -> AppliedFilters:
        states: Optional[List[str]] = request.states or None
        return AppliedFilters(
            gender=request.gender,
            min_age=request.min_age,
            max_age=request.max_age,
            state=request.state,
            states=states,
            min_height=request.min_height,
            max_height=request.max_height,
        )
