"""Async client for the Matchmaker Search API.

``SearchSession`` holds the state of one conversation on the client side:
the first search fixes the result set, and every later query is sent as a
refinement of that set together with the conversation so far. The server is
stateless, so clearing this object is all a reset needs.

Usage:
    async with SearchSession("http://localhost:8000") as session:
        filters = SearchFilters(states=["CA"], min_age=30, max_age=40, min_height=60, max_height=75)
        first = await session.search("outdoorsy, loves hiking", filters)
        refined = await session.search("only the ones who mention dogs", filters)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import structlog

logger = structlog.get_logger(__name__)

US_STATES = (
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
)  # fmt: skip

WHOLE_DATABASE_TOP_K = 10000
UNKNOWN_ERROR = "Unknown error occurred"


class SearchValidationError(ValueError):
    """The query or filters were rejected before any request was sent."""


class SearchRequestError(RuntimeError):
    """The API call failed: an error status, a transport error or an unreadable body.

    ``status_code`` is None when no HTTP response was received.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class SearchFilters:
    states: List[str] = field(default_factory=list)
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    min_height: Optional[int] = None  # inches
    max_height: Optional[int] = None  # inches
    gender: Optional[str] = None

    def validate(self) -> None:
        if not self.states:
            raise SearchValidationError("Please select at least one state")
        unknown = [state for state in self.states if state.upper() not in US_STATES]
        if unknown:
            raise SearchValidationError(f"Unknown state code(s): {', '.join(unknown)}")
        if self.min_age is None or self.max_age is None:
            raise SearchValidationError("Please enter both minimum and maximum age")
        if self.min_height is None or self.max_height is None:
            raise SearchValidationError("Please enter both minimum and maximum height")
        if self.min_age > self.max_age:
            raise SearchValidationError("Minimum age cannot be greater than maximum age")
        if self.min_height > self.max_height:
            raise SearchValidationError("Minimum height cannot be greater than maximum height")


@dataclass
class ConversationTurn:
    role: str
    content: str
    results: Optional[List[Dict[str, Any]]] = None


class SearchSession:
    """One search conversation against the API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.conversation_history: List[ConversationTurn] = []
        self.results: List[Dict[str, Any]] = []
        self.all_results: List[Dict[str, Any]] = []

    async def __aenter__(self) -> "SearchSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def is_refining(self) -> bool:
        """True once the first search has produced the result set to refine."""
        return bool(self.all_results)

    def _build_request(self, query: str, filters: SearchFilters) -> Dict[str, Any]:
        is_refinement = self.is_refining
        body: Dict[str, Any] = {
            "message": query,
            "gender": filters.gender or None,
            "minAge": filters.min_age,
            "maxAge": filters.max_age,
            "states": list(filters.states),
            "minHeight": filters.min_height,
            "maxHeight": filters.max_height,
            "topK": WHOLE_DATABASE_TOP_K,
            "conversationHistory": [{"role": turn.role, "content": turn.content} for turn in self.conversation_history],
            "isRefinement": is_refinement,
        }
        if is_refinement:
            body["existingResults"] = self.all_results
        return {key: value for key, value in body.items() if value is not None}

    async def search(self, query: str, filters: SearchFilters) -> Dict[str, Any]:
        """
        Send one query and record the turn.

        Raises:
            SearchValidationError: If the query or filters are incomplete
            SearchRequestError: If the request fails for any reason; the error
                is also recorded as an assistant turn
        """
        if not query or not query.strip():
            raise SearchValidationError("Please enter a search query")
        filters.validate()

        is_first_query = not self.is_refining
        body = self._build_request(query, filters)
        logger.debug(
            "search_request_prepared",
            is_refinement=body["isRefinement"],
            existing_results=len(body.get("existingResults", [])),
        )

        try:
            response = await self._client.post("/api/chat", json=body)
            if response.is_error:
                raise SearchRequestError(_error_message(response), response.status_code)
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError("Unexpected response from server")
        except SearchRequestError as exc:
            self._record_error(str(exc))
            raise
        except (httpx.HTTPError, ValueError) as exc:
            message = str(exc) or UNKNOWN_ERROR
            self._record_error(message)
            raise SearchRequestError(message) from exc

        results = data.get("results") or []
        self.conversation_history.append(ConversationTurn(role="user", content=query))
        self.conversation_history.append(
            ConversationTurn(role="assistant", content=data.get("answer") or "", results=results)
        )
        self.results = results
        if is_first_query:
            self.all_results = results
        return data

    def _record_error(self, message: str) -> None:
        logger.warning("search_request_failed", error=message)
        self.conversation_history.append(ConversationTurn(role="assistant", content=f"Error: {message}"))

    async def reset(self) -> str:
        """Forget the conversation and start over."""
        self.conversation_history = []
        self.results = []
        self.all_results = []

        message = "Conversation cleared. New search started."
        try:
            response = await self._client.post("/api/reset")
            response.raise_for_status()
            message = response.json().get("message", message)
        except httpx.HTTPError as exc:
            # Local state is already cleared; the server keeps none
            logger.warning("reset_request_failed", error=str(exc))
        return message

    async def open_profile(self, profile_id: int) -> Dict[str, Any]:
        """Full profile with images, as returned by ``/api/profile/{id}``."""
        response = await self._client.get(f"/api/profile/{profile_id}")
        if response.is_error:
            raise SearchRequestError("Failed to load profile", response.status_code)
        return response.json()

    async def sync_now(self, limit: int = 100) -> str:
        response = await self._client.post("/api/embeddings/sync", json={"limit": limit})
        if response.is_error:
            raise SearchRequestError("Sync failed", response.status_code)
        data = response.json()
        return data.get("message") or f"Updated {data.get('updated', 0)} profiles"

    async def backfill_all(self) -> str:
        response = await self._client.post("/api/embeddings")
        if response.is_error:
            raise SearchRequestError("Backfill failed", response.status_code)
        data = response.json()
        return data.get("message") or f"Successfully generated embeddings for {data.get('updated', 0)} profiles"


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or "Search failed"
    if not isinstance(payload, dict):
        return "Search failed"
    if payload.get("details"):
        return f"{payload.get('error')}: {payload['details']}"
    return payload.get("error") or "Search failed"
