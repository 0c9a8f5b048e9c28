"""OpenAI client wrapper for embeddings and chat completions.

A single ``AsyncOpenAI`` instance serves both the query/profile embeddings
and the summary completions. Transient failures are retried with
exponential backoff. Every API attempt runs inside the shared ``openai``
circuit breaker: repeated failures open it, and while it is open calls fail
fast without reaching the API.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import structlog
from matchmaker.core.config import get_settings
from matchmaker.core.errors import ConfigurationError, EmbeddingError, LLMError
from matchmaker.core.resilience import openai_breaker, retry_openai_operation
from openai import AsyncOpenAI, OpenAIError
from pybreaker import CircuitBreakerError

logger = structlog.get_logger(__name__)

DEFAULT_ANSWER = "Unable to generate summary."
OPENAI_UNAVAILABLE = "OpenAI API is temporarily unavailable (circuit breaker open)"


@dataclass
class LLMResponse:
    text: str
    model_name: str
    used_tokens: int
    latency_ms: float
    finish_reason: str


class LLMClient:
    """High-level interface for the embedding and chat models."""

    def __init__(
        self,
        chat_model: Optional[str] = None,
        embedding_model: Optional[str] = None,
        openai_client: Optional[AsyncOpenAI] = None,
    ) -> None:
        settings = get_settings()

        self.chat_model = chat_model or settings.OPENAI_CHAT_MODEL
        self.embedding_model = embedding_model or settings.OPENAI_EMBEDDING_MODEL
        self.embedding_dimensions = settings.EMBEDDING_DIMENSIONS

        self.openai_client = openai_client
        if self.openai_client is None:
            if settings.OPENAI_API_KEY:
                self.openai_client = AsyncOpenAI(
                    api_key=settings.OPENAI_API_KEY,
                    timeout=settings.OPENAI_TIMEOUT_SEC,
                )
            else:
                logger.warning("openai_api_key_missing")

    def _require_client(self) -> AsyncOpenAI:
        if not self.openai_client:
            raise ConfigurationError("Missing OpenAI environment variables")
        return self.openai_client

    async def embed(self, text: str) -> List[float]:
        """
        Generate an embedding for ``text``.

        Args:
            text: The text to embed; must contain something other than whitespace

        Returns:
            The embedding vector (``EMBEDDING_DIMENSIONS`` floats)

        Raises:
            ValueError: If ``text`` is empty
            EmbeddingError: If the API call fails or returns a malformed vector
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty for embedding generation")

        client = self._require_client()
        try:
            response = await self._create_embedding(client, text)
            embedding = response.data[0].embedding if response.data else None
            if not embedding or len(embedding) != self.embedding_dimensions:
                raise ValueError("Invalid embedding response from OpenAI")
        except CircuitBreakerError as exc:
            logger.error("openai_circuit_open", operation="embedding", state=openai_breaker.current_state)
            raise EmbeddingError(f"Failed to generate embedding: {OPENAI_UNAVAILABLE}") from exc
        except (OpenAIError, ValueError) as exc:
            logger.error("embedding_failed", model=self.embedding_model, error=str(exc))
            raise EmbeddingError(f"Failed to generate embedding: {exc}") from exc

        return embedding

    @retry_openai_operation()
    async def _create_embedding(self, client: AsyncOpenAI, text: str):
        with openai_breaker.calling():
            return await client.embeddings.create(
                model=self.embedding_model,
                input=text,
                encoding_format="float",
            )

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Run a chat completion over ``messages`` and return the first choice."""
        settings = get_settings()
        temperature = settings.CHAT_TEMPERATURE if temperature is None else temperature
        max_tokens = max_tokens or settings.CHAT_MAX_TOKENS

        client = self._require_client()
        start_time = time.time()
        try:
            response = await self._create_completion(client, messages, temperature, max_tokens)
        except CircuitBreakerError as exc:
            logger.error("openai_circuit_open", operation="chat_completion", state=openai_breaker.current_state)
            raise LLMError(OPENAI_UNAVAILABLE) from exc
        except OpenAIError as exc:
            logger.error(
                "chat_completion_failed",
                model=self.chat_model,
                error=str(exc),
                latency_ms=(time.time() - start_time) * 1000,
            )
            raise LLMError(f"Failed to generate summary: {exc}") from exc

        latency_ms = (time.time() - start_time) * 1000
        choice = response.choices[0] if response.choices else None
        text = (choice.message.content if choice and choice.message else None) or DEFAULT_ANSWER
        finish_reason = (choice.finish_reason if choice else None) or "stop"
        used_tokens = response.usage.total_tokens if response.usage else 0

        logger.info(
            "chat_completion_succeeded",
            model=self.chat_model,
            tokens=used_tokens,
            latency_ms=round(latency_ms, 2),
            finish_reason=finish_reason,
        )
        return LLMResponse(
            text=text,
            model_name=self.chat_model,
            used_tokens=used_tokens,
            latency_ms=latency_ms,
            finish_reason=finish_reason,
        )

    @retry_openai_operation()
    async def _create_completion(self, client: AsyncOpenAI, messages, temperature: float, max_tokens: int):
        with openai_breaker.calling():
            return await client.chat.completions.create(
                model=self.chat_model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
