"""Profile data access.

Every SQL statement the service runs lives in this module. Ranking is done
by the ``hybrid_search_singles`` stored procedure; this repository only
passes the query text, the query embedding and the filters through to it.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog
from matchmaker.core.errors import DatabaseError, NotFoundError, SearchFailedError
from matchmaker.core.resilience import db_breaker, retry_database_operation
from pybreaker import CircuitBreakerError
from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)

PROFILE_TABLE = "singles_form_data"
IMAGE_TABLE = "singles_form_images"

DATABASE_UNAVAILABLE = "Database is temporarily unavailable (circuit breaker open)"

_HYBRID_SEARCH_SQL = text(
    """
    SELECT *
    FROM hybrid_search_singles(
        p_query_text => :query_text,
        p_query_embedding => CAST(CAST(:query_embedding AS text) AS vector),
        p_alpha => :alpha,
        p_match_count => :match_count,
        p_gender => :gender,
        p_min_age => :min_age,
        p_max_age => :max_age,
        p_state => :state
    )
    """
)

_GET_PROFILE_SQL = text(f"SELECT * FROM {PROFILE_TABLE} WHERE id = :id")

_LIST_IMAGES_SQL = text(
    f"""
    SELECT *
    FROM {IMAGE_TABLE}
    WHERE singles_form_data_id = :profile_id
    ORDER BY is_primary DESC, image_order ASC
    """
)

_LIST_SEARCHABLE_SQL = text(f"SELECT id, searchable_text FROM {PROFILE_TABLE} ORDER BY id")

_LIST_SEARCHABLE_BY_ID_SQL = text(
    f"SELECT id, searchable_text FROM {PROFILE_TABLE} WHERE id IN :ids ORDER BY id"
).bindparams(bindparam("ids", expanding=True))

_LIST_DIRTY_SQL = text(
    f"""
    SELECT id, searchable_text
    FROM {PROFILE_TABLE}
    WHERE embedding_dirty IS TRUE
    ORDER BY updated_at DESC
    LIMIT :limit
    """
)

_STORE_EMBEDDING_SQL = text(
    f"""
    UPDATE {PROFILE_TABLE}
    SET embedding = CAST(CAST(:embedding AS text) AS vector),
        embedding_dirty = FALSE,
        embedding_updated_at = now(),
        embedding_version = :version
    WHERE id = :id
    """
)

_MARK_CLEAN_SQL = text(
    f"""
    UPDATE {PROFILE_TABLE}
    SET embedding_dirty = FALSE,
        embedding_updated_at = now()
    WHERE id = :id
    """
)


@dataclass
class HybridSearchParams:
    """Arguments for ``hybrid_search_singles``.

    Filters set to ``None`` are ignored by the procedure.
    """

    query_text: str
    query_embedding: Sequence[float]
    alpha: float
    match_count: int
    gender: Optional[str] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    state: Optional[str] = None

    def to_bind_params(self) -> Dict[str, Any]:
        return {
            "query_text": self.query_text,
            # pgvector accepts the JSON array text form
            "query_embedding": json.dumps(list(self.query_embedding)),
            "alpha": self.alpha,
            "match_count": self.match_count,
            "gender": self.gender,
            "min_age": self.min_age,
            "max_age": self.max_age,
            "state": self.state,
        }


class ProfileRepository:
    """Reads and writes profile rows through a single async engine.

    The engine is resolved on first use so that turns which never touch the
    database (refinements) work without database settings.
    """

    def __init__(self, engine_provider: Callable[[], AsyncEngine]) -> None:
        self._engine_provider = engine_provider

    @property
    def engine(self) -> AsyncEngine:
        return self._engine_provider()

    @retry_database_operation()
    async def _fetch_all(self, statement, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        engine = self.engine
        try:
            with db_breaker.calling():
                async with engine.connect() as conn:
                    result = await conn.execute(statement, params or {})
                    return [dict(row) for row in result.mappings().all()]
        except CircuitBreakerError as exc:
            logger.error("database_circuit_open", state=db_breaker.current_state)
            raise DatabaseError(DATABASE_UNAVAILABLE) from exc

    async def _execute_write(self, statement, params: Dict[str, Any]) -> int:
        engine = self.engine
        try:
            with db_breaker.calling():
                async with engine.begin() as conn:
                    result = await conn.execute(statement, params)
                    return result.rowcount
        except CircuitBreakerError as exc:
            logger.error("database_circuit_open", state=db_breaker.current_state)
            raise DatabaseError(DATABASE_UNAVAILABLE) from exc
        except SQLAlchemyError as exc:
            raise DatabaseError(_driver_message(exc)) from exc

    async def hybrid_search(self, params: HybridSearchParams) -> List[Dict[str, Any]]:
        """Run the hybrid search procedure and return its rows in ranked order."""
        try:
            rows = await self._fetch_all(_HYBRID_SEARCH_SQL, params.to_bind_params())
        except SQLAlchemyError as exc:
            message = _driver_message(exc)
            logger.error("hybrid_search_failed", error=message)
            raise SearchFailedError(f"Search failed: {message}") from exc
        except DatabaseError as exc:
            logger.error("hybrid_search_failed", error=exc.message)
            raise SearchFailedError(f"Search failed: {exc.message}") from exc

        logger.info("hybrid_search_completed", result_count=len(rows), alpha=params.alpha)
        return rows

    async def get_profile(self, profile_id: int) -> Optional[Dict[str, Any]]:
        try:
            rows = await self._fetch_all(_GET_PROFILE_SQL, {"id": profile_id})
        except SQLAlchemyError as exc:
            raise DatabaseError(_driver_message(exc)) from exc
        return rows[0] if rows else None

    async def list_images(self, profile_id: int) -> List[Dict[str, Any]]:
        """Images for a profile, primary image first then by display order."""
        try:
            return await self._fetch_all(_LIST_IMAGES_SQL, {"profile_id": profile_id})
        except SQLAlchemyError as exc:
            raise DatabaseError(_driver_message(exc)) from exc

    async def list_searchable(self, ids: Optional[List[int]] = None) -> List[Dict[str, Any]]:
        """``id`` and ``searchable_text`` for every profile, or only for ``ids``."""
        try:
            if ids:
                return await self._fetch_all(_LIST_SEARCHABLE_BY_ID_SQL, {"ids": list(ids)})
            return await self._fetch_all(_LIST_SEARCHABLE_SQL)
        except SQLAlchemyError as exc:
            raise DatabaseError(_driver_message(exc)) from exc

    async def list_dirty(self, limit: int) -> List[Dict[str, Any]]:
        """Profiles whose text changed since their embedding was generated, newest first."""
        try:
            return await self._fetch_all(_LIST_DIRTY_SQL, {"limit": limit})
        except SQLAlchemyError as exc:
            raise DatabaseError(_driver_message(exc)) from exc

    async def store_embedding(self, profile_id: int, embedding: Sequence[float], version: int) -> None:
        """Write the vector and clear the dirty flag.

        Raises:
            NotFoundError: If the row was deleted after it was listed
        """
        updated = await self._execute_write(
            _STORE_EMBEDDING_SQL,
            {"id": profile_id, "embedding": json.dumps(list(embedding)), "version": version},
        )
        if not updated:
            raise NotFoundError(f"Profile {profile_id} no longer exists")

    async def mark_clean(self, profile_id: int) -> None:
        await self._execute_write(_MARK_CLEAN_SQL, {"id": profile_id})


def _driver_message(exc: SQLAlchemyError) -> str:
    """The underlying driver message without SQLAlchemy's statement dump."""
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)
