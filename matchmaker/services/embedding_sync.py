"""Embedding maintenance for profile rows.

Two jobs keep ``singles_form_data.embedding`` in step with
``searchable_text``:

- ``backfill`` regenerates embeddings for every profile (or a chosen set).
- ``sync`` only handles rows flagged ``embedding_dirty``, newest first.

Profiles are processed one at a time. A failure on one profile is recorded
and the loop moves on, so a single bad row never aborts the run.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import structlog
from matchmaker.core.config import get_settings
from matchmaker.core.errors import MatchmakerError
from matchmaker.schemas.embeddings import EmbeddingFailure, EmbeddingJobResult
from matchmaker.services.llm_client import LLMClient
from matchmaker.services.profile_repository import ProfileRepository

logger = structlog.get_logger(__name__)


class EmbeddingSyncService:
    def __init__(self, repository: ProfileRepository, llm_client: LLMClient) -> None:
        self.repository = repository
        self.llm_client = llm_client
        self.settings = get_settings()

    async def backfill(self, ids: Optional[List[int]] = None) -> EmbeddingJobResult:
        profiles = await self.repository.list_searchable(ids or None)
        if not profiles:
            return EmbeddingJobResult(updated=0, message="No profiles found to update")

        logger.info("embedding_backfill_started", profile_count=len(profiles))
        updated, errors = await self._process(profiles, mark_empty_clean=False)

        return EmbeddingJobResult(
            updated=updated,
            total=len(profiles),
            message=f"Successfully updated {updated} out of {len(profiles)} profiles",
            errors=errors or None,
        )

    async def sync(self, limit: Optional[int] = None) -> EmbeddingJobResult:
        limit = limit or self.settings.EMBEDDING_SYNC_DEFAULT_LIMIT
        profiles = await self.repository.list_dirty(limit)
        if not profiles:
            return EmbeddingJobResult(
                updated=0,
                message="No dirty profiles found. All embeddings are up to date.",
            )

        logger.info("embedding_sync_started", profile_count=len(profiles), limit=limit)
        updated, errors = await self._process(profiles, mark_empty_clean=True)

        return EmbeddingJobResult(
            updated=updated,
            checked=len(profiles),
            message=f"Successfully synced {updated} out of {len(profiles)} dirty profiles",
            errors=errors or None,
        )

    async def _process(self, profiles: List[Dict[str, Any]], mark_empty_clean: bool):
        updated = 0
        errors: List[EmbeddingFailure] = []

        for profile in profiles:
            profile_id = profile["id"]
            searchable_text = profile.get("searchable_text") or ""

            if not searchable_text.strip():
                logger.info("embedding_skipped_empty_text", profile_id=profile_id)
                if mark_empty_clean:
                    # Nothing to embed, so the row should not stay in the dirty queue
                    try:
                        await self.repository.mark_clean(profile_id)
                    except MatchmakerError as exc:
                        logger.warning("embedding_mark_clean_failed", profile_id=profile_id, error=exc.message)
                continue

            try:
                embedding = await self.llm_client.embed(searchable_text)
                await self.repository.store_embedding(profile_id, embedding, self.settings.EMBEDDING_VERSION)
            except MatchmakerError as exc:
                logger.error("embedding_update_failed", profile_id=profile_id, error=exc.message)
                errors.append(EmbeddingFailure(id=profile_id, error=exc.message))
            else:
                updated += 1
                logger.info("embedding_updated", profile_id=profile_id)

            # Throttle to stay under the embeddings rate limit
            if updated % self.settings.EMBEDDING_BATCH_PAUSE_EVERY == 0:
                await asyncio.sleep(self.settings.EMBEDDING_BATCH_PAUSE_SEC)

        return updated, errors
