"""
FastAPI dependencies that build the service objects used by the routers.

Tests replace these through ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends
from matchmaker.core.database import get_admin_engine, get_engine
from matchmaker.services.embedding_sync import EmbeddingSyncService
from matchmaker.services.llm_client import LLMClient
from matchmaker.services.profile_repository import ProfileRepository
from matchmaker.services.search_service import SearchService


@lru_cache(maxsize=1)
def get_llm_client() -> LLMClient:
    return LLMClient()


def get_profile_repository() -> ProfileRepository:
    """Repository bound to the read-only role."""
    return ProfileRepository(get_engine)


def get_admin_profile_repository() -> ProfileRepository:
    """Repository bound to the service role, for embedding writes."""
    return ProfileRepository(get_admin_engine)


def get_search_service(
    repository: ProfileRepository = Depends(get_profile_repository),
    llm_client: LLMClient = Depends(get_llm_client),
) -> SearchService:
    return SearchService(repository, llm_client)


def get_embedding_sync_service(
    repository: ProfileRepository = Depends(get_admin_profile_repository),
    llm_client: LLMClient = Depends(get_llm_client),
) -> EmbeddingSyncService:
    return EmbeddingSyncService(repository, llm_client)
