"""
Application configuration
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Matchmaker Search API"
    APP_VERSION: str = "0.1.0"
    # Debug switches logs to the console renderer and opens CORS
    DEBUG: bool = False
    ENVIRONMENT: str = "production"

    # OpenAI
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_CHAT_MODEL: str = "gpt-4o-mini"
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIMENSIONS: int = 1536
    OPENAI_TIMEOUT_SEC: int = 30
    CHAT_TEMPERATURE: float = 0.7
    CHAT_MAX_TOKENS: int = 500

    # Database
    # DATABASE_URL uses the read-only role; ADMIN_DATABASE_URL may write embeddings
    DATABASE_URL: Optional[str] = None
    ADMIN_DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 1800
    DB_POOL_TIMEOUT: int = 30

    # Search
    SEARCH_DEFAULT_ALPHA: float = 0.6
    SEARCH_DEFAULT_TOP_K: int = 10000  # effectively the whole table
    MAX_RESULTS_FOR_AI: int = 100  # keeps the prompt under the model context window

    # Embedding maintenance
    EMBEDDING_SYNC_DEFAULT_LIMIT: int = 50
    EMBEDDING_BATCH_PAUSE_EVERY: int = 10
    EMBEDDING_BATCH_PAUSE_SEC: float = 0.1
    EMBEDDING_VERSION: int = 1

    # Rate limiting (slowapi syntax)
    CHAT_RATE_LIMIT: str = "30/minute"

    # CORS (comma-separated list of allowed origins)
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Using an LRU cache avoids re-parsing environment variables on every request.
    """
    return Settings()


# Global settings instance
settings = get_settings()
