"""
Profile detail and service status schemas
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class ProfileDetails(BaseModel):
    """Full profile row plus its images"""

    profile: Dict[str, Any]
    images: List[Dict[str, Any]] = Field(default_factory=list)


class EnvironmentFlags(BaseModel):
    """Which credentials are configured (never the values themselves)"""

    model_config = ConfigDict(populate_by_name=True)

    has_openai_key: bool = Field(alias="hasOpenAIKey")
    has_database_url: bool = Field(alias="hasDatabaseUrl")
    has_admin_database_url: bool = Field(alias="hasAdminDatabaseUrl")


class DiagnosticsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: str
    environment: EnvironmentFlags
    python_version: str = Field(alias="pythonVersion")


class HealthResponse(BaseModel):
    """Health check response model"""

    status: str
    version: str
    timestamp: float
