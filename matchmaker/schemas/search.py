"""
Chat search request and response schemas

Field names on the wire are camelCase to match the browser client; the
Python attributes are snake_case and both spellings are accepted on input.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """One turn of the conversation as sent back by the client"""

    model_config = ConfigDict(extra="ignore")

    role: Literal["user", "assistant"]
    content: str


class ProfileMatch(BaseModel):
    """A row returned by the hybrid search procedure.

    Unknown columns are kept so refinement turns can echo the full row back.
    """

    model_config = ConfigDict(extra="allow")

    id: int
    first_name: str
    last_name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    age_years: Optional[int] = None
    gender: Optional[str] = None
    personal_summary: Optional[str] = None
    primary_image_url: Optional[str] = None
    status: Optional[str] = None
    final_score: float


class SearchRequest(BaseModel):
    """Chat search request"""

    model_config = ConfigDict(populate_by_name=True)

    # Left untyped so a missing or non-string message gets the same error message
    message: Any = None
    gender: Optional[str] = None
    min_age: Optional[int] = Field(default=None, alias="minAge")
    max_age: Optional[int] = Field(default=None, alias="maxAge")
    state: Optional[str] = None
    states: Optional[List[str]] = None
    min_height: Optional[int] = Field(default=None, alias="minHeight")  # inches
    max_height: Optional[int] = Field(default=None, alias="maxHeight")  # inches
    alpha: Optional[float] = None
    top_k: Optional[int] = Field(default=None, alias="topK")
    conversation_history: List[ChatMessage] = Field(default_factory=list, alias="conversationHistory")
    is_refinement: bool = Field(default=False, alias="isRefinement")
    existing_results: List[ProfileMatch] = Field(default_factory=list, alias="existingResults")


class ChatResponse(BaseModel):
    """Chat search response"""

    answer: str
    results: List[ProfileMatch]


class ResetResponse(BaseModel):
    message: str
