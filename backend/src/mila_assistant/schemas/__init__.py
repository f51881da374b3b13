"""
Pydantic schemas for request/response validation and memory-store payloads.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Generic type for response data
T = TypeVar('T')


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Metadata(BaseModel):
    """Standard metadata for API responses."""
    statusCode: int = Field(..., description="HTTP status code")
    errors: List[str] = Field(default_factory=list, description="List of error messages")
    executionTime: float = Field(..., description="Request execution time in seconds")
    timestamp: datetime = Field(default_factory=_utc_now, description="Response timestamp")


class StandardResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""
    data: T = Field(..., description="Response data")
    metadata: Metadata = Field(..., description="Response metadata")
    success: int = Field(..., description="Success indicator (1 for success, 0 for failure)")


class ErrorResponse(BaseModel):
    """Error response schema."""
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")


# Conversation context

class AssistantContext(BaseModel):
    """Where the user is in the application when they ask."""
    form_type: Optional[str] = Field(None, max_length=100, description="Active form, e.g. ClaimsSubmissionForm")
    current_field: Optional[str] = Field(None, max_length=100, description="Field that has focus")
    current_step: Optional[int] = Field(None, ge=0, description="Wizard step of the active form")
    device_type: str = Field(default="desktop", max_length=20, description="desktop, tablet or mobile")


class AssistantQueryInput(BaseModel):
    """Input schema for assistant queries."""
    text: str = Field(..., min_length=1, max_length=2000, description="Free-text user query")
    user_id: Optional[str] = Field(None, max_length=255, description="Caller's user id, enables personalization")
    session_id: Optional[str] = Field(None, max_length=255, description="Conversation session id")
    context: AssistantContext = Field(default_factory=AssistantContext)


class AssistantQueryResponse(BaseModel):
    """Response schema for assistant queries."""
    response: str = Field(..., description="Final answer text")
    path: Literal["local", "remote"] = Field(..., description="Which executor produced the answer")
    intent: Optional[str] = Field(None, description="Best-scoring intent")
    confidence: int = Field(0, description="Keyword-match confidence of the intent")
    handler: Optional[str] = Field(None, description="Local handler that answered, if any")
    degraded: bool = Field(False, description="True when the remote path failed and local knowledge answered")


class PreferenceInput(BaseModel):
    """Schema for storing a user preference."""
    key: str = Field(..., min_length=1, max_length=255)
    value: Any = Field(...)
    importance: Literal["low", "medium", "high", "critical"] = Field(default="medium")


class RateWindowStats(BaseModel):
    """Snapshot of the outbound rate window."""
    requests_this_window: int
    time_to_reset: float
    pending: int


# Memory store payloads. The HTTP memory server speaks camelCase.

class MemoryModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


MemoryType = Literal["conversation", "preference", "learning", "context", "medical_term", "form_data"]


class MemoryMetadata(MemoryModel):
    timestamp: float
    source: str = "assistant"
    importance: Literal["low", "medium", "high", "critical"] = "medium"
    tags: List[str] = Field(default_factory=list)
    expires_at: Optional[float] = None


class MemoryEntry(MemoryModel):
    id: str
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    type: MemoryType
    key: str
    value: Any = None
    metadata: Optional[MemoryMetadata] = None
    created_at: str
    updated_at: str


class ConversationMessage(MemoryModel):
    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: float
    metadata: Optional[Dict[str, Any]] = None


class ConversationMemory(MemoryModel):
    id: str
    user_id: str
    session_id: str
    messages: List[ConversationMessage]
    context: Dict[str, Any] = Field(default_factory=dict)
    summary: Optional[str] = None
    created_at: str
    updated_at: str


class MedicalTermUsage(MemoryModel):
    id: str
    term: str
    user_id: str
    usage_count: int
    last_used: str
    context: List[str] = Field(default_factory=list)
    related_terms: List[str] = Field(default_factory=list)
    user_notes: Optional[str] = None


class TermCount(MemoryModel):
    term: str
    usage_count: int


class MemoryStats(MemoryModel):
    total_entries: int = 0
    entries_by_type: Dict[str, int] = Field(default_factory=dict)
    entries_by_user: Dict[str, int] = Field(default_factory=dict)
    top_terms: List[TermCount] = Field(default_factory=list)
    total_conversations: int = 0
