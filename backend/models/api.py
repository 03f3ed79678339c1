"""API request/response schemas."""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Request body for POST /chat/send."""
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., description="User question")
    session_id: Optional[str] = Field(None, alias="sessionId")


class SourceSchema(BaseModel):
    """Source attached to an answer."""
    title: str
    url: str
    relevance: float


class ChatResponse(BaseModel):
    """Response body for POST /chat/send."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    response: str
    confidence: float
    sources: List[SourceSchema] = []
    intent: str
    requires_human: bool = Field(False, alias="requiresHuman")
    suggested_actions: List[str] = Field(default_factory=list, alias="suggestedActions")
    response_time: int = Field(0, alias="responseTime")
    session_id: str = Field(..., alias="sessionId")


class SessionResponse(BaseModel):
    """Response body for POST /chat/session."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
