"""Request and response models of the retrieval service."""

from datetime import datetime

from pydantic import BaseModel, Field


class RuleSearchRequest(BaseModel):
    query: str
    ruleset_id: str | None = None
    limit: int = Field(default=5, ge=1, le=100)


class ConversationSearchRequest(BaseModel):
    query: str
    game_id: int
    limit: int = Field(default=5, ge=1, le=100)


class RuleSearchResultItem(BaseModel):
    chunk_id: str
    document_id: str
    document_name: str
    ruleset_id: str
    chunk_text: str
    page_number: int | None = None
    score: float


class RuleSearchResponse(BaseModel):
    query: str
    results: list[RuleSearchResultItem]
    total: int


class ContextMessage(BaseModel):
    """A message read from the relational context store."""

    message_id: int
    game_id: int
    text: str
    role: str = "user"
    participant_name: str | None = None
    created_at: datetime


class ConversationSearchResultItem(BaseModel):
    message: ContextMessage
    previous_message: ContextMessage | None = None
    next_message: ContextMessage | None = None
    score: float


class ConversationSearchResponse(BaseModel):
    query: str
    game_id: int
    results: list[ConversationSearchResultItem]
    total: int
