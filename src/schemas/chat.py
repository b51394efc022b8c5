"""
Request / response schemas for the chat endpoint.

Field names on the wire are camelCase (``conversationHistory``,
``shouldRefuse``) to match the web client; Python code uses snake_case.
"""
from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Hard limits
# ---------------------------------------------------------------------------
# Upper bounds against oversized payloads, far above any real chat turn.
MAX_MESSAGE_CHARS = 100_000
MAX_HISTORY_TURNS = 200


class ConversationTurn(BaseModel):
    """One earlier turn, passed through to providers unchanged."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str = Field(default="", max_length=MAX_MESSAGE_CHARS)


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(default="", max_length=MAX_MESSAGE_CHARS)
    character: str = Field(default="", max_length=200)
    conversation_history: List[ConversationTurn] = Field(
        default_factory=list,
        alias="conversationHistory",
        max_length=MAX_HISTORY_TURNS,
    )

    @field_validator("conversation_history", mode="before")
    @classmethod
    def _null_history_is_empty(cls, value):
        # JSON clients send null for an omitted history
        return [] if value is None else value


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    answer: str
    should_refuse: bool = Field(alias="shouldRefuse")


class ErrorResponse(BaseModel):
    """Body of every 4xx / 5xx response."""
    error: str


class UnansweredRecord(BaseModel):
    """One line of the unanswered-questions log."""
    timestamp: str
    character: str
    message: str
    reason: str
