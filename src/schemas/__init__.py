# Chat API Schema Definitions
from .chat import (
    ConversationTurn,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    UnansweredRecord,
    MAX_MESSAGE_CHARS,
    MAX_HISTORY_TURNS,
)

__all__ = [
    "ConversationTurn",
    "ChatRequest",
    "ChatResponse",
    "ErrorResponse",
    "UnansweredRecord",
    "MAX_MESSAGE_CHARS",
    "MAX_HISTORY_TURNS",
]
