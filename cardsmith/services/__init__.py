"""Services: model client and conversation storage."""

from cardsmith.services.conversation_store import (
    ConversationStore,
    InMemoryConversationStore,
    JsonConversationStore,
)
from cardsmith.services.llm_client import GenerationMetrics, LLMClient

__all__ = [
    "ConversationStore",
    "GenerationMetrics",
    "InMemoryConversationStore",
    "JsonConversationStore",
    "LLMClient",
]
