"""Data models for task progress and conversations."""

from cardsmith.memory.conversation import (
    Conversation,
    ConversationMessage,
    LLMConfig,
    MessageRole,
    MessageType,
)
from cardsmith.memory.progress import (
    CharacterData,
    GenerationMetadata,
    QualityMetrics,
    TaskProgress,
    WorldbookEntry,
)

__all__ = [
    "CharacterData",
    "Conversation",
    "ConversationMessage",
    "GenerationMetadata",
    "LLMConfig",
    "MessageRole",
    "MessageType",
    "QualityMetrics",
    "TaskProgress",
    "WorldbookEntry",
]
