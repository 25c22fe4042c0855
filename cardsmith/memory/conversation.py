"""Conversation models: messages, model configuration and the conversation record."""

import logging
import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from cardsmith.memory.progress import TaskProgress

logger = logging.getLogger(__name__)

MessageRole = Literal["user", "agent", "system"]

MessageType = Literal[
    "user_input",
    "agent_thinking",
    "agent_action",
    "agent_output",
    "system_info",
    "quality_evaluation",
    "tool_failure",
]

DEFAULT_OLLAMA_URL = "http://localhost:11434"


def _new_id() -> str:
    return str(uuid.uuid4())


def _now_iso() -> str:
    return datetime.now().isoformat()


class LLMConfig(BaseModel):
    """Model provider configuration carried by a conversation."""

    llm_type: Literal["openai", "ollama"]
    model_name: str
    api_key: str = ""
    base_url: str | None = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int | None = None

    @field_validator("model_name")
    @classmethod
    def model_name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("model_name cannot be empty")
        return v

    @property
    def resolved_base_url(self) -> str | None:
        """Base URL with the Ollama default filled in."""
        if self.llm_type == "ollama":
            return self.base_url or DEFAULT_OLLAMA_URL
        return self.base_url


class ConversationMessage(BaseModel):
    """One entry of the conversation log."""

    id: str = Field(default_factory=_new_id)
    role: MessageRole
    content: str
    message_type: MessageType = "agent_output"
    timestamp: str = Field(default_factory=_now_iso)


class Conversation(BaseModel):
    """A conversation with its log, accumulated progress and model config."""

    id: str = Field(default_factory=_new_id)
    title: str = ""
    messages: list[ConversationMessage] = Field(default_factory=list)
    task_progress: TaskProgress = Field(default_factory=TaskProgress)
    llm_config: LLMConfig | None = None
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    @property
    def user_request(self) -> str:
        """Content of the first user message, or empty string."""
        for message in self.messages:
            if message.role == "user":
                return message.content
        return ""
