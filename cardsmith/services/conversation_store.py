"""Conversation storage: the handle tools use to append messages and update progress.

Two implementations share one interface: an in-memory store (tests, embedding in a
host agent) and a JSON file store that rewrites the file atomically on every change.
"""

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ValidationError

from cardsmith.memory.conversation import (
    Conversation,
    ConversationMessage,
    LLMConfig,
    MessageRole,
    MessageType,
)
from cardsmith.memory.progress import TaskProgress
from cardsmith.settings._settings import _atomic_write_json
from cardsmith.utils.exceptions import ConversationNotFoundError

logger = logging.getLogger(__name__)


class ConversationStore(Protocol):
    """Interface consumed by tools."""

    def create(
        self, title: str, llm_config: LLMConfig | None, initial_request: str
    ) -> Conversation: ...

    def get(self, conversation_id: str) -> Conversation: ...

    def add_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
        message_type: MessageType = "agent_output",
    ) -> ConversationMessage: ...

    def update_task_progress(self, conversation_id: str, **updates: Any) -> TaskProgress: ...


def _apply_progress_updates(progress: TaskProgress, updates: dict[str, Any]) -> TaskProgress:
    """Return a validated copy of *progress* with top-level fields replaced."""
    data = progress.model_dump()
    for key, value in updates.items():
        if key not in TaskProgress.model_fields:
            raise ValueError(f"Unknown task progress field: {key}")
        if isinstance(value, BaseModel):
            value = value.model_dump()
        elif isinstance(value, list):
            value = [v.model_dump() if isinstance(v, BaseModel) else v for v in value]
        data[key] = value
    data["generation_metadata"]["last_updated"] = datetime.now().isoformat()
    return TaskProgress.model_validate(data)


class InMemoryConversationStore:
    """Conversation store kept in a dict."""

    def __init__(self, conversations: list[Conversation] | None = None):
        self._conversations: dict[str, Conversation] = {c.id: c for c in conversations or []}
        self._lock = threading.RLock()

    def create(
        self, title: str, llm_config: LLMConfig | None, initial_request: str
    ) -> Conversation:
        conversation = Conversation(
            title=title,
            llm_config=llm_config,
            messages=[
                ConversationMessage(role="user", content=initial_request, message_type="user_input")
            ],
        )
        with self._lock:
            self._conversations[conversation.id] = conversation
            self._persist()
        logger.info("Created conversation %s (%s)", conversation.id, title)
        return conversation

    def get(self, conversation_id: str) -> Conversation:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    def list(self) -> list[Conversation]:
        with self._lock:
            return list(self._conversations.values())

    def save(self, conversation: Conversation) -> None:
        with self._lock:
            conversation.updated_at = datetime.now().isoformat()
            self._conversations[conversation.id] = conversation
            self._persist()

    def add_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
        message_type: MessageType = "agent_output",
    ) -> ConversationMessage:
        message = ConversationMessage(role=role, content=content, message_type=message_type)
        with self._lock:
            conversation = self.get(conversation_id)
            conversation.messages.append(message)
            self.save(conversation)
        logger.debug(
            "[%s] %s message added to %s (%d chars)",
            message_type.upper(),
            role,
            conversation_id,
            len(content),
        )
        return message

    def update_task_progress(self, conversation_id: str, **updates: Any) -> TaskProgress:
        with self._lock:
            conversation = self.get(conversation_id)
            conversation.task_progress = _apply_progress_updates(
                conversation.task_progress, updates
            )
            self.save(conversation)
        logger.debug("Updated task progress for %s: %s", conversation_id, sorted(updates))
        return conversation.task_progress

    def _persist(self) -> None:
        """Hook for subclasses that write to disk."""


class JsonConversationStore(InMemoryConversationStore):
    """Conversation store backed by a single JSON file holding a list of conversations."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        # Entries that failed validation, written back untouched on every save
        self._unreadable: list[Any] = []
        super().__init__(self._read())

    def _read(self) -> list[Conversation]:
        if not self.path.exists():
            logger.info("No conversation file at %s, starting empty", self.path)
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load conversations from %s: %s", self.path, e)
            raise
        if not isinstance(data, list):
            raise ValueError(
                f"Conversation file {self.path} must hold a JSON list, got {type(data).__name__}"
            )

        conversations = []
        for index, item in enumerate(data):
            try:
                conversations.append(Conversation.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    "Keeping invalid conversation at index %d as-is: %s", index, e
                )
                self._unreadable.append(item)
        logger.info("Loaded %d conversations from %s", len(conversations), self.path)
        return conversations

    def _persist(self) -> None:
        _atomic_write_json(
            self.path, [c.model_dump(mode="json") for c in self.list()] + self._unreadable
        )
