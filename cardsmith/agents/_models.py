"""Models passed between tools, thinking and callers."""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, Field

from cardsmith.memory.conversation import Conversation, ConversationMessage, LLMConfig
from cardsmith.memory.progress import TaskProgress

logger = logging.getLogger(__name__)

NextAction = Literal["continue", "improve", "complete"]


class ToolContext(BaseModel):
    """What a tool sees of the conversation it runs in."""

    conversation_id: str
    task_progress: TaskProgress | None = None
    conversation_history: list[ConversationMessage] = Field(default_factory=list)
    llm_config: LLMConfig
    user_request: str = ""
    requested_mode: str | None = None  # None or "auto" lets the tool choose

    @classmethod
    def from_conversation(
        cls,
        conversation: Conversation,
        default_llm_config: LLMConfig,
        requested_mode: str | None = None,
    ) -> ToolContext:
        """Build a context from a stored conversation.

        The conversation's own model config wins over *default_llm_config*.
        """
        return cls(
            conversation_id=conversation.id,
            task_progress=conversation.task_progress,
            conversation_history=list(conversation.messages),
            llm_config=conversation.llm_config or default_llm_config,
            user_request=conversation.user_request,
            requested_mode=requested_mode,
        )


class EvaluationResult(BaseModel):
    """A model's judgement of a tool result."""

    is_satisfied: bool = False
    quality_score: int = Field(default=60, ge=0, le=100)
    reasoning: str = ""
    improvement_needed: list[str] = Field(default_factory=list)
    next_action: NextAction = "continue"


class ImprovementInstruction(BaseModel):
    """What to change on the next attempt."""

    focus_areas: list[str] = Field(default_factory=list)
    specific_requests: list[str] = Field(default_factory=list)
    quality_target: int = Field(default=80, ge=0, le=100)
    max_attempts: int = 3


class SubToolRoutingDecision(BaseModel):
    selected_sub_tool: str
    reasoning: str = ""
    confidence: int = Field(default=80, ge=0, le=100)


class ToolExecutionResult(BaseModel):
    """Outcome of one tool run.

    ``result`` holds the mode-specific payload (e.g. ``output`` and
    ``character_data`` for final output, ``progress_report`` for a report).
    """

    success: bool
    result: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    should_continue: bool = True
    should_update_plan: bool = False
    user_input_required: bool = False
    reasoning: str | None = None
    attempts: int = 1
    evaluation: EvaluationResult | None = None
