"""Base class for tools that run inside the conversational agent.

A tool does its work once, then asks its thinking module to evaluate the result and,
while the model keeps asking for improvements, revises it up to
``max_improvement_attempts`` times.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from cardsmith.agents._models import ImprovementInstruction, ToolContext, ToolExecutionResult
from cardsmith.agents.thinking import BaseThinking, ClientFactory
from cardsmith.memory.conversation import ConversationMessage, MessageRole, MessageType
from cardsmith.memory.progress import TaskProgress
from cardsmith.services.conversation_store import ConversationStore
from cardsmith.services.llm_client import LLMClient
from cardsmith.settings import Settings
from cardsmith.utils.exceptions import ToolError
from cardsmith.utils.logging_config import log_performance
from cardsmith.utils.validation import truncate

logger = logging.getLogger(__name__)


class BaseTool(ABC):
    """A tool with a self-improvement loop."""

    name: str = "Base Tool"
    tool_type: str = "base"
    description: str = ""

    def __init__(
        self,
        store: ConversationStore,
        settings: Settings | None = None,
        client_factory: ClientFactory | None = None,
    ):
        self.store = store
        self.settings = settings or Settings.load()
        self._client_factory = client_factory or (lambda cfg: LLMClient(cfg, self.settings))
        self.thinking = self.create_thinking()

    @abstractmethod
    def create_thinking(self) -> BaseThinking:
        """Build the thinking module for this tool."""

    @abstractmethod
    def do_work(self, context: ToolContext) -> ToolExecutionResult:
        """Produce the tool's first result."""

    @abstractmethod
    def improve(
        self,
        current_result: ToolExecutionResult,
        instruction: ImprovementInstruction,
        context: ToolContext,
    ) -> ToolExecutionResult:
        """Produce a revised result following *instruction*."""

    def validate(self, context: ToolContext) -> bool:
        return bool(context.conversation_id and context.task_progress is not None)

    def execute(
        self, context: ToolContext, self_improve: bool | None = None
    ) -> ToolExecutionResult:
        """Run the tool, then evaluate and improve its result.

        Args:
            context: Conversation id, progress, history and model config.
            self_improve: Override for the ``improvement_enabled`` setting.

        Returns:
            The last result produced. Unsuccessful results are returned unevaluated.

        Raises:
            ToolError: If the context is incomplete or a step fails.
            LLMError: If a model call fails.
        """
        if not self.validate(context):
            raise ToolError(
                "Invalid tool context: conversation_id and task_progress are required",
                tool_name=self.tool_type,
            )

        with log_performance(logger, f"{self.name} execution"):
            result = self.do_work(context)

            if not result.success:
                logger.warning("[%s] Work failed, skipping evaluation: %s", self.name, result.error)
                return result

            if self_improve is None:
                self_improve = self.settings.improvement_enabled
            if not self_improve:
                return result

            max_attempts = self.thinking.max_improvement_attempts
            attempt = 1
            while attempt <= max_attempts:
                evaluation = self.thinking.evaluate(result, context, attempt)
                result = result.model_copy(update={"attempts": attempt, "evaluation": evaluation})

                if evaluation.is_satisfied or evaluation.next_action == "complete":
                    if attempt > 1:
                        logger.info(
                            "[%s] Improved result after %d attempts. Quality: %d/100",
                            self.name,
                            attempt,
                            evaluation.quality_score,
                        )
                    return result

                if evaluation.next_action == "improve" and attempt < max_attempts:
                    logger.info(
                        "[%s] Quality: %d/100. Improving...", self.name, evaluation.quality_score
                    )
                    instruction = self.thinking.generate_improvement(result, evaluation, context)
                    result = self.improve(result, instruction, context)
                    attempt += 1
                else:
                    logger.info(
                        "[%s] Stopping after %d attempts. Final quality: %d/100",
                        self.name,
                        attempt,
                        evaluation.quality_score,
                    )
                    break

            return result

    # === Helpers shared by tools ===

    def generate_text(self, system_prompt: str, user_prompt: str, context: ToolContext) -> str:
        """Call the conversation's model with the contextual prompt."""
        system_prompt, user_prompt = self.build_contextual_prompt(
            system_prompt, user_prompt, context
        )
        client = self._client_factory(context.llm_config)
        return client.generate(system_prompt, user_prompt)

    def build_contextual_prompt(
        self, system_prompt: str, human_prompt: str, context: ToolContext
    ) -> tuple[str, str]:
        """Prefix the human prompt with progress and history summaries."""
        progress_summary = self.build_progress_summary(context.task_progress or TaskProgress())
        conversation_summary = self.build_conversation_summary(context.conversation_history)
        full_context = f"{progress_summary}\n{conversation_summary}"
        return system_prompt, f"{full_context}\n\n{human_prompt}"

    def build_conversation_summary(self, messages: list[ConversationMessage]) -> str:
        if not messages:
            return "No conversation history available."

        lines = ["=== CONVERSATION HISTORY ==="]
        limit = self.settings.history_message_limit
        recent = messages[-limit:] if limit else []
        for message in recent:
            lines.append(
                f"[{_format_time(message.timestamp)}] {message.role.upper()} "
                f"({message.message_type}): "
                f"{message.content[: self.settings.history_content_chars]}"
            )
        return "\n".join(lines) + "\n\n"

    def build_progress_summary(self, progress: TaskProgress) -> str:
        lines = ["=== CURRENT PROGRESS ==="]
        if progress.character_data is not None:
            lines.append("✅ Character Card: COMPLETE")
            lines.append(f"   Name: {progress.character_data.name or 'N/A'}")
        else:
            lines.append("❌ Character Card: NOT GENERATED")

        if progress.has_worldbook:
            lines.append(f"✅ Worldbook: COMPLETE ({len(progress.worldbook_data)} entries)")
        else:
            lines.append("❌ Worldbook: NOT GENERATED")
        return "\n".join(lines) + "\n\n"

    def add_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
        message_type: MessageType = "agent_output",
    ) -> ConversationMessage:
        logger.info("[%s] %s: %s", message_type.upper(), role, truncate(content, 120))
        return self.store.add_message(conversation_id, role, content, message_type)

    def create_success_result(
        self,
        result: dict[str, Any],
        should_continue: bool = True,
        should_update_plan: bool = False,
        user_input_required: bool = False,
        reasoning: str | None = None,
    ) -> ToolExecutionResult:
        return ToolExecutionResult(
            success=True,
            result=result,
            should_continue=should_continue,
            should_update_plan=should_update_plan,
            user_input_required=user_input_required,
            reasoning=reasoning,
        )

    def create_failure_result(
        self, error: str, reasoning: str | None = None, should_continue: bool = True
    ) -> ToolExecutionResult:
        logger.warning("[%s] %s", self.name, error)
        return ToolExecutionResult(
            success=False, error=error, should_continue=should_continue, reasoning=reasoning
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


def _format_time(timestamp: str) -> str:
    """HH:MM:SS of an ISO timestamp, or the raw value if it does not parse."""
    try:
        return datetime.fromisoformat(timestamp).strftime("%H:%M:%S")
    except ValueError:
        return timestamp
