"""Output tool: presents generated characters and worldbooks to the user."""

from __future__ import annotations

import json
import logging
from enum import Enum

from cardsmith.agents._models import ImprovementInstruction, ToolContext, ToolExecutionResult
from cardsmith.agents.base_tool import BaseTool
from cardsmith.agents.output._formatting import (
    format_character_card,
    format_progress_report,
    format_worldbook_entries,
)
from cardsmith.agents.output._thinking import TOOL, OutputThinking
from cardsmith.agents.thinking import ClientFactory
from cardsmith.memory.progress import QualityMetrics, TaskProgress
from cardsmith.prompts.registry import PromptRegistry, get_prompt_registry
from cardsmith.services.conversation_store import ConversationStore
from cardsmith.settings import Settings
from cardsmith.utils.exceptions import CardSmithError, OutputGenerationError

logger = logging.getLogger(__name__)

IMPROVING_SUFFIX = "\n\nYou are improving existing output based on feedback."
COMPLETION_MESSAGE = "✅ Character and worldbook generation completed successfully!"


class OutputMode(str, Enum):
    """Sub-tools of the output tool."""

    FINAL_OUTPUT = "final_output"
    CHARACTER_OUTPUT = "character_output"
    WORLDBOOK_OUTPUT = "worldbook_output"
    PROGRESS_REPORT = "progress_report"

    @classmethod
    def parse(cls, value: str) -> OutputMode:
        """Look up a mode by name.

        Raises:
            OutputGenerationError: If *value* names no mode.
        """
        try:
            return cls(value)
        except ValueError as e:
            raise OutputGenerationError(
                f"Unknown output mode: {value!r}. Choose from {[m.value for m in cls]}",
                tool_name=TOOL,
            ) from e


class OutputTool(BaseTool):
    """Generates the final presentation, card or worldbook listings, or a progress report."""

    name = "Output Generator"
    tool_type = TOOL
    description = "Generate final output and present results to user"

    def __init__(
        self,
        store: ConversationStore,
        settings: Settings | None = None,
        client_factory: ClientFactory | None = None,
        registry: PromptRegistry | None = None,
    ):
        self._registry = registry
        super().__init__(store, settings=settings, client_factory=client_factory)

    @property
    def registry(self) -> PromptRegistry:
        return self._registry or get_prompt_registry()

    def create_thinking(self) -> OutputThinking:
        return OutputThinking(
            settings=self.settings, client_factory=self._client_factory, registry=self._registry
        )

    # === Routing ===

    def select_mode(self, context: ToolContext) -> OutputMode:
        """Pick the sub-tool to run.

        An explicit ``requested_mode`` wins. Otherwise the ``output_routing`` setting
        decides between presence checks ("rules") and asking the model ("llm").
        """
        if context.requested_mode and context.requested_mode != "auto":
            mode = OutputMode.parse(context.requested_mode)
            logger.info("[OUTPUT] Using requested mode: %s", mode.value)
            return mode

        if self.settings.output_routing == "llm":
            decision = self.thinking.route_to_sub_tool(context, [m.value for m in OutputMode])
            return OutputMode.parse(decision.selected_sub_tool)

        progress = context.task_progress or TaskProgress()
        if progress.has_character and progress.has_worldbook:
            return OutputMode.FINAL_OUTPUT
        return OutputMode.PROGRESS_REPORT

    def do_work(self, context: ToolContext) -> ToolExecutionResult:
        mode = self.select_mode(context)
        logger.info("[OUTPUT] Running sub-tool: %s", mode.value)
        handlers = {
            OutputMode.FINAL_OUTPUT: self.generate_final_output,
            OutputMode.CHARACTER_OUTPUT: self.generate_character_output,
            OutputMode.WORLDBOOK_OUTPUT: self.generate_worldbook_output,
            OutputMode.PROGRESS_REPORT: self.generate_progress_report,
        }
        return handlers[mode](context)

    # === Sub-tools ===

    def generate_final_output(self, context: ToolContext) -> ToolExecutionResult:
        """Ask the model for a completion message and mark the task complete.

        Raises:
            OutputGenerationError: If character or worldbook is missing, or the
                model call fails.
        """
        progress = context.task_progress or TaskProgress()
        if progress.character_data is None:
            logger.error("[OUTPUT] Cannot generate final output: Character data is missing")
            raise OutputGenerationError(
                "Cannot generate final output: Character data is missing", tool_name=TOOL
            )
        if not progress.has_worldbook:
            logger.error("[OUTPUT] Cannot generate final output: Worldbook data is missing")
            raise OutputGenerationError(
                "Cannot generate final output: Worldbook data is missing", tool_name=TOOL
            )

        metrics = progress.quality_metrics
        try:
            final_output = self.generate_text(
                self.registry.render_system(TOOL),
                self.registry.render(
                    TOOL,
                    "final_output",
                    character_name=progress.character_data.name,
                    character_description=progress.character_data.description,
                    worldbook_entries=len(progress.worldbook_data),
                    quality_score=metrics.completeness if metrics else 0,
                ),
                context,
            )
        except CardSmithError as e:
            logger.error("[OUTPUT] Final output generation failed: %s", e)
            raise OutputGenerationError(
                f"Final output generation failed: {e}", tool_name=TOOL
            ) from e

        self.add_message(context.conversation_id, "agent", final_output, "agent_output")

        # Zero counts as unset, so a fresh metrics object still gets the defaults
        updated_metrics = QualityMetrics(
            completeness=100,
            consistency=(metrics.consistency if metrics else 0)
            or self.settings.default_consistency,
            creativity=(metrics.creativity if metrics else 0) or self.settings.default_creativity,
            user_satisfaction=(metrics.user_satisfaction if metrics else 0)
            or self.settings.default_user_satisfaction,
        )
        context.task_progress = self.store.update_task_progress(
            context.conversation_id, quality_metrics=updated_metrics
        )

        return self.create_success_result(
            {
                "output": final_output,
                "character_data": progress.character_data.model_dump(),
                "worldbook_data": [e.model_dump() for e in progress.worldbook_data],
                "message": COMPLETION_MESSAGE,
            },
            should_continue=False,
            reasoning="Successfully generated and presented final output",
        )

    def generate_character_output(self, context: ToolContext) -> ToolExecutionResult:
        progress = context.task_progress or TaskProgress()
        if progress.character_data is None:
            return self.create_failure_result(
                "Cannot generate character output: Character data is missing",
                reasoning="Need character data to generate character output",
            )

        character_output = format_character_card(progress.character_data)
        self.add_message(
            context.conversation_id,
            "agent",
            f"🎭 **Character Card Generated**\n\n{character_output}",
            "agent_output",
        )
        return self.create_success_result(
            {
                "character_output": character_output,
                "character_data": progress.character_data.model_dump(),
            },
            reasoning="Character output generated successfully",
        )

    def generate_worldbook_output(self, context: ToolContext) -> ToolExecutionResult:
        progress = context.task_progress or TaskProgress()
        if not progress.has_worldbook:
            return self.create_failure_result(
                "Cannot generate worldbook output: Worldbook data is missing",
                reasoning="Need worldbook data to generate worldbook output",
            )

        entries = progress.worldbook_data
        worldbook_output = format_worldbook_entries(
            entries,
            max_entries=self.settings.worldbook_display_entries,
            content_chars=self.settings.worldbook_content_chars,
        )
        self.add_message(
            context.conversation_id,
            "agent",
            f"📚 **Worldbook Generated** ({len(entries)} entries)\n\n{worldbook_output}",
            "agent_output",
        )
        return self.create_success_result(
            {
                "worldbook_output": worldbook_output,
                "worldbook_data": [e.model_dump() for e in entries],
            },
            reasoning="Worldbook output generated successfully",
        )

    def generate_progress_report(self, context: ToolContext) -> ToolExecutionResult:
        progress = context.task_progress or TaskProgress()
        report = format_progress_report(
            progress,
            description_chars=self.settings.description_preview_chars,
            recent_entries=self.settings.progress_recent_entries,
        )
        self.add_message(context.conversation_id, "agent", report, "agent_output")
        return self.create_success_result(
            {
                "progress_report": report,
                "has_character": progress.has_character,
                "has_worldbook": progress.has_worldbook,
                "completion_percentage": progress.completion_percentage,
            },
            reasoning="Progress report generated successfully",
        )

    # === Improvement ===

    def improve(
        self,
        current_result: ToolExecutionResult,
        instruction: ImprovementInstruction,
        context: ToolContext,
    ) -> ToolExecutionResult:
        """Regenerate the output text following *instruction*.

        Raises:
            OutputGenerationError: If the model call or prompt rendering fails.
        """
        logger.info("[OUTPUT] Improving output based on: %s", ", ".join(instruction.focus_areas))
        current_json = json.dumps(
            current_result.result, indent=2, ensure_ascii=False, default=str
        )
        try:
            improved_output = self.generate_text(
                self.registry.render_system(TOOL) + IMPROVING_SUFFIX,
                self.registry.render(
                    TOOL,
                    "improve",
                    focus_areas=instruction.focus_areas,
                    specific_requests=instruction.specific_requests,
                    quality_target=instruction.quality_target,
                    current_output_json=current_json,
                ),
                context,
            )
        except CardSmithError as e:
            logger.error("[OUTPUT] Output improvement failed: %s", e)
            raise OutputGenerationError(f"Output improvement failed: {e}", tool_name=TOOL) from e

        self.add_message(context.conversation_id, "agent", improved_output, "agent_output")

        return current_result.model_copy(
            update={
                "result": {
                    **current_result.result,
                    "output": improved_output,
                    "improved": True,
                    "improvement_applied": list(instruction.focus_areas),
                    "previous_result": current_result.result,
                }
            }
        )
