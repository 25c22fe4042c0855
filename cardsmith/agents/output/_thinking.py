"""Thinking module of the output tool."""

import logging

from cardsmith.agents._models import EvaluationResult, ToolContext, ToolExecutionResult
from cardsmith.agents.thinking import BaseThinking, ClientFactory, result_to_json
from cardsmith.memory.progress import TaskProgress
from cardsmith.prompts.registry import PromptRegistry, get_prompt_registry
from cardsmith.settings import Settings

logger = logging.getLogger(__name__)

TOOL = "output"


class OutputThinking(BaseThinking):
    """Judges generated characters and worldbooks."""

    def __init__(
        self,
        settings: Settings | None = None,
        client_factory: ClientFactory | None = None,
        registry: PromptRegistry | None = None,
    ):
        super().__init__("OUTPUT", settings=settings, client_factory=client_factory)
        self._registry = registry

    @property
    def registry(self) -> PromptRegistry:
        return self._registry or get_prompt_registry()

    def build_evaluation_prompt(
        self, result: ToolExecutionResult, context: ToolContext, attempt: int
    ) -> tuple[str, str]:
        progress = context.task_progress or TaskProgress()
        return (
            self.registry.render(TOOL, "evaluate_system"),
            self.registry.render(
                TOOL,
                "evaluate",
                attempt=attempt,
                result_json=result_to_json(result),
                has_character=progress.has_character,
                worldbook_count=len(progress.worldbook_data),
            ),
        )

    def build_improvement_prompt(
        self,
        original_result: ToolExecutionResult,
        evaluation: EvaluationResult,
        context: ToolContext,
    ) -> tuple[str, str]:
        return (
            self.registry.render(TOOL, "improvement_system"),
            self.registry.render(
                TOOL,
                "improvement",
                result_json=result_to_json(original_result),
                quality_score=evaluation.quality_score,
                reasoning=evaluation.reasoning,
                improvement_needed=evaluation.improvement_needed,
            ),
        )

    def build_routing_prompt(
        self, context: ToolContext, available_sub_tools: list[str]
    ) -> tuple[str, str]:
        progress = context.task_progress or TaskProgress()
        metrics = progress.quality_metrics
        character_quality = (
            f"{metrics.completeness}/100 complete" if metrics and progress.has_character else "n/a"
        )
        worldbook_quality = (
            f"{len(progress.worldbook_data)} entries" if progress.has_worldbook else "n/a"
        )
        return (
            self.registry.render(TOOL, "routing_system", available_sub_tools=available_sub_tools),
            self.registry.render(
                TOOL,
                "routing",
                has_character=progress.has_character,
                has_worldbook=progress.has_worldbook,
                character_quality=character_quality,
                worldbook_quality=worldbook_quality,
                user_request=context.user_request or "(none)",
                output_context=context.requested_mode or "auto",
            ),
        )
