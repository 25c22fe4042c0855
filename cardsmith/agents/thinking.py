"""Model-driven judgement shared by tools: evaluate, plan improvements, route.

Each tool subclasses ``BaseThinking`` and supplies the three prompt builders; the
call-and-parse plumbing and the defaults applied to incomplete model answers live
here.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, get_args

from cardsmith.agents._models import (
    EvaluationResult,
    ImprovementInstruction,
    NextAction,
    SubToolRoutingDecision,
    ToolContext,
    ToolExecutionResult,
)
from cardsmith.memory.conversation import LLMConfig
from cardsmith.services.llm_client import LLMClient
from cardsmith.settings import Settings
from cardsmith.utils.exceptions import EvaluationError, JSONParseError, RoutingError
from cardsmith.utils.json_parser import extract_json_object

logger = logging.getLogger(__name__)

ClientFactory = Callable[[LLMConfig], LLMClient]

_NEXT_ACTIONS = set(get_args(NextAction))


def result_to_json(result: ToolExecutionResult | dict[str, Any]) -> str:
    """Pretty JSON of a tool result for inclusion in prompts."""
    data = result.model_dump(mode="json") if isinstance(result, ToolExecutionResult) else result
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _as_int(value: Any, default: int) -> int:
    """Coerce a model-supplied number, keeping *default* for None or garbage."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric value %r, using %d", value, default)
        return default


def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(item) for item in value if item is not None]
    return [str(value)]


def _clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


class BaseThinking(ABC):
    """Evaluation, improvement planning and sub-tool routing for one tool."""

    def __init__(
        self,
        tool_name: str,
        settings: Settings | None = None,
        client_factory: ClientFactory | None = None,
    ):
        self.tool_name = tool_name
        self.settings = settings or Settings.load()
        self._client_factory = client_factory or (lambda cfg: LLMClient(cfg, self.settings))

    @property
    def max_improvement_attempts(self) -> int:
        return self.settings.max_improvement_attempts

    # === Prompt builders, one set per tool ===

    @abstractmethod
    def build_evaluation_prompt(
        self, result: ToolExecutionResult, context: ToolContext, attempt: int
    ) -> tuple[str, str]:
        """Return (system, user) prompts asking the model to score *result*."""

    @abstractmethod
    def build_improvement_prompt(
        self,
        original_result: ToolExecutionResult,
        evaluation: EvaluationResult,
        context: ToolContext,
    ) -> tuple[str, str]:
        """Return (system, user) prompts asking for improvement instructions."""

    @abstractmethod
    def build_routing_prompt(
        self, context: ToolContext, available_sub_tools: list[str]
    ) -> tuple[str, str]:
        """Return (system, user) prompts asking which sub-tool to run."""

    # === Operations ===

    def run_thinking_chain(self, system_prompt: str, user_prompt: str, context: ToolContext) -> str:
        """Send one thinking prompt at the low thinking temperature.

        Raises:
            LLMError: If the model call fails.
        """
        client = self._client_factory(context.llm_config)
        return client.generate(
            system_prompt, user_prompt, temperature=self.settings.thinking_temperature
        )

    def evaluate(
        self, result: ToolExecutionResult, context: ToolContext, attempt: int = 1
    ) -> EvaluationResult:
        """Ask the model whether *result* is good enough.

        Raises:
            EvaluationError: If the answer carries no JSON object.
            LLMError: If the model call fails.
        """
        system_prompt, user_prompt = self.build_evaluation_prompt(result, context, attempt)
        response = self.run_thinking_chain(system_prompt, user_prompt, context)
        evaluation = self.parse_evaluation_response(response)
        logger.info(
            "[%s] Evaluation attempt %d: score=%d satisfied=%s next=%s",
            self.tool_name,
            attempt,
            evaluation.quality_score,
            evaluation.is_satisfied,
            evaluation.next_action,
        )
        return evaluation

    def generate_improvement(
        self,
        original_result: ToolExecutionResult,
        evaluation: EvaluationResult,
        context: ToolContext,
    ) -> ImprovementInstruction:
        """Turn an evaluation into concrete improvement instructions.

        Raises:
            EvaluationError: If the answer carries no JSON object.
            LLMError: If the model call fails.
        """
        system_prompt, user_prompt = self.build_improvement_prompt(
            original_result, evaluation, context
        )
        response = self.run_thinking_chain(system_prompt, user_prompt, context)
        instruction = self.parse_improvement_response(response)
        logger.info(
            "[%s] Improvement plan: focus=%s target=%d",
            self.tool_name,
            instruction.focus_areas,
            instruction.quality_target,
        )
        return instruction

    def route_to_sub_tool(
        self, context: ToolContext, available_sub_tools: list[str]
    ) -> SubToolRoutingDecision:
        """Let the model pick one of *available_sub_tools*.

        Raises:
            RoutingError: If no sub-tools are offered or the answer carries no JSON object.
            LLMError: If the model call fails.
        """
        if not available_sub_tools:
            raise RoutingError("No sub-tools available for routing", tool_name=self.tool_name)
        system_prompt, user_prompt = self.build_routing_prompt(context, available_sub_tools)
        response = self.run_thinking_chain(system_prompt, user_prompt, context)
        decision = self.parse_routing_response(response, available_sub_tools)
        logger.info(
            "[%s] Selected sub-tool: %s (confidence: %d%%) - %s",
            self.tool_name,
            decision.selected_sub_tool,
            decision.confidence,
            decision.reasoning,
        )
        return decision

    # === Parsing ===

    def parse_evaluation_response(self, response: str) -> EvaluationResult:
        """Parse an evaluation answer, filling defaults for missing fields."""
        try:
            parsed = extract_json_object(response)
        except JSONParseError as e:
            logger.error("[%s] Failed to parse evaluation response: %r", self.tool_name, response)
            raise EvaluationError(
                f"Failed to parse evaluation response: {e}", tool_name=self.tool_name
            ) from e

        next_action = parsed.get("next_action") or "continue"
        if next_action not in _NEXT_ACTIONS:
            logger.warning(
                "[%s] Unknown next_action %r, treating as 'continue'", self.tool_name, next_action
            )
            next_action = "continue"

        return EvaluationResult(
            is_satisfied=bool(parsed.get("is_satisfied", False)),
            quality_score=_clamp(
                _as_int(parsed.get("quality_score"), self.settings.default_quality_score)
            ),
            reasoning=str(parsed.get("reasoning") or response),
            improvement_needed=_as_str_list(parsed.get("improvement_needed")),
            next_action=next_action,
        )

    def parse_improvement_response(self, response: str) -> ImprovementInstruction:
        """Parse improvement instructions; ``max_attempts`` always comes from settings."""
        try:
            parsed = extract_json_object(response)
        except JSONParseError as e:
            logger.error("[%s] Failed to parse improvement response: %r", self.tool_name, response)
            raise EvaluationError(
                f"Failed to parse improvement response: {e}", tool_name=self.tool_name
            ) from e

        return ImprovementInstruction(
            focus_areas=_as_str_list(parsed.get("focus_areas")),
            specific_requests=_as_str_list(parsed.get("specific_requests")),
            quality_target=_clamp(
                _as_int(parsed.get("quality_target"), self.settings.default_quality_target)
            ),
            max_attempts=self.max_improvement_attempts,
        )

    def parse_routing_response(
        self, response: str, available_sub_tools: list[str]
    ) -> SubToolRoutingDecision:
        """Parse a routing answer, falling back to the first sub-tool on a bad pick."""
        try:
            parsed = extract_json_object(response)
        except JSONParseError as e:
            logger.error("[%s] Failed to parse routing response: %r", self.tool_name, response)
            raise RoutingError(
                f"Failed to parse routing response: {e}", tool_name=self.tool_name
            ) from e

        selected = parsed.get("selected_sub_tool") or available_sub_tools[0]
        if selected not in available_sub_tools:
            logger.warning(
                "[%s] Selected sub-tool %r not available, using %s",
                self.tool_name,
                selected,
                available_sub_tools[0],
            )
            return SubToolRoutingDecision(
                selected_sub_tool=available_sub_tools[0],
                reasoning=f'Fallback: Original selection "{selected}" not available',
                confidence=self.settings.routing_fallback_confidence,
            )

        return SubToolRoutingDecision(
            selected_sub_tool=selected,
            reasoning=str(parsed.get("reasoning") or f"Selected {selected}"),
            confidence=_clamp(
                _as_int(parsed.get("confidence"), self.settings.routing_default_confidence)
            ),
        )
