"""Tools run by the conversational agent, and their thinking modules."""

from cardsmith.agents._models import (
    EvaluationResult,
    ImprovementInstruction,
    SubToolRoutingDecision,
    ToolContext,
    ToolExecutionResult,
)
from cardsmith.agents.base_tool import BaseTool
from cardsmith.agents.thinking import BaseThinking

__all__ = [
    "BaseThinking",
    "BaseTool",
    "EvaluationResult",
    "ImprovementInstruction",
    "SubToolRoutingDecision",
    "ToolContext",
    "ToolExecutionResult",
]
