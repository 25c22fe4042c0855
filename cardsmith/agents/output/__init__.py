"""Output tool package."""

from cardsmith.agents.output._formatting import (
    format_character_card,
    format_progress_report,
    format_worldbook_entries,
)
from cardsmith.agents.output._thinking import OutputThinking
from cardsmith.agents.output._tool import OutputMode, OutputTool

__all__ = [
    "OutputMode",
    "OutputThinking",
    "OutputTool",
    "format_character_card",
    "format_progress_report",
    "format_worldbook_entries",
]
