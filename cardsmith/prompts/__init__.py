"""Prompt templates and their registry."""

from cardsmith.prompts.registry import PromptRegistry, get_prompt_registry, reset_prompt_registry
from cardsmith.prompts.template import PromptTemplate

__all__ = ["PromptRegistry", "PromptTemplate", "get_prompt_registry", "reset_prompt_registry"]
