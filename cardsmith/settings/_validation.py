"""Validation functions for Settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from cardsmith.settings._types import LLM_TYPES, LOG_LEVELS, OUTPUT_ROUTING_STRATEGIES

if TYPE_CHECKING:
    from cardsmith.settings._settings import Settings

logger = logging.getLogger(__name__)


def validate(settings: Settings) -> None:
    """Validate all settings fields.

    Raises:
        ValueError: If any field contains an invalid value.
    """
    _validate_choices(settings)
    _validate_urls(settings)
    _validate_model(settings)
    _validate_retry_configuration(settings)
    _validate_circuit_breaker(settings)
    _validate_improvement_loop(settings)
    _validate_quality_defaults(settings)
    _validate_formatting_limits(settings)


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


def _validate_choices(settings: Settings) -> None:
    """Validate enum-like string fields."""
    if settings.log_level not in LOG_LEVELS:
        raise ValueError(
            f"log_level must be one of {list(LOG_LEVELS)}, got {settings.log_level}"
        )
    if settings.llm_type not in LLM_TYPES:
        raise ValueError(f"llm_type must be one of {list(LLM_TYPES)}, got {settings.llm_type}")
    if settings.output_routing not in OUTPUT_ROUTING_STRATEGIES:
        raise ValueError(
            f"output_routing must be one of {list(OUTPUT_ROUTING_STRATEGIES)}, "
            f"got {settings.output_routing}"
        )


def _validate_urls(settings: Settings) -> None:
    """Validate provider URLs (openai_base_url may be empty)."""
    urls = {"ollama_url": settings.ollama_url}
    if settings.openai_base_url:
        urls["openai_base_url"] = settings.openai_base_url
    for name, url in urls.items():
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"Invalid URL scheme in {name}: {url}")
        if not parsed.netloc:
            raise ValueError(f"Invalid URL (missing host) in {name}: {url}")


def _validate_model(settings: Settings) -> None:
    """Validate default model name and sampling limits."""
    if not settings.model_name.strip():
        raise ValueError("model_name cannot be empty")
    _check_range("temperature", settings.temperature, 0.0, 2.0)
    _check_range("thinking_temperature", settings.thinking_temperature, 0.0, 2.0)
    _check_range("max_tokens", settings.max_tokens, 64, 32000)
    _check_range("context_size", settings.context_size, 1024, 256000)
    _check_range("llm_timeout", settings.llm_timeout, 5, 3600)


def _validate_retry_configuration(settings: Settings) -> None:
    _check_range("llm_max_retries", settings.llm_max_retries, 1, 10)
    _check_range("llm_retry_delay", settings.llm_retry_delay, 0.0, 60.0)
    _check_range("llm_retry_backoff", settings.llm_retry_backoff, 1.0, 10.0)
    _check_range("min_response_length", settings.min_response_length, 1, 1000)


def _validate_circuit_breaker(settings: Settings) -> None:
    _check_range(
        "circuit_breaker_failure_threshold", settings.circuit_breaker_failure_threshold, 1, 50
    )
    _check_range(
        "circuit_breaker_success_threshold", settings.circuit_breaker_success_threshold, 1, 20
    )
    _check_range("circuit_breaker_timeout", settings.circuit_breaker_timeout, 1.0, 3600.0)


def _validate_improvement_loop(settings: Settings) -> None:
    _check_range("max_improvement_attempts", settings.max_improvement_attempts, 1, 10)
    _check_range("default_quality_score", settings.default_quality_score, 0, 100)
    _check_range("default_quality_target", settings.default_quality_target, 0, 100)
    _check_range("routing_default_confidence", settings.routing_default_confidence, 0, 100)
    _check_range("routing_fallback_confidence", settings.routing_fallback_confidence, 0, 100)


def _validate_quality_defaults(settings: Settings) -> None:
    _check_range("default_consistency", settings.default_consistency, 0, 100)
    _check_range("default_creativity", settings.default_creativity, 0, 100)
    _check_range("default_user_satisfaction", settings.default_user_satisfaction, 0, 100)


def _validate_formatting_limits(settings: Settings) -> None:
    _check_range("history_message_limit", settings.history_message_limit, 0, 200)
    _check_range("history_content_chars", settings.history_content_chars, 10, 10000)
    _check_range("description_preview_chars", settings.description_preview_chars, 10, 10000)
    _check_range("progress_recent_entries", settings.progress_recent_entries, 0, 100)
    _check_range("worldbook_display_entries", settings.worldbook_display_entries, 1, 100)
    _check_range("worldbook_content_chars", settings.worldbook_content_chars, 10, 10000)
