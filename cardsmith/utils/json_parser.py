"""JSON extraction utilities for parsing model responses."""

import json
import logging
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from cardsmith.utils.exceptions import JSONParseError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_THINK_BLOCK = re.compile(r"<think>.*?</think>", flags=re.DOTALL)
_THINK_TAG = re.compile(r"</?think>")
_SPECIAL_TOKEN = re.compile(r"<\|.*?\|>")


def clean_llm_text(text: str) -> str:
    """Clean model output by removing thinking tags and other artifacts.

    Args:
        text: Raw text from the model.

    Returns:
        Cleaned text suitable for display.
    """
    if not text:
        return text

    cleaned = _THINK_BLOCK.sub("", text)
    cleaned = _THINK_TAG.sub("", cleaned)
    cleaned = _SPECIAL_TOKEN.sub("", cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


def _try_parse_json(json_str: str) -> dict[str, Any] | list[Any] | None:
    """Parse a string as JSON, returning None on failure."""
    try:
        parsed: dict[str, Any] | list[Any] = json.loads(json_str.strip())
        return parsed
    except json.JSONDecodeError as e:
        logger.debug("try_parse failed: %s (input preview: %.100s...)", e, json_str)
        return None


def _slice_outer_json(text: str) -> str | None:
    """Return the text between the first opening and last closing bracket.

    Brackets are either braces or square brackets; None if no such span exists.
    """
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    end = max(text.rfind("}"), text.rfind("]"))
    if not starts or end == -1:
        return None
    start = min(starts)
    if start >= end:
        return None
    return text[start : end + 1]


def extract_json(response: str, strict: bool = True) -> dict[str, Any] | list[Any] | None:
    """Extract a JSON object or array from a model response.

    Tries, in order:
    1. ```json code block
    2. ``` code block without a language marker
    3. Outermost {...} or [...] span in the raw text

    Args:
        response: The model response text.
        strict: If True (default), raises JSONParseError on failure.
                If False, returns None on failure.

    Returns:
        Parsed JSON (dict or list), or None only if strict=False and parsing fails.

    Raises:
        JSONParseError: If strict=True and no valid JSON could be extracted.
    """
    response = _THINK_BLOCK.sub("", response or "")
    response = _THINK_TAG.sub("", response)

    json_match = re.search(r"```json\s*(.*?)\s*```", response, re.DOTALL)
    if json_match:
        result = _try_parse_json(json_match.group(1))
        if result is not None:
            return result
        logger.debug("Found ```json block but failed to parse")

    code_match = re.search(r"```\s*(.*?)\s*```", response, re.DOTALL)
    if code_match:
        result = _try_parse_json(code_match.group(1))
        if result is not None:
            return result
        logger.debug("Found ``` block but failed to parse")

    span = _slice_outer_json(response)
    if span is not None:
        result = _try_parse_json(span)
        if result is not None:
            return result
        logger.debug("Found bracketed span but failed to parse")

    error_msg = f"No valid JSON found in response. Response preview: {response[:200]}..."
    if strict:
        logger.error(error_msg)
        raise JSONParseError(
            error_msg,
            response_preview=response[:500],
            expected_type="dict or list",
        )
    logger.debug(error_msg)
    return None


def extract_json_object(response: str) -> dict[str, Any]:
    """Extract a JSON object, rejecting arrays and scalars.

    Raises:
        JSONParseError: If no JSON object could be extracted.
    """
    data = extract_json(response, strict=True)
    if not isinstance(data, dict):
        raise JSONParseError(
            f"Expected JSON object but got {type(data).__name__}",
            response_preview=response[:500],
            expected_type="dict",
        )
    return data


def parse_json_to_model(response: str, model_class: type[T]) -> T:
    """Extract a JSON object and validate it into a Pydantic model.

    Raises:
        JSONParseError: If extraction or validation fails.
    """
    data = extract_json_object(response)
    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        error_msg = f"Failed to create {model_class.__name__}: {e}"
        logger.error(error_msg)
        raise JSONParseError(
            error_msg,
            response_preview=response[:500],
            expected_type=model_class.__name__,
        ) from e
