"""Centralized exception hierarchy for CardSmith.

Exception Hierarchy:

    CardSmithError (base for all application errors)
    ├── LLMError (model provider errors)
    │   ├── LLMConnectionError (provider unreachable)
    │   ├── LLMGenerationError (generation failed after retries)
    │   ├── CircuitOpenError (circuit breaker blocking requests)
    │   └── LLMConfigError (provider misconfigured; also a ConfigError)
    ├── ConfigError (settings or LLM config invalid)
    ├── JSONParseError (model response is not usable JSON)
    ├── PromptTemplateError (template missing, invalid, or failed to render)
    ├── ConversationNotFoundError (unknown conversation id)
    └── ToolError (tool execution failures)
        ├── OutputGenerationError (output sub-tool or improvement failed)
        ├── EvaluationError (quality evaluation or improvement planning failed)
        └── RoutingError (sub-tool routing failed)

Usage:
    from cardsmith.utils.exceptions import LLMError, OutputGenerationError

    try:
        tool.execute(context)
    except OutputGenerationError:
        logger.error("Output could not be produced")
    except LLMError:
        logger.error("Model call failed")
"""

import logging

logger = logging.getLogger(__name__)


class CardSmithError(Exception):
    """Base exception for all CardSmith errors."""

    pass


class LLMError(CardSmithError):
    """Base exception for model provider errors."""

    pass


class LLMConnectionError(LLMError):
    """Raised when the model provider cannot be reached."""

    pass


class LLMGenerationError(LLMError):
    """Raised when generation fails after retries.

    Also raised for non-retryable provider errors such as an unknown model.
    """

    pass


class CircuitOpenError(LLMError):
    """Raised when the circuit breaker is open and blocking requests.

    Attributes:
        time_until_retry: Seconds until the circuit may allow requests.
    """

    def __init__(self, message: str, time_until_retry: float | None = None):
        """Initialize CircuitOpenError with timing information.

        Args:
            message: Human-readable error message.
            time_until_retry: Seconds until circuit may transition to half-open.
        """
        super().__init__(message)
        self.time_until_retry = time_until_retry


class ConfigError(CardSmithError):
    """Raised when settings or an LLM configuration cannot be used."""

    pass


class LLMConfigError(LLMError, ConfigError):
    """Raised when the model client cannot be built from its configuration."""

    pass


class JSONParseError(CardSmithError):
    """Raised when JSON extraction or parsing fails.

    Attributes:
        response_preview: First 500 chars of the raw response for debugging.
        expected_type: The expected type (dict, list, or model class name).
    """

    def __init__(
        self,
        message: str,
        response_preview: str | None = None,
        expected_type: str | None = None,
    ):
        super().__init__(message)
        self.response_preview = response_preview
        self.expected_type = expected_type


class PromptTemplateError(CardSmithError):
    """Raised when a prompt template is missing, invalid, or fails to render."""

    pass


class ConversationNotFoundError(CardSmithError):
    """Raised when a conversation id is not present in the store."""

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation not found: {conversation_id}")
        self.conversation_id = conversation_id


class ToolError(CardSmithError):
    """Base exception for tool execution failures.

    Attributes:
        tool_name: Name of the tool that failed, when known.
    """

    def __init__(self, message: str, tool_name: str | None = None):
        super().__init__(message)
        self.tool_name = tool_name
        logger.debug("%s initialized: tool=%s, message=%s", type(self).__name__, tool_name, message)


class OutputGenerationError(ToolError):
    """Raised when an output sub-tool or an improvement pass fails."""

    pass


class EvaluationError(ToolError):
    """Raised when a quality evaluation or improvement instruction cannot be produced."""

    pass


class RoutingError(ToolError):
    """Raised when the model-driven sub-tool routing cannot be parsed."""

    pass
