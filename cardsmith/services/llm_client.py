"""Model provider client used by tools and thinking.

One ``generate(system_prompt, user_prompt)`` call for both providers: Ollama through
``ollama.Client.chat`` and OpenAI-compatible endpoints through
``openai.OpenAI().chat.completions.create``. Transient failures are retried with
exponential backoff, responses are cleaned of think tags, and a process-wide circuit
breaker stops hammering a provider that keeps failing.
"""

import logging
import time
from typing import Any

import httpx
import ollama
import openai
from pydantic import BaseModel

from cardsmith.memory.conversation import LLMConfig
from cardsmith.settings import Settings
from cardsmith.utils.circuit_breaker import CircuitBreaker, CircuitState, get_circuit_breaker
from cardsmith.utils.exceptions import (
    CircuitOpenError,
    LLMConfigError,
    LLMConnectionError,
    LLMGenerationError,
)
from cardsmith.utils.json_parser import clean_llm_text
from cardsmith.utils.logging_config import log_performance
from cardsmith.utils.validation import validate_not_empty

logger = logging.getLogger(__name__)

# Errors worth another attempt. Everything else from the provider is final.
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
    httpx.TransportError,
    openai.APIConnectionError,
)


class GenerationMetrics(BaseModel):
    """Token and timing figures for one generation call."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int = 0
    time_seconds: float = 0.0
    model_id: str = ""
    attempts: int = 1


class LLMClient:
    """Text generation against the provider named by an ``LLMConfig``."""

    def __init__(self, config: LLMConfig, settings: Settings | None = None):
        self.config = config
        self.settings = settings or Settings.load()
        self._client: Any = None
        self._last_generation_metrics: GenerationMetrics | None = None

    @property
    def last_generation_metrics(self) -> GenerationMetrics | None:
        return self._last_generation_metrics

    @property
    def client(self) -> Any:
        """Lazily created provider SDK client."""
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self) -> Any:
        """Build the SDK client; ``LLMConfig`` already restricts ``llm_type``.

        Raises:
            LLMConfigError: If the openai provider has no API key.
        """
        timeout = float(self.settings.llm_timeout)
        if self.config.llm_type == "ollama":
            logger.debug("Creating Ollama client for %s", self.config.resolved_base_url)
            return ollama.Client(host=self.config.resolved_base_url, timeout=timeout)

        if not self.config.api_key:
            raise LLMConfigError("An API key is required for the openai provider")
        logger.debug("Creating OpenAI client for %s", self.config.base_url or "default endpoint")
        return openai.OpenAI(
            api_key=self.config.api_key,
            base_url=self.config.base_url or None,
            timeout=timeout,
            max_retries=0,
        )

    def _build_messages(self, system_prompt: str, user_prompt: str) -> list[dict[str, str]]:
        # Qwen models emit <think> blocks unless told not to
        if "qwen" in self.config.model_name.lower():
            system_prompt = f"/no_think\n{system_prompt}"
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

    def _call_provider(
        self, messages: list[dict[str, str]], temperature: float
    ) -> tuple[str, int | None, int | None]:
        """Issue one request and return (content, prompt_tokens, completion_tokens)."""
        max_tokens = self.config.max_tokens or self.settings.max_tokens
        if self.config.llm_type == "ollama":
            response = self.client.chat(
                model=self.config.model_name,
                messages=messages,
                options={
                    "temperature": temperature,
                    "num_predict": max_tokens,
                    "num_ctx": self.settings.context_size,
                },
            )
            return (
                response["message"]["content"] or "",
                response.get("prompt_eval_count"),
                response.get("eval_count"),
            )

        completion = self.client.chat.completions.create(
            model=self.config.model_name,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        content = completion.choices[0].message.content or ""
        usage = completion.usage
        if usage is None:
            return content, None, None
        return content, usage.prompt_tokens, usage.completion_tokens

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None = None,
        min_response_length: int | None = None,
    ) -> str:
        """Generate a cleaned text response.

        Args:
            system_prompt: Instructions sent as the system message.
            user_prompt: The request sent as the user message.
            temperature: Override for this call; defaults to the config temperature.
            min_response_length: Shortest acceptable cleaned response. Defaults to the
                ``min_response_length`` setting.

        Returns:
            Response text with think tags and surrounding whitespace removed.

        Raises:
            CircuitOpenError: If the circuit breaker is open.
            LLMConfigError: If the openai provider has no API key.
            LLMConnectionError: When transient errors outlast all retries.
            LLMGenerationError: On provider response errors, or when every attempt
                came back too short, or on any other provider exception.
        """
        validate_not_empty(user_prompt, "user_prompt")

        circuit_breaker = get_circuit_breaker(
            failure_threshold=self.settings.circuit_breaker_failure_threshold,
            success_threshold=self.settings.circuit_breaker_success_threshold,
            timeout_seconds=self.settings.circuit_breaker_timeout,
            enabled=self.settings.circuit_breaker_enabled,
        )
        # Build the SDK client before taking a half-open trial slot
        if self._client is None:
            self._client = self._create_client()
        if not circuit_breaker.allow_request():
            raise _circuit_open_error(circuit_breaker)

        messages = self._build_messages(system_prompt, user_prompt)
        use_temp = temperature if temperature is not None else self.config.temperature
        use_min_length = (
            min_response_length
            if min_response_length is not None
            else self.settings.min_response_length
        )
        max_retries = self.settings.llm_max_retries
        delay = self.settings.llm_retry_delay
        last_error: Exception | None = None
        self._last_generation_metrics = None
        model = self.config.model_name

        with log_performance(logger, f"{self.config.llm_type} generation ({model})"):
            for attempt in range(max_retries):
                try:
                    logger.info(
                        "Calling LLM (%s/%s) attempt %d/%d",
                        self.config.llm_type,
                        model,
                        attempt + 1,
                        max_retries,
                    )
                    start_time = time.time()
                    content, prompt_tokens, completion_tokens = self._call_provider(
                        messages, use_temp
                    )
                    duration = time.time() - start_time

                    self._last_generation_metrics = GenerationMetrics(
                        prompt_tokens=prompt_tokens,
                        completion_tokens=completion_tokens,
                        total_tokens=(prompt_tokens or 0) + (completion_tokens or 0),
                        time_seconds=duration,
                        model_id=model,
                        attempts=attempt + 1,
                    )
                    logger.info(
                        "LLM response received (%d chars, %.2fs, tokens: %s+%s)",
                        len(content),
                        duration,
                        prompt_tokens,
                        completion_tokens,
                    )

                    cleaned = clean_llm_text(content)
                    if len(cleaned) < use_min_length:
                        logger.warning(
                            "Response too short after cleaning (%d chars < %d), raw: %r",
                            len(cleaned),
                            use_min_length,
                            content[:50],
                        )
                        last_error = LLMGenerationError(
                            f"Response too short ({len(cleaned)} chars < {use_min_length})"
                        )
                        if attempt < max_retries - 1:
                            logger.info("Retrying in %ss...", delay)
                            time.sleep(delay)
                            delay *= self.settings.llm_retry_backoff
                            continue
                        circuit_breaker.record_failure(last_error)
                        raise LLMGenerationError(
                            f"Response too short after {max_retries} attempts "
                            f"({len(cleaned)} chars < {use_min_length})"
                        )

                    circuit_breaker.record_success()
                    return cleaned

                except RETRYABLE_ERRORS as e:
                    last_error = e
                    circuit_breaker.record_failure(e)
                    logger.warning("Transient LLM error on attempt %d: %s", attempt + 1, e)
                    if attempt < max_retries - 1:
                        if circuit_breaker.state == CircuitState.OPEN:
                            raise _circuit_open_error(circuit_breaker) from e
                        logger.info("Retrying in %ss...", delay)
                        time.sleep(delay)
                        delay *= self.settings.llm_retry_backoff

                except (ollama.ResponseError, openai.APIStatusError) as e:
                    # Model not found, bad request, auth failure: retrying will not help
                    logger.error("Provider response error: %s", e)
                    circuit_breaker.record_failure(e)
                    raise LLMGenerationError(f"Model error: {e}") from e

                except LLMGenerationError:
                    raise

                except Exception as e:
                    logger.exception("Unexpected error during LLM call: %s", e)
                    circuit_breaker.record_failure(e)
                    raise LLMGenerationError(f"Unexpected LLM error: {e}") from e

            logger.error("All %d LLM attempts failed", max_retries)
            # Only transient errors fall through the loop
            raise LLMConnectionError(
                f"Failed to generate after {max_retries} attempts: {last_error}"
            ) from last_error

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}"
            f"(type='{self.config.llm_type}', model='{self.config.model_name}')"
        )


def _circuit_open_error(circuit_breaker: CircuitBreaker) -> CircuitOpenError:
    time_until_retry = circuit_breaker.time_until_half_open()
    logger.warning("Circuit breaker open; refusing LLM call for %.0fs", time_until_retry)
    return CircuitOpenError(
        f"Circuit breaker is open. Too many LLM failures. Will retry in {time_until_retry:.0f}s.",
        time_until_retry=time_until_retry,
    )
