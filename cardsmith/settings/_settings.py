"""Main Settings dataclass for CardSmith.

Settings are stored in settings.json next to the project root. Missing keys get
their defaults on load, obsolete keys are dropped, and values are validated.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from cardsmith.settings import _validation as _validation_mod
from cardsmith.settings._paths import CONVERSATIONS_FILE, SETTINGS_FILE, TEMPLATES_DIR

if TYPE_CHECKING:
    from cardsmith.memory.conversation import LLMConfig

logger = logging.getLogger(__name__)


def _merge_with_defaults(data: dict[str, Any], settings_cls: type[Settings]) -> bool:
    """Add missing keys with defaults and drop keys the dataclass no longer has.

    Modifies *data* in place.

    Returns:
        True if any changes were made, False otherwise.
    """
    defaults = asdict(settings_cls())
    known_fields = {f.name for f in fields(settings_cls)}
    changed = False

    for key in list(data):
        if key not in known_fields:
            logger.info("Removing obsolete setting: %s", key)
            del data[key]
            changed = True

    for key in known_fields:
        if key not in data:
            logger.info("Adding new setting with default: %s", key)
            data[key] = defaults[key]
            changed = True

    return changed


def _atomic_write_json(path: Path | str, data: dict[str, Any] | list[Any]) -> None:
    """Write JSON to *path* via a temp file in the same directory and a rename."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError as cleanup_err:
            logger.warning("Failed to remove temp file %s: %s", tmp_path, cleanup_err)
        raise


@dataclass
class Settings:
    """Application settings, stored as JSON."""

    # General
    log_level: str = "INFO"

    # Default model configuration (used when a conversation carries none)
    llm_type: str = "ollama"
    model_name: str = "qwen3:8b"
    ollama_url: str = "http://localhost:11434"
    openai_base_url: str = ""  # Empty means the provider default
    openai_api_key_env: str = "OPENAI_API_KEY"  # Env var read when no key is configured
    temperature: float = 0.7
    max_tokens: int = 2048
    context_size: int = 16384

    # Temperature for evaluation, improvement planning and routing calls
    thinking_temperature: float = 0.1

    # Timeouts (seconds)
    llm_timeout: int = 120

    # Retry configuration
    llm_max_retries: int = 3
    llm_retry_delay: float = 2.0  # Base delay in seconds between retries
    llm_retry_backoff: float = 2.0  # Exponential backoff multiplier
    min_response_length: int = 10  # Cleaned responses shorter than this are retried

    # Circuit breaker
    circuit_breaker_enabled: bool = True
    circuit_breaker_failure_threshold: int = 5
    circuit_breaker_success_threshold: int = 2
    circuit_breaker_timeout: float = 60.0

    # Self-improvement loop
    improvement_enabled: bool = True
    max_improvement_attempts: int = 3
    default_quality_score: int = 60  # Used when an evaluation omits its score
    default_quality_target: int = 80  # Used when an improvement plan omits its target
    routing_default_confidence: int = 80
    routing_fallback_confidence: int = 50

    # Output routing: "rules" (presence checks) or "llm"
    output_routing: str = "rules"

    # Quality metrics written after final output when progress has none
    default_consistency: int = 85
    default_creativity: int = 80
    default_user_satisfaction: int = 85

    # Formatting limits (characters / counts)
    history_message_limit: int = 10
    history_content_chars: int = 200
    description_preview_chars: int = 100
    progress_recent_entries: int = 3
    worldbook_display_entries: int = 5
    worldbook_content_chars: int = 200

    # Files
    prompt_templates_dir: str = str(TEMPLATES_DIR)
    conversations_file: str = str(CONVERSATIONS_FILE)

    _cached_instance: ClassVar[Settings | None] = None

    def validate(self) -> None:
        """Validate all settings fields.

        Raises:
            ValueError: If any field contains an invalid value.
        """
        _validation_mod.validate(self)

    def save(self, path: Path | str | None = None) -> None:
        """Validate and write settings to JSON."""
        self.validate()
        _atomic_write_json(path or SETTINGS_FILE, asdict(self))
        logger.info("Settings saved to %s", path or SETTINGS_FILE)

    @classmethod
    def load(cls, path: Path | str | None = None, use_cache: bool = True) -> Settings:
        """Load settings from JSON, or create defaults.

        Args:
            path: Settings file; defaults to SETTINGS_FILE.
            use_cache: Return the cached instance if one exists. Only applies when
                loading from the default path.

        Returns:
            Settings instance.

        Raises:
            ValueError: If a stored value has the wrong type or is out of range.
        """
        use_default_path = path is None
        if use_default_path and use_cache and cls._cached_instance is not None:
            return cls._cached_instance

        settings_path = Path(path) if path is not None else SETTINGS_FILE
        data: dict[str, Any] = {}
        loaded_from_file = False

        if settings_path.exists():
            try:
                with open(settings_path, encoding="utf-8") as f:
                    raw = json.load(f)
                if isinstance(raw, dict):
                    data = raw
                    loaded_from_file = bool(raw)
                else:
                    logger.error(
                        "Corrupted settings file (expected JSON object, got %s)",
                        type(raw).__name__,
                    )
                    cls._backup_corrupt(settings_path)
            except json.JSONDecodeError as e:
                logger.error("Corrupted settings file (invalid JSON): %s", e)
                cls._backup_corrupt(settings_path)
            except OSError as e:
                logger.error("Cannot read settings file %s: %s", settings_path, e)

        changed = _merge_with_defaults(data, cls)

        try:
            settings = cls(**data)
            settings.validate()
        except TypeError as e:
            raise ValueError(f"A setting has an invalid type: {e}") from e

        if changed and loaded_from_file:
            logger.info("Settings updated during load, saving to disk")
            try:
                _atomic_write_json(settings_path, asdict(settings))
            except OSError as write_err:
                logger.warning("Could not persist updated settings: %s", write_err)

        if use_default_path:
            cls._cached_instance = settings
        return settings

    @staticmethod
    def _backup_corrupt(settings_path: Path) -> None:
        backup_path = settings_path.with_suffix(".json.corrupt")
        try:
            shutil.copy(settings_path, backup_path)
            logger.info("Backed up corrupted settings to %s", backup_path)
        except OSError as copy_err:
            logger.warning("Failed to backup corrupted settings: %s", copy_err)

    @classmethod
    def clear_cache(cls) -> None:
        """Clear the cached settings instance (used by tests and after edits)."""
        cls._cached_instance = None

    def default_llm_config(self) -> LLMConfig:
        """Build the model configuration used when a conversation carries none.

        For OpenAI-compatible providers the API key is read from the environment
        variable named by ``openai_api_key_env``.
        """
        from cardsmith.memory.conversation import LLMConfig

        if self.llm_type == "openai":
            return LLMConfig(
                llm_type="openai",
                model_name=self.model_name,
                api_key=os.environ.get(self.openai_api_key_env, ""),
                base_url=self.openai_base_url or None,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        return LLMConfig(
            llm_type="ollama",
            model_name=self.model_name,
            base_url=self.ollama_url,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
