"""Pytest fixtures for CardSmith tests."""

import logging

import pytest

from cardsmith.memory import (
    CharacterData,
    GenerationMetadata,
    LLMConfig,
    QualityMetrics,
    TaskProgress,
    WorldbookEntry,
)
from cardsmith.prompts.registry import PromptRegistry, reset_prompt_registry
from cardsmith.services.conversation_store import InMemoryConversationStore
from cardsmith.settings import TEMPLATES_DIR, Settings
from cardsmith.utils.circuit_breaker import reset_global_circuit_breaker
from tests.shared.fake_llm import TEST_MODEL, FakeLLMClient


@pytest.fixture(autouse=True, scope="function")
def cleanup_production_log_handlers():
    """Remove file handlers pointing to the production log after each test."""
    yield

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler, logging.FileHandler) and "cardsmith.log" in handler.baseFilename:
            handler.close()
            root_logger.removeHandler(handler)


@pytest.fixture(autouse=True)
def clear_settings_cache_per_test():
    """Clear Settings cache before each test to ensure isolation."""
    Settings.clear_cache()
    yield
    Settings.clear_cache()


@pytest.fixture(autouse=True)
def isolate_settings_file(tmp_path, monkeypatch):
    """Point the default settings file at a temp path so tests never touch settings.json."""
    monkeypatch.setattr("cardsmith.settings._settings.SETTINGS_FILE", tmp_path / "settings.json")


@pytest.fixture(autouse=True)
def clear_prompt_registry_per_test():
    reset_prompt_registry()
    yield
    reset_prompt_registry()


@pytest.fixture(autouse=True)
def reset_circuit_breaker_per_test():
    """The breaker is process-wide; failures in one test must not open it for the next."""
    reset_global_circuit_breaker()
    yield
    reset_global_circuit_breaker()


@pytest.fixture
def settings() -> Settings:
    """Default settings with no retry delay."""
    return Settings(llm_retry_delay=0.0, model_name=TEST_MODEL)


@pytest.fixture
def registry() -> PromptRegistry:
    return PromptRegistry(TEMPLATES_DIR)


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def llm_config() -> LLMConfig:
    return LLMConfig(llm_type="ollama", model_name=TEST_MODEL)


@pytest.fixture
def store() -> InMemoryConversationStore:
    return InMemoryConversationStore()


@pytest.fixture
def sample_character() -> CharacterData:
    return CharacterData(
        name="Mira Vale",
        description="A cartographer who maps cities that only exist at night.",
        personality="Curious, dry-witted, stubborn about accuracy.",
        scenario="The lamplighters' guild has hired Mira to chart the Undercity.",
        first_mes="*unrolls a map that is still drawing itself* You're late.",
        tags=["fantasy", "explorer"],
    )


@pytest.fixture
def sample_entries() -> list[WorldbookEntry]:
    return [
        WorldbookEntry(
            uid=str(i),
            key=[f"place{i}", "undercity"],
            comment=f"Location {i}",
            content=f"Description of location {i}. " * 3,
        )
        for i in range(1, 8)
    ]


@pytest.fixture
def complete_progress(sample_character, sample_entries) -> TaskProgress:
    return TaskProgress(
        character_data=sample_character,
        worldbook_data=sample_entries,
        quality_metrics=QualityMetrics(completeness=90, consistency=70),
        generation_metadata=GenerationMetadata(
            total_iterations=6, tools_used=["character", "worldbook"]
        ),
    )
