"""Tests for task progress and conversation models."""

import pytest
from pydantic import ValidationError

from cardsmith.memory import (
    CharacterData,
    Conversation,
    ConversationMessage,
    LLMConfig,
    QualityMetrics,
    TaskProgress,
    WorldbookEntry,
)


class TestCharacterData:
    def test_requires_name_and_description(self):
        with pytest.raises(ValidationError):
            CharacterData(name="Only a name")  # type: ignore[call-arg]

    def test_keeps_unknown_fields(self):
        character = CharacterData(name="A", description="B", talkativeness="0.5")
        assert character.model_dump()["talkativeness"] == "0.5"


class TestWorldbookEntry:
    def test_splits_comma_separated_keys(self):
        entry = WorldbookEntry(key="castle, moat ,", keysecondary=None)
        assert entry.key == ["castle", "moat"]
        assert entry.keysecondary == []

    def test_defaults(self):
        entry = WorldbookEntry()
        assert entry.order == 100
        assert entry.constant is False


class TestQualityMetrics:
    def test_bounds(self):
        with pytest.raises(ValidationError):
            QualityMetrics(completeness=101)


class TestTaskProgress:
    def test_empty_progress(self):
        progress = TaskProgress()
        assert not progress.has_character
        assert not progress.has_worldbook
        assert progress.completion_percentage == 0

    def test_none_worldbook_becomes_empty(self):
        assert TaskProgress(worldbook_data=None).worldbook_data == []

    def test_half_complete(self, sample_character):
        assert TaskProgress(character_data=sample_character).completion_percentage == 50

    def test_complete(self, complete_progress):
        assert complete_progress.has_character
        assert complete_progress.has_worldbook
        assert complete_progress.completion_percentage == 100

    def test_json_roundtrip(self, complete_progress):
        restored = TaskProgress.model_validate_json(complete_progress.model_dump_json())
        assert restored == complete_progress


class TestLLMConfig:
    def test_rejects_unknown_type(self):
        with pytest.raises(ValidationError):
            LLMConfig(llm_type="anthropic", model_name="claude")  # type: ignore[arg-type]

    def test_rejects_blank_model(self):
        with pytest.raises(ValidationError):
            LLMConfig(llm_type="ollama", model_name=" ")

    def test_ollama_default_url(self):
        assert LLMConfig(llm_type="ollama", model_name="m").resolved_base_url == (
            "http://localhost:11434"
        )

    def test_openai_url_passthrough(self):
        config = LLMConfig(llm_type="openai", model_name="m", base_url="https://api.example/v1")
        assert config.resolved_base_url == "https://api.example/v1"


class TestConversation:
    def test_user_request_is_first_user_message(self):
        conversation = Conversation(
            messages=[
                ConversationMessage(role="system", content="hi", message_type="system_info"),
                ConversationMessage(role="user", content="Make a pirate", message_type="user_input"),
                ConversationMessage(role="user", content="Also a ship"),
            ]
        )
        assert conversation.user_request == "Make a pirate"

    def test_user_request_empty_without_user(self):
        assert Conversation().user_request == ""

    def test_rejects_unknown_message_type(self):
        with pytest.raises(ValidationError):
            ConversationMessage(role="agent", content="x", message_type="shout")  # type: ignore[arg-type]
