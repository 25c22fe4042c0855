"""Tests for the in-memory and JSON conversation stores."""

import json

import pytest

from cardsmith.memory import QualityMetrics, TaskProgress
from cardsmith.services.conversation_store import (
    InMemoryConversationStore,
    JsonConversationStore,
)
from cardsmith.utils.exceptions import ConversationNotFoundError


class TestInMemoryConversationStore:
    def test_create_records_initial_request(self, store, llm_config):
        conversation = store.create("Test", llm_config, "Make a knight")

        assert conversation.title == "Test"
        assert conversation.user_request == "Make a knight"
        assert conversation.messages[0].message_type == "user_input"
        assert store.get(conversation.id) is conversation

    def test_get_unknown_raises(self, store):
        with pytest.raises(ConversationNotFoundError):
            store.get("missing")

    def test_add_message(self, store, llm_config):
        conversation = store.create("Test", llm_config, "hi")

        message = store.add_message(conversation.id, "agent", "Here you go", "agent_output")

        assert store.get(conversation.id).messages[-1] == message
        assert message.role == "agent"

    def test_add_message_unknown_conversation(self, store):
        with pytest.raises(ConversationNotFoundError):
            store.add_message("missing", "agent", "text")

    def test_update_task_progress_replaces_fields(self, store, llm_config, sample_character):
        conversation = store.create("Test", llm_config, "hi")

        progress = store.update_task_progress(
            conversation.id,
            character_data=sample_character,
            quality_metrics=QualityMetrics(completeness=100),
        )

        assert progress.character_data == sample_character
        assert progress.quality_metrics.completeness == 100
        assert store.get(conversation.id).task_progress == progress

    def test_update_task_progress_keeps_other_fields(
        self, store, llm_config, sample_character, sample_entries
    ):
        conversation = store.create("Test", llm_config, "hi")
        store.update_task_progress(
            conversation.id, character_data=sample_character, worldbook_data=sample_entries
        )

        progress = store.update_task_progress(
            conversation.id, quality_metrics=QualityMetrics(consistency=50)
        )

        assert progress.character_data == sample_character
        assert len(progress.worldbook_data) == len(sample_entries)

    def test_update_task_progress_rejects_unknown_field(self, store, llm_config):
        conversation = store.create("Test", llm_config, "hi")
        with pytest.raises(ValueError, match="Unknown task progress field"):
            store.update_task_progress(conversation.id, mood="happy")

    def test_update_bumps_last_updated(self, store, llm_config):
        conversation = store.create("Test", llm_config, "hi")
        before = conversation.task_progress.generation_metadata.last_updated

        progress = store.update_task_progress(conversation.id, worldbook_data=[])

        assert progress.generation_metadata.last_updated >= before


class TestJsonConversationStore:
    def test_persists_across_instances(self, tmp_path, llm_config, sample_character):
        path = tmp_path / "conversations.json"
        store = JsonConversationStore(path)
        conversation = store.create("Saved", llm_config, "Make a bard")
        store.add_message(conversation.id, "agent", "Done")
        store.update_task_progress(conversation.id, character_data=sample_character)

        reopened = JsonConversationStore(path)
        restored = reopened.get(conversation.id)

        assert restored.title == "Saved"
        assert [m.content for m in restored.messages] == ["Make a bard", "Done"]
        assert restored.task_progress.character_data == sample_character
        assert restored.llm_config == llm_config

    def test_missing_file_starts_empty(self, tmp_path):
        store = JsonConversationStore(tmp_path / "none.json")
        assert store.list() == []

    def test_file_is_json_list(self, tmp_path, llm_config):
        path = tmp_path / "conversations.json"
        JsonConversationStore(path).create("One", llm_config, "hi")

        data = json.loads(path.read_text(encoding="utf-8"))

        assert isinstance(data, list)
        assert data[0]["title"] == "One"

    def test_non_list_file_rejected(self, tmp_path):
        path = tmp_path / "conversations.json"
        path.write_text('{"id": "x"}')
        with pytest.raises(ValueError, match="JSON list"):
            JsonConversationStore(path)

    def test_invalid_entries_not_loaded(self, tmp_path):
        path = tmp_path / "conversations.json"
        path.write_text(json.dumps([{"messages": "not a list"}, {"title": "ok"}]))

        store = JsonConversationStore(path)

        assert [c.title for c in store.list()] == ["ok"]

    def test_invalid_entries_survive_rewrite(self, tmp_path, llm_config):
        path = tmp_path / "conversations.json"
        broken = {"id": "bad", "messages": "not a list"}
        path.write_text(json.dumps([broken]))

        store = JsonConversationStore(path)
        created = store.create("New", llm_config, "hi")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert [item["id"] for item in data] == [created.id, "bad"]
        assert data[1] == broken

    def test_no_temp_files_left(self, tmp_path, llm_config):
        store = JsonConversationStore(tmp_path / "conversations.json")
        store.create("One", llm_config, "hi")
        assert not list(tmp_path.glob("*.tmp"))


def test_in_memory_store_accepts_seed_conversations(llm_config):
    seeded = InMemoryConversationStore()
    conversation = seeded.create("Seed", llm_config, "hi")

    store = InMemoryConversationStore([conversation])

    progress = store.get(conversation.id).task_progress
    assert progress.model_dump(exclude={"generation_metadata"}) == (
        TaskProgress().model_dump(exclude={"generation_metadata"})
    )
