"""Unit tests for prompt templates and the prompt registry."""

from pathlib import Path

import pytest

from cardsmith.prompts import PromptRegistry, PromptTemplate, get_prompt_registry
from cardsmith.prompts.registry import reset_prompt_registry
from cardsmith.utils.exceptions import PromptTemplateError

OUTPUT_TASKS = [
    "system",
    "final_output",
    "improve",
    "evaluate_system",
    "evaluate",
    "improvement_system",
    "improvement",
    "routing_system",
    "routing",
]


def _write_template(directory: Path, filename: str, body: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(body, encoding="utf-8")
    return path


GREETING_YAML = """
name: greet
version: "1.0"
description: Greets someone
tool: demo
task: greet

template: |
  Hello {{ name }}{% if title %}, {{ title }}{% endif %}!

variables:
  required:
    - name
  optional:
    - title
"""


class TestPromptTemplate:
    @pytest.fixture
    def greeting(self, tmp_path) -> PromptTemplate:
        return PromptTemplate.from_yaml(_write_template(tmp_path, "greet.yaml", GREETING_YAML))

    def test_loads_fields(self, greeting):
        assert greeting.tool == "demo"
        assert greeting.task == "greet"
        assert greeting.required_variables == ["name"]
        assert str(greeting) == "PromptTemplate(demo/greet v1.0)"

    def test_optional_variables_default_to_none(self, greeting):
        assert greeting.render(name="Mira") == "Hello Mira!"
        assert greeting.render(name="Mira", title="cartographer") == "Hello Mira, cartographer!"

    def test_missing_required_variable(self, greeting):
        with pytest.raises(PromptTemplateError, match="Missing required variables"):
            greeting.render()

    def test_undeclared_undefined_variable(self, tmp_path):
        path = _write_template(
            tmp_path,
            "bad.yaml",
            'name: bad\nversion: "1"\ntool: demo\ntask: bad\ntemplate: "{{ nope }}"\n',
        )
        with pytest.raises(PromptTemplateError, match="Undefined variable"):
            PromptTemplate.from_yaml(path).render()

    def test_hash_changes_with_version(self, greeting):
        first = greeting.get_hash()
        greeting.version = "2.0"
        greeting._hash = None
        assert greeting.get_hash() != first

    def test_missing_version_rejected(self, tmp_path):
        path = _write_template(tmp_path, "x.yaml", "name: x\ntool: demo\ntask: x\ntemplate: hi\n")
        with pytest.raises(PromptTemplateError, match="version"):
            PromptTemplate.from_yaml(path)

    def test_syntax_error_rejected(self, tmp_path):
        path = _write_template(
            tmp_path,
            "x.yaml",
            'name: x\nversion: "1"\ntool: demo\ntask: x\ntemplate: "{% if %}"\n',
        )
        with pytest.raises(PromptTemplateError, match="Jinja2"):
            PromptTemplate.from_yaml(path)

    def test_non_mapping_rejected(self, tmp_path):
        path = _write_template(tmp_path, "x.yaml", "- just\n- a list\n")
        with pytest.raises(PromptTemplateError, match="expected dict"):
            PromptTemplate.from_yaml(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(PromptTemplateError, match="not found"):
            PromptTemplate.from_yaml(tmp_path / "absent.yaml")


class TestPromptRegistry:
    def test_bundled_output_templates(self, registry):
        assert registry.list_templates() == sorted(f"output/{task}" for task in OUTPUT_TASKS)
        assert len(registry) == len(OUTPUT_TASKS)

    def test_get_unknown_template(self, registry):
        with pytest.raises(PromptTemplateError, match="Template not found: output/nope"):
            registry.get("output", "nope")

    def test_has_template(self, registry):
        assert registry.has_template("output", "evaluate")
        assert not registry.has_template("character", "evaluate")

    def test_render_system(self, registry):
        assert registry.render_system("output").startswith("You are a completion specialist")

    def test_render_routing_lowercases_booleans(self, registry):
        rendered = registry.render(
            "output",
            "routing",
            has_character=True,
            has_worldbook=False,
            character_quality="90/100 complete",
            worldbook_quality="n/a",
            user_request="(none)",
            output_context="auto",
        )
        assert "- Has character: true" in rendered
        assert "- Has worldbook: false" in rendered

    def test_render_routing_system_lists_sub_tools(self, registry):
        rendered = registry.render(
            "output", "routing_system", available_sub_tools=["final_output", "progress_report"]
        )
        assert "- final_output\n" in rendered
        assert "- progress_report\n" in rendered

    def test_render_improve_joins_lists(self, registry):
        rendered = registry.render(
            "output",
            "improve",
            focus_areas=["detail", "tone"],
            specific_requests=["add a rival"],
            quality_target=85,
            current_output_json="{}",
        )
        assert "FOCUS AREAS: detail, tone" in rendered
        assert "TARGET QUALITY: 85/100" in rendered

    def test_broken_template_is_skipped(self, tmp_path):
        _write_template(tmp_path / "demo", "greet.yaml", GREETING_YAML)
        _write_template(tmp_path / "demo", "broken.yaml", "template: [unclosed\n")

        registry = PromptRegistry(tmp_path)

        assert registry.list_templates() == ["demo/greet"]

    def test_missing_directory_gives_empty_registry(self, tmp_path):
        assert len(PromptRegistry(tmp_path / "absent")) == 0

    def test_reload_picks_up_new_files(self, tmp_path):
        registry = PromptRegistry(tmp_path)
        _write_template(tmp_path / "demo", "greet.yaml", GREETING_YAML)

        registry.reload()

        assert registry.has_template("demo", "greet")

    def test_hash_is_stable(self, registry):
        assert registry.get_hash("output", "evaluate") == registry.get_hash("output", "evaluate")


class TestSharedRegistry:
    def test_singleton(self):
        assert get_prompt_registry() is get_prompt_registry()

    def test_reset_creates_new_instance(self):
        first = get_prompt_registry()
        reset_prompt_registry()
        assert get_prompt_registry() is not first

    def test_uses_bundled_templates_by_default(self):
        assert get_prompt_registry().has_template("output", "final_output")
