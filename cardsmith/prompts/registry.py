"""Registry of prompt templates, keyed "tool/task"."""

import logging
import threading
from pathlib import Path
from typing import Any

from cardsmith.prompts.template import PromptTemplate
from cardsmith.settings import Settings
from cardsmith.settings._paths import TEMPLATES_DIR
from cardsmith.utils.exceptions import PromptTemplateError

logger = logging.getLogger(__name__)


class PromptRegistry:
    """Loads every YAML template under a directory.

    Templates are organized by tool::

        prompts/templates/
        └── output/
            ├── system.yaml
            ├── final_output.yaml
            └── evaluate.yaml
    """

    def __init__(self, templates_dir: Path | str | None = None):
        self.templates_dir = Path(templates_dir) if templates_dir else TEMPLATES_DIR
        self._templates: dict[str, PromptTemplate] = {}
        self._load_all_templates()

    @staticmethod
    def _make_key(tool: str, task: str) -> str:
        return f"{tool}/{task}"

    def _load_all_templates(self) -> None:
        if not self.templates_dir.exists():
            logger.warning("Templates directory not found: %s", self.templates_dir)
            return

        yaml_files = sorted(self.templates_dir.rglob("*.yaml"))
        loaded = 0
        errors = 0
        for yaml_file in yaml_files:
            try:
                template = PromptTemplate.from_yaml(yaml_file)
            except PromptTemplateError as e:
                logger.error("Failed to load template %s: %s", yaml_file, e)
                errors += 1
                continue
            key = self._make_key(template.tool, template.task)
            if key in self._templates:
                logger.warning("Duplicate template key '%s', overwriting with %s", key, yaml_file)
            self._templates[key] = template
            loaded += 1

        logger.info(
            "Loaded %d templates from %s (%d errors)", loaded, self.templates_dir, errors
        )

    def get(self, tool: str, task: str) -> PromptTemplate:
        """Look up a template.

        Raises:
            PromptTemplateError: If no template is registered under tool/task.
        """
        key = self._make_key(tool, task)
        template = self._templates.get(key)
        if template is None:
            raise PromptTemplateError(
                f"Template not found: {key}. Available templates: {self.list_templates()}"
            )
        return template

    def render(self, tool: str, task: str, **kwargs: Any) -> str:
        return self.get(tool, task).render(**kwargs)

    def render_system(self, tool: str, **kwargs: Any) -> str:
        """Render the tool's ``system`` template."""
        return self.render(tool, "system", **kwargs)

    def has_template(self, tool: str, task: str) -> bool:
        return self._make_key(tool, task) in self._templates

    def get_hash(self, tool: str, task: str) -> str:
        return self.get(tool, task).get_hash()

    def list_templates(self) -> list[str]:
        return sorted(self._templates)

    def reload(self) -> None:
        """Drop and re-read all templates."""
        logger.info("Reloading all templates")
        self._templates.clear()
        self._load_all_templates()

    def __len__(self) -> int:
        return len(self._templates)

    def __repr__(self) -> str:
        return f"PromptRegistry({len(self._templates)} templates from {self.templates_dir})"


_prompt_registry: PromptRegistry | None = None
_prompt_registry_lock = threading.Lock()


def get_prompt_registry() -> PromptRegistry:
    """Get or lazily create the shared registry from ``prompt_templates_dir``."""
    global _prompt_registry
    if _prompt_registry is None:
        settings = Settings.load()
        with _prompt_registry_lock:
            if _prompt_registry is None:
                _prompt_registry = PromptRegistry(settings.prompt_templates_dir)
                logger.info("Initialized prompt registry with %d templates", len(_prompt_registry))
    return _prompt_registry


def reset_prompt_registry() -> None:
    """Forget the shared registry so the next lookup reloads it."""
    global _prompt_registry
    with _prompt_registry_lock:
        _prompt_registry = None
