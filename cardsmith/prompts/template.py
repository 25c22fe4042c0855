"""YAML prompt templates rendered with Jinja2."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, UndefinedError

from cardsmith.utils.exceptions import PromptTemplateError

logger = logging.getLogger(__name__)


@dataclass
class PromptTemplate:
    """A prompt template loaded from YAML.

    Attributes:
        name: Template name (e.g., "final_output").
        version: Template version, part of the content hash.
        description: What the prompt is for.
        tool: Tool the template belongs to (e.g., "output").
        task: Task identifier within the tool (e.g., "evaluate").
        template: Jinja2 source.
        required_variables: Variables that must be passed to ``render``.
        optional_variables: Variables that default to None when omitted.
        is_system_prompt: Whether the template renders a system message.
    """

    name: str
    version: str
    description: str
    tool: str
    task: str
    template: str
    required_variables: list[str] = field(default_factory=list)
    optional_variables: list[str] = field(default_factory=list)
    is_system_prompt: bool = False

    _hash: str | None = field(default=None, repr=False, compare=False)
    _jinja_env: Environment = field(
        default_factory=lambda: Environment(undefined=StrictUndefined, keep_trailing_newline=False),
        repr=False,
        compare=False,
    )

    def render(self, **kwargs: Any) -> str:
        """Render the template.

        Raises:
            PromptTemplateError: If a required variable is missing or rendering fails.
        """
        missing = set(self.required_variables) - set(kwargs)
        if missing:
            raise PromptTemplateError(
                f"Missing required variables for template '{self.name}': {sorted(missing)}"
            )

        for var in self.optional_variables:
            kwargs.setdefault(var, None)

        try:
            rendered = self._jinja_env.from_string(self.template).render(**kwargs)
        except UndefinedError as e:
            raise PromptTemplateError(f"Undefined variable in template '{self.name}': {e}") from e
        except TemplateSyntaxError as e:
            raise PromptTemplateError(f"Syntax error in template '{self.name}': {e}") from e
        logger.debug("Rendered template '%s' v%s (%d chars)", self.name, self.version, len(rendered))
        return rendered.strip()

    def get_hash(self) -> str:
        """MD5 of version and template source."""
        if self._hash is None:
            self._hash = hashlib.md5(f"{self.version}:{self.template}".encode()).hexdigest()
        return self._hash

    def validate(self) -> list[str]:
        """Return a list of structural problems (empty if valid)."""
        errors = []
        for attr in ("name", "version", "tool", "task", "template"):
            if not getattr(self, attr):
                errors.append(f"Template {attr} is required")
        try:
            self._jinja_env.parse(self.template)
        except TemplateSyntaxError as e:
            errors.append(f"Invalid Jinja2 syntax: {e}")
        return errors

    @classmethod
    def from_yaml(cls, path: Path) -> PromptTemplate:
        """Load a template from a YAML file.

        Expected structure::

            name: evaluate
            version: "1.0"
            tool: output
            task: evaluate
            template: |
              Current attempt: {{ attempt }}
            variables:
              required: [attempt]
              optional: []

        Raises:
            PromptTemplateError: If the file is missing, unreadable or malformed.
        """
        if not path.exists():
            raise PromptTemplateError(f"Template file not found: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise PromptTemplateError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise PromptTemplateError(f"Cannot read template file {path}: {e}") from e

        if not isinstance(data, dict):
            raise PromptTemplateError(f"Invalid template format in {path}: expected dict")

        variables = data.get("variables") or {}
        if not isinstance(variables, dict):
            raise PromptTemplateError(
                f"Invalid 'variables' in {path}: expected dict, got {type(variables).__name__}"
            )
        required_vars = variables.get("required") or []
        optional_vars = variables.get("optional") or []
        if not isinstance(required_vars, list) or not isinstance(optional_vars, list):
            raise PromptTemplateError(f"Invalid 'variables' lists in {path}")

        if "version" not in data:
            raise PromptTemplateError(f"Missing required 'version' field in {path}")

        template = cls(
            name=data.get("name", path.stem),
            version=str(data["version"]),
            description=data.get("description", ""),
            tool=data.get("tool", ""),
            task=data.get("task", path.stem),
            template=data.get("template", ""),
            required_variables=required_vars,
            optional_variables=optional_vars,
            is_system_prompt=bool(data.get("is_system_prompt", False)),
        )

        errors = template.validate()
        if errors:
            raise PromptTemplateError(f"Invalid template in {path}: {'; '.join(errors)}")

        logger.debug("Loaded template '%s' v%s from %s", template.name, template.version, path)
        return template

    def __str__(self) -> str:
        return f"PromptTemplate({self.tool}/{self.task} v{self.version})"
