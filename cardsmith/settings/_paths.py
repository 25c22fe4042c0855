"""Path constants for CardSmith settings and output files."""

from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent.parent

SETTINGS_FILE = PROJECT_ROOT / "settings.json"

# Default location of the JSON conversation store used by the CLI
CONVERSATIONS_FILE = PROJECT_ROOT / "output" / "conversations.json"

# Prompt templates shipped with the package
TEMPLATES_DIR = Path(__file__).parent.parent / "prompts" / "templates"

__all__ = ["CONVERSATIONS_FILE", "PROJECT_ROOT", "SETTINGS_FILE", "TEMPLATES_DIR"]
