"""Settings package for CardSmith.

- _paths.py: settings, conversation store and template locations
- _types.py: choice tables used by validation
- _validation.py: range and choice checks
- _settings.py: the Settings dataclass
"""

from cardsmith.settings._paths import CONVERSATIONS_FILE, SETTINGS_FILE, TEMPLATES_DIR
from cardsmith.settings._settings import Settings
from cardsmith.settings._types import LLM_TYPES, LOG_LEVELS, OUTPUT_ROUTING_STRATEGIES

__all__ = [
    "CONVERSATIONS_FILE",
    "LLM_TYPES",
    "LOG_LEVELS",
    "OUTPUT_ROUTING_STRATEGIES",
    "SETTINGS_FILE",
    "TEMPLATES_DIR",
    "Settings",
]
