"""Task progress models: character card, worldbook entries and quality metrics."""

import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now().isoformat()


class CharacterData(BaseModel):
    """A character card.

    Only ``name`` and ``description`` are required; card formats carry many
    optional fields, and unknown fields are kept so nothing is lost on round trip.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    description: str
    personality: str = ""
    scenario: str = ""
    first_mes: str = ""
    mes_example: str = ""
    creator_notes: str = ""
    avatar: str | None = None
    alternate_greetings: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class WorldbookEntry(BaseModel):
    """A single worldbook (lorebook) entry."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    uid: str = ""
    key: list[str] = Field(default_factory=list)  # primary trigger keywords
    keysecondary: list[str] = Field(default_factory=list)
    comment: str = ""  # entry title
    content: str = ""
    constant: bool = False
    selective: bool = False
    order: int = 100
    position: int = 0
    disable: bool = False

    @field_validator("key", "keysecondary", mode="before")
    @classmethod
    def split_keywords(cls, v: Any) -> list[str]:
        """Accept a comma-separated string where a keyword list is expected."""
        if v is None:
            return []
        if isinstance(v, str):
            logger.debug("Splitting keyword string into list: %r", v)
            return [part.strip() for part in v.split(",") if part.strip()]
        return v


class QualityMetrics(BaseModel):
    """Quality scores (0-100) accumulated during generation."""

    completeness: int = Field(default=0, ge=0, le=100)
    consistency: int = Field(default=0, ge=0, le=100)
    creativity: int = Field(default=0, ge=0, le=100)
    user_satisfaction: int = Field(default=0, ge=0, le=100)


class GenerationMetadata(BaseModel):
    """Bookkeeping about how the generation progressed."""

    total_iterations: int = 0
    tools_used: list[str] = Field(default_factory=list)
    last_updated: str = Field(default_factory=_now_iso)


class TaskProgress(BaseModel):
    """Everything generated so far in a conversation."""

    character_data: CharacterData | None = None
    worldbook_data: list[WorldbookEntry] = Field(default_factory=list)
    quality_metrics: QualityMetrics | None = None
    generation_metadata: GenerationMetadata = Field(default_factory=GenerationMetadata)

    @field_validator("worldbook_data", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def has_character(self) -> bool:
        return self.character_data is not None

    @property
    def has_worldbook(self) -> bool:
        return len(self.worldbook_data) > 0

    @property
    def completion_percentage(self) -> int:
        """100 with both parts, 50 with one, 0 with neither."""
        if self.has_character and self.has_worldbook:
            return 100
        if self.has_character or self.has_worldbook:
            return 50
        return 0
