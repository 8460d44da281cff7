"""Types consumed and produced by the smart folder engine."""

import uuid
from dataclasses import dataclass, field
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field


class FolderDefinition(BaseModel):
    """A smart folder rule: keywords, regex patterns and a match threshold."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    icon_name: str = "folder"
    keywords: tuple[str, ...] = ()
    patterns: tuple[str, ...] = ()
    minimum_matches: int = Field(1, ge=1)
    built_in: bool = False

    @classmethod
    def custom(
        cls,
        name: str,
        keywords: list[str] | tuple[str, ...],
        icon_name: str = "folder",
        folder_id: uuid.UUID | None = None,
    ) -> "FolderDefinition":
        """Build a user-defined, keyword-only definition (threshold 1)."""
        return cls(
            id=folder_id or uuid.uuid4(),
            name=name,
            icon_name=icon_name,
            keywords=tuple(keywords),
        )


@dataclass(frozen=True)
class ClassifiableItem:
    """An identifier plus optional recognized text."""

    identifier: str
    text: str | None = None


@dataclass(frozen=True)
class FolderResult:
    """The items that matched one folder during a classification pass."""

    definition: FolderDefinition
    matching_identifiers: tuple[str, ...] = field(default_factory=tuple)

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def icon_name(self) -> str:
        return self.definition.icon_name

    @property
    def match_count(self) -> int:
        return len(self.matching_identifiers)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "id": str(self.definition.id),
            "name": self.name,
            "icon_name": self.icon_name,
            "built_in": self.definition.built_in,
            "keywords": list(self.definition.keywords),
            "patterns": list(self.definition.patterns),
            "minimum_matches": self.definition.minimum_matches,
            "match_count": self.match_count,
            "matching_identifiers": list(self.matching_identifiers),
        }


class HighlightSpan(NamedTuple):
    """Half-open character range [start, end) into the searched text."""

    start: int
    end: int

    def extract(self, text: str) -> str:
        return text[self.start : self.end]
