from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .errors import ConfigurationError
from .models import CommandOption, OutputLocation

# Obsidian reads alternative titles from the "aliases" frontmatter field.
TITLE_ALTERNATIVE_KEY = "aliases"


@dataclass(frozen=True)
class PlacementInstruction:
    """Where and how the produced tag is written into the document."""
    location: OutputLocation
    tag: str
    key: Optional[str] = None  # None for OutputLocation.CURSOR
    overwrite: bool = False

    def merge(self, existing: Any) -> Any:
        """
        Final field value given the value currently stored at the target.

        Without overwrite the existing value is kept unmodified in front of
        the new tag; with overwrite it is dropped.
        """
        if self.overwrite or _is_empty(existing):
            return self.tag
        if isinstance(existing, list):
            if self.tag in existing:
                return list(existing)
            return list(existing) + [self.tag]
        if existing == self.tag:
            return existing
        return [existing, self.tag]


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def decide_placement(option: CommandOption, produced_tag: str) -> PlacementInstruction:
    location = option.output_location

    if location == OutputLocation.FRONT_MATTER:
        key = option.output_key.strip()
        if not key:
            raise ConfigurationError("FrontMatter key is empty")
        return PlacementInstruction(location=location, tag=produced_tag, key=key, overwrite=option.overwrite)

    if location == OutputLocation.TITLE_ALTERNATIVE:
        return PlacementInstruction(
            location=location, tag=produced_tag, key=TITLE_ALTERNATIVE_KEY, overwrite=option.overwrite
        )

    # Cursor: insertion only
    return PlacementInstruction(location=OutputLocation.CURSOR, tag=produced_tag)
