from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from .template import DEFAULT_CHAT_ROLE, DEFAULT_PROMPT_TEMPLATE


class ResolutionMode(str, Enum):
    ALL = "all"
    FILTER = "filter"
    MANUAL = "manual"


class OutputLocation(str, Enum):
    FRONT_MATTER = "frontmatter"
    TITLE_ALTERNATIVE = "title_alternative"
    CURSOR = "cursor"


class CommandOption(BaseModel):
    """Settings of the tagging command. One instance per installation."""
    use_reference: bool = True
    reference_set: List[str] = Field(default_factory=list)  # derived from mode, cached
    manual_tags: List[str] = Field(default_factory=list)
    mode: ResolutionMode = ResolutionMode.ALL
    filter_pattern: str = ""  # for ResolutionMode.FILTER
    output_location: OutputLocation = OutputLocation.FRONT_MATTER
    output_key: str = "tag"  # for OutputLocation.FRONT_MATTER
    overwrite: bool = False

    use_custom_template: bool = False
    chat_role: str = DEFAULT_CHAT_ROLE
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE


class AutoTaggerSettings(BaseModel):
    api_key: str = ""
    api_key_created_at: Optional[datetime] = None
    command_option: CommandOption = Field(default_factory=CommandOption)

    def masked(self) -> dict:
        data = self.model_dump(mode="json")
        if len(self.api_key) > 8:
            data["api_key"] = self.api_key[:3] + "..." + self.api_key[-4:]
        elif self.api_key:
            data["api_key"] = "****"
        return data


# ---- API request models ----

class UpdateRequest(BaseModel):
    kind: str
    value: Any = None


class UpdateSettingsRequest(BaseModel):
    updates: List[UpdateRequest]


class ApiKeyRequest(BaseModel):
    api_key: str


class PromptPreviewRequest(BaseModel):
    text: str


class ClassifyRequest(BaseModel):
    text: Optional[str] = None
    path: Optional[str] = None  # vault-relative note path
    cursor: Optional[int] = None  # character offset for OutputLocation.CURSOR
    write: bool = True
