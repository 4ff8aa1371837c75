from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from .errors import ConfigurationError
from .models import CommandOption, OutputLocation, ResolutionMode
from .resolver import parse_manual_tags
from .template import DEFAULT_CHAT_ROLE, DEFAULT_PROMPT_TEMPLATE


class UpdateKind(str, Enum):
    """Changes the user can make to the command option."""
    SET_MODE = "set_mode"
    SET_FILTER_PATTERN = "set_filter_pattern"
    SET_MANUAL_TAGS = "set_manual_tags"          # raw text, comma/newline separated
    SET_USE_REFERENCE = "set_use_reference"
    SET_OUTPUT_LOCATION = "set_output_location"
    SET_OUTPUT_KEY = "set_output_key"
    SET_OVERWRITE = "set_overwrite"
    SET_USE_CUSTOM_TEMPLATE = "set_use_custom_template"
    SET_CHAT_ROLE = "set_chat_role"
    SET_PROMPT_TEMPLATE = "set_prompt_template"
    RESTORE_DEFAULT_TEMPLATE = "restore_default_template"


RESOLVING_KINDS = frozenset({
    UpdateKind.SET_MODE,
    UpdateKind.SET_FILTER_PATTERN,
    UpdateKind.SET_MANUAL_TAGS,
})


@dataclass(frozen=True)
class ConfigUpdate:
    kind: UpdateKind
    value: Any = None

    @classmethod
    def parse(cls, kind: str, value: Any = None) -> "ConfigUpdate":
        try:
            return cls(kind=UpdateKind(kind), value=value)
        except ValueError as e:
            raise ConfigurationError(f"Unknown update kind: {kind!r}") from e


def requires_resolution(update: ConfigUpdate) -> bool:
    """Mode, filter pattern and manual tags invalidate the cached reference set."""
    return update.kind in RESOLVING_KINDS


def _as_bool(update: ConfigUpdate) -> bool:
    if not isinstance(update.value, bool):
        raise ConfigurationError(f"{update.kind.value} expects a boolean, got {update.value!r}")
    return update.value


def _as_str(update: ConfigUpdate) -> str:
    if not isinstance(update.value, str):
        raise ConfigurationError(f"{update.kind.value} expects a string, got {update.value!r}")
    return update.value


def _as_enum(update: ConfigUpdate, enum_cls):
    try:
        return enum_cls(update.value)
    except ValueError as e:
        choices = ", ".join(m.value for m in enum_cls)
        raise ConfigurationError(
            f"{update.kind.value} expects one of: {choices}, got {update.value!r}"
        ) from e


def apply_update(option: CommandOption, update: ConfigUpdate) -> CommandOption:
    """Return a copy of option with the update applied. option is not modified."""
    kind = update.kind

    if kind == UpdateKind.SET_MODE:
        changes = {"mode": _as_enum(update, ResolutionMode)}
    elif kind == UpdateKind.SET_FILTER_PATTERN:
        changes = {"filter_pattern": _as_str(update)}
    elif kind == UpdateKind.SET_MANUAL_TAGS:
        value = update.value
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            tags = [v.strip() for v in value if v.strip()]
        else:
            tags = parse_manual_tags(_as_str(update))
        changes = {"manual_tags": tags}
    elif kind == UpdateKind.SET_USE_REFERENCE:
        changes = {"use_reference": _as_bool(update)}
    elif kind == UpdateKind.SET_OUTPUT_LOCATION:
        changes = {"output_location": _as_enum(update, OutputLocation)}
    elif kind == UpdateKind.SET_OUTPUT_KEY:
        changes = {"output_key": _as_str(update).strip()}
    elif kind == UpdateKind.SET_OVERWRITE:
        changes = {"overwrite": _as_bool(update)}
    elif kind == UpdateKind.SET_USE_CUSTOM_TEMPLATE:
        changes = {"use_custom_template": _as_bool(update)}
    elif kind == UpdateKind.SET_CHAT_ROLE:
        changes = {"chat_role": _as_str(update)}
    elif kind == UpdateKind.SET_PROMPT_TEMPLATE:
        changes = {"prompt_template": _as_str(update)}
    elif kind == UpdateKind.RESTORE_DEFAULT_TEMPLATE:
        changes = {"chat_role": DEFAULT_CHAT_ROLE, "prompt_template": DEFAULT_PROMPT_TEMPLATE}
    else:
        raise ConfigurationError(f"Unsupported update: {kind!r}")

    return option.model_copy(update=changes, deep=True)


def apply_updates(option: CommandOption, updates: Iterable[ConfigUpdate]) -> CommandOption:
    for update in updates:
        option = apply_update(option, update)
    return option
