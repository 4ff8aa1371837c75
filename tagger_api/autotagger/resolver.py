from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from .errors import ConfigurationError, ExternalServiceError
from .logging_utils import setup_logger
from .models import CommandOption, ResolutionMode

logger = setup_logger("resolver")

_MANUAL_SPLIT_RE = re.compile(r",|\n")


class VocabularySource(Protocol):
    """Full known tag vocabulary, optionally pre-filtered by a regular expression.

    Implementations de-duplicate and order the result.
    """

    async def list_tags(self, filter_regex: Optional[str] = None) -> list[str]:
        ...


@dataclass(frozen=True)
class AllTags:
    pass


@dataclass(frozen=True)
class FilteredTags:
    pattern: str


@dataclass(frozen=True)
class ManualTags:
    tags: tuple[str, ...]


ReferencePolicy = Union[AllTags, FilteredTags, ManualTags]


def parse_manual_tags(raw: str) -> list[str]:
    """Split on comma or newline, trim, drop empty pieces. Duplicates are kept."""
    pieces = (piece.strip() for piece in _MANUAL_SPLIT_RE.split(raw or ""))
    return [piece for piece in pieces if piece]


def compile_filter(pattern: str) -> re.Pattern:
    if not pattern or not pattern.strip():
        raise ConfigurationError("Filter regex is empty")
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigurationError(f"Invalid filter regex {pattern!r}: {e}") from e


def policy_for(option: CommandOption, raw_manual: Optional[str] = None) -> ReferencePolicy:
    """
    Build the resolution policy for the option's current mode.

    raw_manual is only used under ResolutionMode.MANUAL; without it the stored
    manual_tags are reused as they are (no re-parsing).
    """
    if option.mode == ResolutionMode.ALL:
        return AllTags()
    if option.mode == ResolutionMode.FILTER:
        return FilteredTags(option.filter_pattern)
    if raw_manual is not None:
        return ManualTags(tuple(parse_manual_tags(raw_manual)))
    return ManualTags(tuple(option.manual_tags))


async def list_vocabulary(source: VocabularySource, filter_regex: Optional[str] = None) -> list[str]:
    try:
        return list(await source.list_tags(filter_regex))
    except ConfigurationError:
        raise
    except Exception as e:
        raise ExternalServiceError("vocabulary", str(e)) from e


async def resolve(policy: ReferencePolicy, source: VocabularySource) -> list[str]:
    """Return the reference set for a policy."""
    match policy:
        case AllTags():
            tags = await list_vocabulary(source)
        case FilteredTags(pattern=pattern):
            compile_filter(pattern)
            tags = await list_vocabulary(source, pattern)
        case ManualTags(tags=manual):
            tags = list(manual)
        case _:
            raise TypeError(f"Unknown reference policy: {policy!r}")

    logger.debug(f"📚 Resolved {len(tags)} reference tags with {type(policy).__name__}")
    return tags


async def resolve_references(
    option: CommandOption,
    source: VocabularySource,
    raw_manual: Optional[str] = None,
) -> CommandOption:
    """
    Recompute reference_set for the option's mode.

    Returns a new CommandOption; the given one is left untouched, so a failing
    resolution keeps the last valid state. Persisting the result is up to the
    caller.
    """
    policy = policy_for(option, raw_manual)
    tags = await resolve(policy, source)

    update: dict = {"reference_set": tags}
    if isinstance(policy, ManualTags):
        update["manual_tags"] = list(policy.tags)
    return option.model_copy(update=update, deep=True)
