from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .models import CommandOption


# Same separator is used by the manual tags text area and the references view,
# so a joined reference set parses back to itself.
REFERENCE_SEPARATOR = "\n"

INPUT_TOKEN = "{{input}}"
REFERENCE_TOKEN = "{{reference}}"

_TOKEN_RE = re.compile("|".join(re.escape(t) for t in (INPUT_TOKEN, REFERENCE_TOKEN)))

DEFAULT_CHAT_ROLE = (
    "You are a helpful assistant that classifies documents. "
    "You answer with tags only, without any explanation."
)

DEFAULT_PROMPT_TEMPLATE = """Classify the following document and choose the single most relevant tag.
If reference tags are given, choose the tag from the reference tags.
Answer with the tag only.

Reference tags:
{{reference}}

Document:
{{input}}"""


@dataclass(frozen=True)
class PromptRequest:
    """Payload handed unchanged to the completion service."""
    role: str
    prompt: str


def join_references(references: Sequence[str]) -> str:
    return REFERENCE_SEPARATOR.join(references)


def render(template: str, input: str, references: Sequence[str]) -> str:
    """
    Substitute {{input}} and {{reference}} in a single literal pass.

    Substituted text is never scanned again, so an input containing
    "{{reference}}" stays as it is. Any other {{token}} is left untouched.
    """
    if template is None:
        raise TypeError("template must be a string, not None")

    reference_text = join_references(references)

    def _substitute(m: re.Match) -> str:
        if m.group(0) == INPUT_TOKEN:
            return input
        return reference_text

    return _TOKEN_RE.sub(_substitute, template)


def build_prompt(option: "CommandOption", input_text: str) -> PromptRequest:
    """Build the (role, prompt) pair for a classification request."""
    if option.use_custom_template:
        role = option.chat_role
        template = option.prompt_template
        if not template or not template.strip():
            raise ConfigurationError("Custom request template is empty")
    else:
        role = DEFAULT_CHAT_ROLE
        template = DEFAULT_PROMPT_TEMPLATE

    references = option.reference_set if option.use_reference else []
    return PromptRequest(role=role, prompt=render(template, input_text, references))
