"""
Presenters for Auto Tagger
Convert settings and reference tags to Markdown for HTML display
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from datetime import datetime

from ..template import join_references


class BasePresenter:
    """Base presenter with common formatting utilities"""

    def escape_markdown(self, text: str) -> str:
        """Escape markdown special characters"""
        if not text:
            return ""

        chars_to_escape = ['\\', '*', '_', '`', '[', ']', '(', ')', '#', '+', '-', '.', '!', '|']
        for char in chars_to_escape:
            text = text.replace(char, f'\\{char}')

        return text

    def format_timestamp(self, timestamp: Optional[str] = None) -> str:
        """Format timestamp for display"""
        if not timestamp:
            return "never"

        try:
            dt = datetime.fromisoformat(timestamp.replace('Z', '+00:00'))
            return dt.strftime('%Y-%m-%d %H:%M')
        except ValueError:
            return timestamp


class ReferencesPresenter(BasePresenter):
    """Reference tags as a human-readable list"""

    def to_text(self, references: List[str]) -> str:
        """Plain list, one tag per line (same convention as {{reference}})"""
        return join_references(references)

    def to_markdown(self, references: List[str], mode: str = "") -> str:
        header = f"## Reference tags ({len(references)})"
        if mode:
            header += f" - {mode}"

        if not references:
            return f"{header}\n\n**No reference tags.**"

        lines = [header, ""]
        lines.extend(f"- {self.escape_markdown(tag)}" for tag in references)
        return "\n".join(lines)


class SettingsPresenter(BasePresenter):
    """Settings summary (credential already masked by the caller)"""

    def to_markdown(self, settings: Dict[str, Any]) -> str:
        option = settings.get("command_option", {})

        lines = ["## API Setting", ""]
        lines.append(f"- **API key:** {'set' if settings.get('api_key') else 'not set'}")
        lines.append(f"- **Tested at:** {self.format_timestamp(settings.get('api_key_created_at'))}")

        lines.extend(["", "## Tag Reference Setting", ""])
        lines.append(f"- **Use reference:** {option.get('use_reference')}")
        lines.append(f"- **Reference type:** {option.get('mode')}")
        if option.get("mode") == "filter":
            lines.append(f"- **Filter regex:** `{option.get('filter_pattern', '')}`")
        lines.append(f"- **Reference tags:** {len(option.get('reference_set', []))}")

        lines.extend(["", "## Output Tag Setting", ""])
        lines.append(f"- **Location:** {option.get('output_location')}")
        if option.get("output_location") == "frontmatter":
            lines.append(f"- **FrontMatter key:** `{option.get('output_key', '')}`")
        lines.append(f"- **Overwrite:** {option.get('overwrite')}")

        lines.extend(["", "## Advanced Setting", ""])
        lines.append(f"- **Use custom request template:** {option.get('use_custom_template')}")

        return "\n".join(lines)


class PromptPresenter(BasePresenter):
    """Rendered request, role and prompt shown verbatim"""

    def to_markdown(self, role: str, prompt: str) -> str:
        return "\n".join([
            "## Request",
            "",
            "### Role",
            "",
            "```text",
            role,
            "```",
            "",
            "### Prompt",
            "",
            "```text",
            prompt,
            "```",
        ])


# Factory function for easy access
def create_presenter(content_type: str) -> BasePresenter:
    """Create appropriate presenter for content type"""
    presenters = {
        'references': ReferencesPresenter(),
        'settings': SettingsPresenter(),
        'prompt': PromptPresenter(),
    }
    if content_type not in presenters:
        raise ValueError(f"Unknown content type: {content_type}")
    return presenters[content_type]
