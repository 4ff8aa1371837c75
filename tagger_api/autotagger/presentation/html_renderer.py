"""
HTML Renderer for Auto Tagger
Converts Markdown views (reference tags, settings, request preview) to styled HTML
"""

from __future__ import annotations

import markdown
from typing import Optional
from ..config import settings


THEMES = {
    "obsidian": {
        "bg": "#1e1e1e", "text": "#dcddde", "accent": "#7c3aed",
        "secondary": "#a78bfa", "border": "#374151", "code_bg": "#2d2d2d",
    },
    "light": {
        "bg": "#ffffff", "text": "#24292f", "accent": "#0969da",
        "secondary": "#57606a", "border": "#d0d7de", "code_bg": "#f6f8fa",
    },
    "dark": {
        "bg": "#0d1117", "text": "#c9d1d9", "accent": "#58a6ff",
        "secondary": "#8b949e", "border": "#30363d", "code_bg": "#161b22",
    },
    "minimal": {
        "bg": "#fafafa", "text": "#333333", "accent": "#333333",
        "secondary": "#666666", "border": "#e0e0e0", "code_bg": "#f0f0f0",
    },
}


class HtmlRenderer:
    """HTML renderer with configurable CSS themes"""

    def __init__(self, theme: Optional[str] = None, font_size: str = "16px", max_width: str = "800px"):
        self.theme = theme or settings.css_theme
        if self.theme not in THEMES:
            self.theme = "obsidian"
        self.font_size = font_size
        self.max_width = max_width

        self.md = markdown.Markdown(
            extensions=[
                'tables',
                'fenced_code',
                'nl2br',
            ]
        )

    def render(self, markdown_text: str, title: str = "Auto Tagger", metadata: Optional[dict] = None) -> str:
        """Convert Markdown to styled HTML with optional metadata"""
        self.md.reset()
        html_content = self.md.convert(markdown_text)
        return self._build_html_document(html_content, self._get_css(), title, metadata)

    def _build_html_document(self, content: str, css: str, title: str, metadata: Optional[dict] = None) -> str:
        metadata_elements = ""
        if metadata:
            for key, value in metadata.items():
                safe_key = self._escape_html(str(key))
                safe_value = self._escape_html(str(value))
                metadata_elements += f'    <meta name="autotagger-{safe_key}" content="{safe_value}">\n'

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{self._escape_html(title)}</title>
{metadata_elements}    <style>
{css}
    </style>
</head>
<body>
    <article class="markdown-body">
        {content}
    </article>
</body>
</html>"""

    def _escape_html(self, text: str) -> str:
        """Escape HTML entities"""
        return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")

    def _get_css(self) -> str:
        c = THEMES[self.theme]
        return f"""
:root {{
    --font-size: {self.font_size};
    --max-width: {self.max_width};
}}

body {{
    background-color: {c["bg"]};
    color: {c["text"]};
}}

.markdown-body {{
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Helvetica, Arial, sans-serif;
    font-size: var(--font-size);
    line-height: 1.6;
    max-width: var(--max-width);
    margin: 0 auto;
    padding: 16px;
}}

h1, h2, h3 {{
    color: {c["accent"]};
    border-bottom: 1px solid {c["border"]};
    padding-bottom: 6px;
}}

code, pre {{
    background-color: {c["code_bg"]};
    border-radius: 6px;
}}

pre {{
    padding: 12px;
    overflow-x: auto;
    white-space: pre-wrap;
}}

li {{
    color: {c["secondary"]};
}}
"""
