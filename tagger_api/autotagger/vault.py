from __future__ import annotations
import asyncio
from pathlib import Path
import re
from typing import Optional
import yaml

from .errors import ConfigurationError
from .models import OutputLocation
from .placement import PlacementInstruction
from .resolver import compile_filter


def safe_join(root: Path, rel_path: str) -> Path:
    rel_path = rel_path.strip().lstrip("/").replace("\\", "/")
    p = (root / rel_path).resolve()
    if not p.is_relative_to(root.resolve()):
        raise ValueError("Path traversal detected")
    return p

def list_md_files(root: Path) -> list[str]:
    out = []
    for p in root.rglob("*.md"):
        if p.is_file():
            out.append(str(p.relative_to(root)).replace("\\", "/"))
    return sorted(out)

FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.S | re.M)

def parse_frontmatter(text: str) -> tuple[dict, str]:
    m = FRONTMATTER_RE.search(text)
    if not m:
        return {}, text
    fm_raw = m.group(1)
    body = text[m.end():]
    try:
        data = yaml.safe_load(fm_raw) or {}
        if not isinstance(data, dict):
            data = {}
    except yaml.YAMLError:
        data = {}
    return data, body


# ---- tag vocabulary ----

# "#tag", "#nested/tag", "#snake_case", "#kebab-case"; must follow whitespace or line start
INLINE_TAG_RE = re.compile(r"(?<!\S)#([\w/-]+)")
FENCED_CODE_RE = re.compile(r"^(```|~~~).*?^\1", re.S | re.M)
INLINE_CODE_RE = re.compile(r"`[^`\n]*`")


def _normalize_tag(tag) -> Optional[str]:
    if tag is None:
        return None
    t = str(tag).strip().lstrip("#").strip()
    # "#1984" is not a tag in Obsidian
    if not t or t.replace("/", "").isdigit():
        return None
    return t


def frontmatter_tags(frontmatter: dict) -> list[str]:
    """Tags declared under `tags`/`tag` as a list or a comma/space separated string."""
    out = []
    for key in ("tags", "tag"):
        value = frontmatter.get(key)
        if value is None:
            continue
        items = value if isinstance(value, list) else re.split(r"[,\s]+", str(value))
        for item in items:
            t = _normalize_tag(item)
            if t:
                out.append(t)
    return out


def inline_tags(body: str) -> list[str]:
    text = FENCED_CODE_RE.sub("", body)
    text = INLINE_CODE_RE.sub("", text)
    out = []
    for m in INLINE_TAG_RE.finditer(text):
        t = _normalize_tag(m.group(1))
        if t:
            out.append(t)
    return out


def note_tags(text: str) -> list[str]:
    fm, body = parse_frontmatter(text)
    return frontmatter_tags(fm) + inline_tags(body)


def collect_vault_tags(root: Path) -> list[str]:
    """All distinct tags in the vault, sorted case-insensitively."""
    seen = set()
    for rel in list_md_files(root):
        text = (root / rel).read_text(encoding="utf-8", errors="ignore")
        seen.update(note_tags(text))
    return sorted(seen, key=lambda t: (t.lower(), t))


class VaultVocabulary:
    """Tag vocabulary of an Obsidian vault."""

    def __init__(self, vault_root: Path):
        self.vault_root = Path(vault_root)

    async def list_tags(self, filter_regex: Optional[str] = None) -> list[str]:
        pattern = compile_filter(filter_regex) if filter_regex is not None else None
        if not self.vault_root.exists():
            raise FileNotFoundError(f"Vault root not found: {self.vault_root}")
        tags = await asyncio.to_thread(collect_vault_tags, self.vault_root)
        if pattern is None:
            return tags
        return [t for t in tags if pattern.search(t)]


# ---- document writer ----

def _split_frontmatter_strict(text: str) -> tuple[dict, str]:
    m = FRONTMATTER_RE.search(text)
    if not m:
        return {}, text
    try:
        data = yaml.safe_load(m.group(1)) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Frontmatter is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Frontmatter is not a mapping")
    return data, text[m.end():]


def dump_frontmatter(data: dict, body: str) -> str:
    fm = yaml.safe_dump(data, allow_unicode=True, sort_keys=False, default_flow_style=False)
    return f"---\n{fm}---\n{body}"


def apply_placement(text: str, instruction: PlacementInstruction, cursor: Optional[int] = None) -> str:
    """
    Write the tag into a note following the placement instruction.

    FrontMatter and title alternative update a frontmatter field (the note gets
    a frontmatter block if it has none). Cursor inserts the tag at a character
    offset, or appends it when no cursor is given.
    """
    if instruction.location == OutputLocation.CURSOR:
        pos = len(text) if cursor is None else cursor
        if pos < 0 or pos > len(text):
            raise ValueError(f"Cursor out of range: {pos}")
        return text[:pos] + instruction.tag + text[pos:]

    if not instruction.key:
        raise ConfigurationError("Placement target key is missing")

    data, body = _split_frontmatter_strict(text)
    data[instruction.key] = instruction.merge(data.get(instruction.key))
    return dump_frontmatter(data, body)
