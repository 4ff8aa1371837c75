import asyncio

import pytest
import yaml

from autotagger.errors import ConfigurationError
from autotagger.models import OutputLocation
from autotagger.placement import PlacementInstruction
from autotagger.vault import (
    VaultVocabulary,
    apply_placement,
    collect_vault_tags,
    frontmatter_tags,
    inline_tags,
    list_md_files,
    note_tags,
    parse_frontmatter,
    safe_join,
)


VAULT_TAGS = ["project/alpha", "Project/Beta", "python", "reading", "rust", "todo"]


class TestVaultFiles:
    def test_list_md_files(self, temp_vault):
        assert list_md_files(temp_vault) == ["folder/nested_note.md", "plain.md", "test_note.md"]

    def test_safe_join_rejects_traversal(self, temp_vault):
        with pytest.raises(ValueError):
            safe_join(temp_vault, "../outside.md")

    def test_safe_join_rejects_sibling_with_shared_prefix(self, tmp_path):
        vault = tmp_path / "vault"
        sibling = tmp_path / "vault2"
        vault.mkdir()
        sibling.mkdir()
        (sibling / "secret.md").write_text("secret", encoding="utf-8")
        with pytest.raises(ValueError):
            safe_join(vault, "../vault2/secret.md")
        assert safe_join(vault, "sub/../note.md") == (vault / "note.md").resolve()

    def test_parse_frontmatter(self, temp_vault):
        fm, body = parse_frontmatter((temp_vault / "test_note.md").read_text(encoding="utf-8"))
        assert fm["title"] == "Test Note"
        assert body.lstrip().startswith("# Test Note")


class TestTagCollection:
    def test_frontmatter_tags_list_and_string(self):
        assert frontmatter_tags({"tags": ["#a", "b"]}) == ["a", "b"]
        assert frontmatter_tags({"tags": "a, b c"}) == ["a", "b", "c"]
        assert frontmatter_tags({"tag": "solo"}) == ["solo"]

    def test_inline_tags_skip_headings_code_and_numbers(self):
        body = "# Heading\n\nText #one and `#code` plus #2024 and #two/nested.\n"
        assert inline_tags(body) == ["one", "two/nested"]

    def test_collect_vault_tags(self, temp_vault):
        assert collect_vault_tags(temp_vault) == VAULT_TAGS

    def test_crlf_frontmatter(self):
        text = "---\r\ntags: [alpha, beta]\r\n---\r\nBody #gamma\r\n"
        fm, body = parse_frontmatter(text)
        assert fm == {"tags": ["alpha", "beta"]}
        assert body == "Body #gamma\r\n"
        assert note_tags(text) == ["alpha", "beta", "gamma"]


class TestVaultVocabulary:
    def test_all_tags(self, temp_vault):
        assert asyncio.run(VaultVocabulary(temp_vault).list_tags()) == VAULT_TAGS

    def test_filtered_tags(self, temp_vault):
        tags = asyncio.run(VaultVocabulary(temp_vault).list_tags("^[Pp]roject/"))
        assert tags == ["project/alpha", "Project/Beta"]

    def test_invalid_filter(self, temp_vault):
        with pytest.raises(ConfigurationError):
            asyncio.run(VaultVocabulary(temp_vault).list_tags("("))

    def test_missing_vault(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            asyncio.run(VaultVocabulary(tmp_path / "missing").list_tags())


class TestApplyPlacement:
    def test_frontmatter_append(self):
        text = "---\ntitle: T\ntag: old\n---\nBody\n"
        placement = PlacementInstruction(OutputLocation.FRONT_MATTER, "new", key="tag", overwrite=False)
        out = apply_placement(text, placement)
        fm, body = parse_frontmatter(out)
        assert fm == {"title": "T", "tag": ["old", "new"]}
        assert body == "Body\n"

    def test_frontmatter_overwrite(self):
        text = "---\ntag: [a, b]\n---\nBody\n"
        placement = PlacementInstruction(OutputLocation.FRONT_MATTER, "new", key="tag", overwrite=True)
        fm, _ = parse_frontmatter(apply_placement(text, placement))
        assert fm["tag"] == "new"

    def test_crlf_frontmatter_is_updated_in_place(self):
        text = "---\r\ntitle: T\r\ntag: old\r\n---\r\nbody\r\n"
        placement = PlacementInstruction(OutputLocation.FRONT_MATTER, "new", key="tag", overwrite=True)
        out = apply_placement(text, placement)
        assert out.count("---") == 2
        assert "old" not in out
        fm, body = parse_frontmatter(out)
        assert fm == {"title": "T", "tag": "new"}
        assert body == "body\r\n"

    def test_crlf_frontmatter_append(self):
        text = "---\r\ntag: old\r\n---\r\nbody\r\n"
        placement = PlacementInstruction(OutputLocation.FRONT_MATTER, "new", key="tag")
        fm, _ = parse_frontmatter(apply_placement(text, placement))
        assert fm == {"tag": ["old", "new"]}

    def test_note_without_frontmatter(self):
        placement = PlacementInstruction(OutputLocation.TITLE_ALTERNATIVE, "Alias", key="aliases")
        out = apply_placement("# Title\n", placement)
        assert out.startswith("---\n")
        fm, body = parse_frontmatter(out)
        assert fm == {"aliases": "Alias"}
        assert body == "# Title\n"

    def test_unicode_preserved(self):
        placement = PlacementInstruction(OutputLocation.FRONT_MATTER, "読書", key="tag")
        out = apply_placement("本文\n", placement)
        assert "読書" in out

    def test_invalid_frontmatter_is_not_rewritten(self):
        text = "---\ntag: [unclosed\n---\nBody\n"
        placement = PlacementInstruction(OutputLocation.FRONT_MATTER, "new", key="tag")
        with pytest.raises(ValueError):
            apply_placement(text, placement)

    def test_cursor_insert(self):
        placement = PlacementInstruction(OutputLocation.CURSOR, "#python")
        assert apply_placement("ab", placement, cursor=1) == "a#pythonb"

    def test_cursor_defaults_to_end(self):
        placement = PlacementInstruction(OutputLocation.CURSOR, "#python")
        assert apply_placement("ab", placement) == "ab#python"

    def test_cursor_out_of_range(self):
        placement = PlacementInstruction(OutputLocation.CURSOR, "x")
        with pytest.raises(ValueError):
            apply_placement("ab", placement, cursor=10)

    def test_round_trips_through_yaml(self):
        placement = PlacementInstruction(OutputLocation.FRONT_MATTER, "b", key="tags")
        out = apply_placement("---\ntags:\n  - a\n---\n", placement)
        assert yaml.safe_load(out.split("---\n")[1]) == {"tags": ["a", "b"]}
