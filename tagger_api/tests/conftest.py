import re
from pathlib import Path

import pytest

from autotagger.models import AutoTaggerSettings
from autotagger.tagger import TaggerService


class FakeVocabulary:
    """In-memory tag vocabulary; records every lookup."""

    def __init__(self, tags):
        self.tags = list(tags)
        self.calls = []
        self.error = None

    async def list_tags(self, filter_regex=None):
        self.calls.append(filter_regex)
        if self.error is not None:
            raise self.error
        if filter_regex is None:
            return list(self.tags)
        pattern = re.compile(filter_regex)
        return [t for t in self.tags if pattern.search(t)]


class MemoryStore:
    def __init__(self, settings=None):
        self.settings = settings or AutoTaggerSettings()
        self.saved = []
        self.error = None

    async def load(self):
        return self.settings.model_copy(deep=True)

    async def save(self, settings):
        if self.error is not None:
            raise self.error
        self.saved.append(settings)
        self.settings = settings


class FakeCompletion:
    model = "fake-model"

    def __init__(self, answer="python"):
        self.answer = answer
        self.calls = []
        self.error = None

    async def complete(self, role, prompt, credential):
        self.calls.append((role, prompt, credential))
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def vocabulary():
    return FakeVocabulary(["python", "rust", "project/alpha", "project/beta", "reading"])


@pytest.fixture
def store():
    return MemoryStore(AutoTaggerSettings(api_key="sk-test-credential"))


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def temp_vault(tmp_path):
    vault_path = tmp_path / "vault"
    vault_path.mkdir()

    (vault_path / "test_note.md").write_text("""---
title: Test Note
tags:
  - python
  - project/alpha
---

# Test Note

Notes about #rust and #python.

```bash
# not a heading
echo #not-a-tag
```
""", encoding="utf-8")

    (vault_path / "folder").mkdir()
    (vault_path / "folder" / "nested_note.md").write_text("""---
tags: reading, Project/Beta
---
# Nested Note

Issue #1234 is not a tag but #todo is.
""", encoding="utf-8")

    (vault_path / "plain.md").write_text("# Plain\n\nNo tags here.\n", encoding="utf-8")
    yield vault_path


@pytest.fixture
def tagger(store, vocabulary, completion, temp_vault):
    return TaggerService(store=store, source=vocabulary, completion=completion, vault_root=temp_vault)
