from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from .completion import CompletionService
from .errors import AutoTaggerError
from .logging_utils import setup_logger, log_execution, create_session_id
from .models import AutoTaggerSettings, CommandOption, ResolutionMode
from .placement import PlacementInstruction, decide_placement
from .resolver import VocabularySource, list_vocabulary, resolve_references
from .store import ConfigurationStore
from .template import PromptRequest, build_prompt
from .updates import ConfigUpdate, apply_updates, requires_resolution
from .vault import apply_placement, parse_frontmatter, safe_join


@dataclass(frozen=True)
class TaggingMetrics:
    """Metrics for one classification request."""
    request_time: float
    response_time: float
    total_latency_ms: float
    model_used: str = ""


@dataclass(frozen=True)
class TaggingResult:
    tag: str
    placement: PlacementInstruction
    request: PromptRequest
    metrics: TaggingMetrics
    path: Optional[str] = None
    written: bool = False


class TaggerService:
    """Coordinates configuration changes, reference resolution and tagging.

    - Every configuration change runs on a copy of the command option; the
      copy is committed and persisted only when resolution succeeds.
    - Each change takes a revision number. A resolution finishing after a
      newer change started is discarded (last write wins).
    - Errors are not retried; they leave the last valid state in place.
    """

    def __init__(
        self,
        store: ConfigurationStore,
        source: VocabularySource,
        completion: CompletionService,
        vault_root: Optional[Path] = None,
    ):
        self.store = store
        self.source = source
        self.completion = completion
        self.vault_root = Path(vault_root) if vault_root is not None else None
        self.settings = AutoTaggerSettings()
        self.logger = setup_logger("tagger")
        self._revision = 0
        self.loaded = False

    @property
    def option(self) -> CommandOption:
        return self.settings.command_option

    async def load(self) -> AutoTaggerSettings:
        self.settings = await self.store.load()
        self.loaded = True
        self.logger.info(
            f"⚙️ Settings loaded: mode={self.option.mode.value}, "
            f"{len(self.option.reference_set)} reference tags"
        )
        return self.settings

    def _next_revision(self) -> int:
        self._revision += 1
        return self._revision

    async def _save(self, settings: AutoTaggerSettings) -> None:
        await self.store.save(settings)
        self.settings = settings

    async def _commit(self, option: CommandOption, revision: int) -> bool:
        if revision != self._revision:
            self.logger.info(f"⏭️ Discarding superseded result (revision {revision} < {self._revision})")
            return False
        await self._save(self.settings.model_copy(update={"command_option": option}))
        return True

    # ---- configuration ----

    async def update(self, updates: Sequence[ConfigUpdate]) -> CommandOption:
        """Apply updates atomically, re-resolving references when needed."""
        revision = self._next_revision()
        candidate = apply_updates(self.option, updates)

        if any(requires_resolution(u) for u in updates):
            candidate = await resolve_references(candidate, self.source)
            self.logger.info(
                f"🏷️ References resolved ({candidate.mode.value}): {len(candidate.reference_set)} tags"
            )

        await self._commit(candidate, revision)
        return self.option

    async def refresh_references(self) -> CommandOption:
        """Re-run resolution for the current mode with the stored parameters."""
        revision = self._next_revision()
        candidate = await resolve_references(self.option, self.source)
        await self._commit(candidate, revision)
        return self.option

    async def load_all_into_manual(self) -> CommandOption:
        """Copy the whole vocabulary into the manual tags and switch to manual mode."""
        revision = self._next_revision()
        tags = await list_vocabulary(self.source)
        candidate = self.option.model_copy(
            update={"manual_tags": tags, "mode": ResolutionMode.MANUAL}, deep=True
        )
        candidate = await resolve_references(candidate, self.source)
        await self._commit(candidate, revision)
        return self.option

    async def reset(self) -> AutoTaggerSettings:
        self._next_revision()
        await self._save(AutoTaggerSettings())
        self.logger.info("♻️ Settings reset to defaults")
        return self.settings

    async def set_api_key(self, api_key: str) -> AutoTaggerSettings:
        await self._save(self.settings.model_copy(
            update={"api_key": api_key.strip(), "api_key_created_at": None}
        ))
        return self.settings

    async def test_api_key(self) -> datetime:
        """Send a test request with the stored key; stamps the key on success."""
        api_key = self.settings.api_key
        await self.completion.complete("", "test", api_key)
        tested_at = datetime.now().astimezone()
        if self.settings.api_key != api_key:
            # Replaced while the request was in flight; the new key is untested.
            self.logger.warning("⚠️ API key changed during test, timestamp not stored")
            return tested_at
        await self._save(self.settings.model_copy(update={"api_key_created_at": tested_at}))
        self.logger.info(f"🔑 API key tested at {tested_at.isoformat()}")
        return tested_at

    # ---- tagging ----

    def build_prompt(self, input_text: str) -> PromptRequest:
        return build_prompt(self.option, input_text)

    def _model_name(self) -> str:
        return getattr(self.completion, "model", type(self.completion).__name__)

    async def classify(self, input_text: str, source: Optional[str] = None) -> TaggingResult:
        """Ask the completion service for a tag and decide where it goes."""
        session_id = create_session_id()
        start_time = time.time()
        option = self.option

        try:
            request = build_prompt(option, input_text)
            request_time = time.time()
            tag = await self.completion.complete(request.role, request.prompt, self.settings.api_key)
            response_time = time.time()
            placement = decide_placement(option, tag)
        except AutoTaggerError as e:
            log_execution(
                self.logger, session_id, option.mode.value, len(option.reference_set),
                option.output_location.value, False, (time.time() - start_time) * 1000,
                source=source, model=self._model_name(), error=str(e)
            )
            raise

        metrics = TaggingMetrics(
            request_time=request_time,
            response_time=response_time,
            total_latency_ms=(response_time - start_time) * 1000,
            model_used=self._model_name(),
        )
        log_execution(
            self.logger, session_id, option.mode.value, len(option.reference_set),
            option.output_location.value, True, metrics.total_latency_ms,
            tag=tag, source=source, model=metrics.model_used, prompt=request.prompt
        )
        return TaggingResult(tag=tag, placement=placement, request=request, metrics=metrics, path=source)

    async def classify_note(self, rel_path: str, cursor: Optional[int] = None, write: bool = True) -> TaggingResult:
        """Classify a vault note and write the tag into it."""
        if self.vault_root is None:
            raise FileNotFoundError("Vault root is not configured")
        path = safe_join(self.vault_root, rel_path)
        if not path.is_file():
            raise FileNotFoundError(f"Note not found: {rel_path}")

        text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        note_path = str(path.relative_to(self.vault_root.resolve())).replace("\\", "/")
        _, body = parse_frontmatter(text)
        result = await self.classify(body, source=note_path)
        if not write:
            return result

        new_text = apply_placement(text, result.placement, cursor=cursor)
        await asyncio.to_thread(path.write_text, new_text, encoding="utf-8")
        self.logger.info(f"📝 Wrote tag '{result.tag}' to {note_path} ({result.placement.location.value})")
        return TaggingResult(
            tag=result.tag, placement=result.placement, request=result.request,
            metrics=result.metrics, path=note_path, written=True
        )
