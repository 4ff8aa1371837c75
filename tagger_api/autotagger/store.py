from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from .logging_utils import setup_logger
from .models import AutoTaggerSettings

logger = setup_logger("store")


class ConfigurationStore(Protocol):
    async def load(self) -> AutoTaggerSettings:
        ...

    async def save(self, settings: AutoTaggerSettings) -> None:
        ...


class JsonSettingsStore:
    """
    Persists the single settings object as JSON (the plugin's data.json).

    A missing file loads as defaults. An unreadable file is reported and
    replaced by defaults on the next save, like a first load.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> AutoTaggerSettings:
        if not self.path.exists():
            logger.info(f"🆕 No settings at {self.path}, using defaults")
            return AutoTaggerSettings()
        raw = self.path.read_text(encoding="utf-8")
        try:
            return AutoTaggerSettings.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"⚠️ Invalid settings file {self.path}, using defaults: {e}")
            return AutoTaggerSettings()

    def _write(self, settings: AutoTaggerSettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(settings.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(self.path)

    async def load(self) -> AutoTaggerSettings:
        return await asyncio.to_thread(self._read)

    async def save(self, settings: AutoTaggerSettings) -> None:
        await asyncio.to_thread(self._write, settings)
        logger.debug(f"💾 Settings saved to {self.path}")
