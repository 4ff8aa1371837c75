import logging
import time
from typing import Optional

from .config import settings


def setup_logger(name: str = "autotagger", level: Optional[str] = None) -> logging.Logger:
    """Setup standardized logger for tagging operations with UTF-8 support."""
    logger = logging.getLogger(f"autotagger.{name}" if name != "autotagger" else name)

    if not logger.handlers:  # Avoid duplicate handlers
        handler = logging.StreamHandler()
        # Tags and notes are often non-ASCII
        if hasattr(handler.stream, 'reconfigure'):
            try:
                handler.stream.reconfigure(encoding='utf-8')
            except ValueError:
                pass  # stream already in use (e.g. captured by a test runner)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(getattr(logging, (level or settings.log_level).upper(), logging.INFO))
    return logger


def log_execution(logger: logging.Logger,
                  session_id: str,
                  mode: str,
                  reference_count: int,
                  location: str,
                  success: bool,
                  duration_ms: float,
                  tag: Optional[str] = None,
                  source: Optional[str] = None,
                  model: Optional[str] = None,
                  prompt: Optional[str] = None,
                  error: Optional[str] = None) -> None:
    """Log one classification run in a structured format."""

    log_data = {
        "session_id": session_id,
        "mode": mode,
        "reference_count": reference_count,
        "location": location,
        "success": success,
        "duration_ms": round(duration_ms, 1)
    }

    if source:
        log_data["source"] = source

    if model:
        log_data["model"] = model

    if tag is not None:
        log_data["tag"] = _truncate(tag, 100)

    if prompt:
        log_data["prompt_length"] = len(prompt)
        log_data["prompt_preview"] = _truncate(prompt.split('\n')[0], 100)

    if error:
        log_data["error"] = error

    status_icon = "✅" if success else "❌"

    if error:
        logger.error(f"{status_icon} Classify: {log_data}")
    else:
        logger.info(f"{status_icon} Classify: {log_data}")


def _truncate(value: str, limit: int) -> str:
    if len(value) > limit:
        return value[:limit - 3] + "..."
    return value


def create_session_id() -> str:
    """Create unique session ID for tracking."""
    return f"session_{int(time.time() * 1000)}"
