import secrets

from fastapi import Header, HTTPException
from .config import settings
from .logging_utils import setup_logger

logger = setup_logger("security")


def require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")):
    """Protects this server. The OpenAI credential lives in the persisted settings."""
    if not settings.api_key:
        return
    if x_api_key is None or not secrets.compare_digest(x_api_key, settings.api_key):
        logger.warning("🔒 Rejected request with missing or invalid X-API-Key")
        raise HTTPException(status_code=401, detail="Invalid API key")
