from __future__ import annotations

import os
from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables from .env (if present)
load_dotenv()


class Settings(BaseModel):
    # Obsidian vault root directory (tag vocabulary and notes to classify)
    vault_root: str = os.getenv("VAULT_ROOT", "/srv/obsidian/Vault")

    # Persisted plugin configuration (CommandOption + credential)
    data_file: str = os.getenv("AUTOTAGGER_DATA_FILE", "data.json")

    # API key for this FastAPI server (sent via X-API-Key header)
    api_key: str = os.getenv("AUTOTAGGER_API_KEY", "")

    # CORS origins (comma-separated or "*")
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")

    # Completion service
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    openai_timeout: float = float(os.getenv("OPENAI_TIMEOUT", "30"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # HTML view of the reference tags
    css_theme: str = os.getenv("CSS_THEME", "obsidian")


settings = Settings()
