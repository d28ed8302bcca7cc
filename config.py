"""
Central configuration — reads from .env file.

Module-level constants are resolved once at import time and control the
UI surfaces (Telegram bot, browser UI) and their limits.

The Gemini credential and the model fallback order are NOT module constants:
load_assistant_config() reads them from the environment on every call and
returns an AssistantConfig value that is passed into the orchestrator.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# ── Gemini ────────────────────────────────────────────────────────────────────
# First non-empty variable wins. VITE_API_KEY / API_KEY are accepted so the
# same .env works for deployments that were set up for the web build.
API_KEY_ENV_VARS: tuple[str, ...] = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "VITE_API_KEY", "API_KEY")

# Tried in order until one succeeds: newest model first, older/cheaper fallback second.
DEFAULT_MODEL_CANDIDATES: tuple[str, ...] = ("gemini-3-flash-preview", "gemini-2.0-flash-exp")

# ── Telegram ──────────────────────────────────────────────────────────────────
# Optional: the bot is only started when a token is present.
TELEGRAM_BOT_TOKEN: Optional[str] = os.getenv("TELEGRAM_BOT_TOKEN", "").strip() or None

# ── Browser UI ────────────────────────────────────────────────────────────────
WEB_ENABLED: bool   = os.getenv("WEB_ENABLED", "true").lower() == "true"
WEB_HOST: str       = os.getenv("WEB_HOST", "0.0.0.0")
WEB_PORT: int       = int(os.getenv("WEB_PORT", "8080"))
MAX_UPLOAD_MB: int  = int(os.getenv("MAX_UPLOAD_MB", "10"))

# ── Behaviour ─────────────────────────────────────────────────────────────────

# Show which model answered and how long it took (useful during development)
SHOW_MODEL_INFO: bool = os.getenv("SHOW_MODEL_INFO", "true").lower() == "true"

# Log file directory
DATA_DIR: str = os.getenv("DATA_DIR", "data")

# Search suggestions offered on the empty search page
POPULAR_SEARCHES: tuple[str, ...] = ("iPhone 16 Pro", "Dyson Airstrait", "PS5 Slim", "富士相機")


@dataclass(frozen=True)
class AssistantConfig:
    """Everything the orchestrator needs: one credential and the model order."""
    api_key: Optional[str]
    model_candidates: tuple[str, ...] = DEFAULT_MODEL_CANDIDATES


def parse_model_candidates(raw: Optional[str]) -> tuple[str, ...]:
    """
    Parse a comma-separated MODEL_CANDIDATES value.
    Blank entries and duplicates are dropped; an empty value gives the defaults.
    """
    models: list[str] = []
    for item in (raw or "").split(","):
        name = item.strip()
        if name and name not in models:
            models.append(name)
    return tuple(models) or DEFAULT_MODEL_CANDIDATES


def resolve_api_key() -> Optional[str]:
    for name in API_KEY_ENV_VARS:
        value = os.getenv(name, "").strip()
        if value:
            return value
    return None


def load_assistant_config() -> AssistantConfig:
    return AssistantConfig(
        api_key=resolve_api_key(),
        model_candidates=parse_model_candidates(os.getenv("MODEL_CANDIDATES")),
    )


def mask(value: Optional[str]) -> str:
    """Return a masked version of a secret, safe to show to users."""
    if not value:
        return "❌ 未設定"
    if len(value) <= 8:
        return "✅ ****"
    return f"✅ {value[:4]}{'*' * (len(value) - 8)}{value[-4:]}"
