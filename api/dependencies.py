"""Shared dependencies for API routers.

The gateway and its Gemini invoker are built once per process (cached here)
and injected into handlers, so tests can swap them through
``app.dependency_overrides``.

Usage in routers:
    from api.dependencies import get_current_user, get_gateway
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache

from noah_ai.api.auth import get_current_user  # noqa: F401 - re-export
from noah_ai.config import ConfigError, load_settings
from noah_ai.errors import Internal
from noah_ai.gateway import AIGateway
from noah_ai.llm import GeminiConfig, GeminiError, GeminiInvoker
from noah_ai.transcripts import YouTubeTranscriptFetcher

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "tauri://localhost",
    os.getenv("NOAH_ALLOWED_FRONTEND", "").strip(),
]


# =============================================================================
# Cached Functions
# =============================================================================

@lru_cache
def get_settings():
    """Get application settings (cached)."""
    return load_settings()


@lru_cache
def _build_gateway() -> AIGateway:
    settings = get_settings()
    invoker = GeminiInvoker(GeminiConfig.from_settings(settings))
    return AIGateway(
        invoker,
        YouTubeTranscriptFetcher(),
        max_transcript_chars=settings.max_transcript_chars,
    )


def get_gateway() -> AIGateway:
    """Return the process-wide gateway, building it on first use."""
    try:
        return _build_gateway()
    except (ConfigError, GeminiError) as exc:
        logger.error(f"Noah AI gateway is not configured: {exc}")
        raise Internal("AI processing failed. Please try again.") from exc

