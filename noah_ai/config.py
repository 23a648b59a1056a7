"""Configuration helpers for the Noah AI gateway."""
from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Optional

from dotenv import load_dotenv


DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_GEMINI_TIMEOUT_SECONDS = 120.0
DEFAULT_MAX_TRANSCRIPT_CHARS = 16000  # ~4000 tokens


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or malformed."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the gateway."""

    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_timeout: float = DEFAULT_GEMINI_TIMEOUT_SECONDS
    temperature: float = 0.7
    max_output_tokens: int = 4096
    max_transcript_chars: int = DEFAULT_MAX_TRANSCRIPT_CHARS
    environment: str = "local"

    def require_gemini_key(self) -> str:
        if not self.gemini_api_key:
            raise ConfigError(
                "Missing Gemini API key. Export GEMINI_API_KEY before "
                "enabling AI features."
            )
        return self.gemini_api_key


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


def load_settings(*, key_var: str = "GEMINI_API_KEY") -> Settings:
    """Load settings from environment variables.

    A local ``.env`` file is loaded first.
    The Gemini key is optional here so the API can boot for health checks;
    ``Settings.require_gemini_key`` enforces it when a client is built.

    Raises:
        ConfigError: if a numeric variable cannot be parsed.
    """

    load_dotenv()

    api_key = os.getenv(key_var)
    max_chars = _env_number(
        "NOAH_MAX_TRANSCRIPT_CHARS", DEFAULT_MAX_TRANSCRIPT_CHARS, int
    )
    if max_chars <= 0:
        raise ConfigError("NOAH_MAX_TRANSCRIPT_CHARS must be positive")

    return Settings(
        gemini_api_key=api_key.strip() if api_key else None,
        gemini_model=os.getenv("NOAH_GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        gemini_timeout=_env_number(
            "NOAH_GEMINI_TIMEOUT", DEFAULT_GEMINI_TIMEOUT_SECONDS, float
        ),
        max_transcript_chars=max_chars,
        environment=os.getenv("NOAH_ENV", "local"),
    )
