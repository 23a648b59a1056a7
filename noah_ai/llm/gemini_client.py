"""Gemini model invoker for Noah AI.

One ``GeminiInvoker`` is built at process start and handed to the gateway.
It makes a single ``generate_content`` call per request and reports the
token counts Gemini billed for it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from ..config import DEFAULT_GEMINI_MODEL, DEFAULT_GEMINI_TIMEOUT_SECONDS, Settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GeminiConfig:
    """Configuration for Gemini API."""
    api_key: str
    model: str = DEFAULT_GEMINI_MODEL
    temperature: float = 0.7
    max_output_tokens: int = 4096
    timeout: float = DEFAULT_GEMINI_TIMEOUT_SECONDS

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiConfig":
        return cls(
            api_key=settings.require_gemini_key(),
            model=settings.gemini_model,
            temperature=settings.temperature,
            max_output_tokens=settings.max_output_tokens,
            timeout=settings.gemini_timeout,
        )


@dataclass(frozen=True, slots=True)
class ModelResponse:
    """Raw model output plus the billed token counts."""
    text: str
    input_tokens: int = 0
    output_tokens: int = 0


class ModelInvoker(Protocol):
    def invoke(
        self, system_prompt: str, user_prompt: str, structured_output: bool = True
    ) -> ModelResponse:
        ...


class GeminiError(Exception):
    """Raised when a Gemini API call fails."""


def build_gemini_client(api_key: str):
    """Configure and return the google-generativeai module."""
    try:
        import google.generativeai as genai
    except ImportError:
        raise GeminiError("google-generativeai package not installed")

    genai.configure(api_key=api_key)
    return genai


class GeminiInvoker:
    """Calls Gemini with a system instruction and a single user turn."""

    def __init__(self, config: GeminiConfig, client: Any = None) -> None:
        self.config = config
        self._genai = client if client is not None else build_gemini_client(config.api_key)

    def _generation_config(self, structured_output: bool) -> Dict[str, Any]:
        generation_config: Dict[str, Any] = {
            "temperature": self.config.temperature,
            "max_output_tokens": self.config.max_output_tokens,
        }
        if structured_output:
            generation_config["response_mime_type"] = "application/json"
        return generation_config

    def invoke(
        self, system_prompt: str, user_prompt: str, structured_output: bool = True
    ) -> ModelResponse:
        """Run one generation.

        Raises:
            GeminiError: on any provider failure (timeout, quota, network).
        """
        model = self._genai.GenerativeModel(
            model_name=self.config.model,
            generation_config=self._generation_config(structured_output),
            system_instruction=system_prompt or None,
        )

        try:
            response = model.generate_content(
                user_prompt,
                request_options={"timeout": self.config.timeout},
            )
        except Exception as exc:
            raise GeminiError(f"Gemini API error: {exc}") from exc

        return ModelResponse(
            text=_response_text(response),
            input_tokens=_usage_count(response, "prompt_token_count"),
            output_tokens=_usage_count(response, "candidates_token_count"),
        )


def _response_text(response: Any) -> str:
    # .text raises ValueError for blocked or empty candidates; tokens are still billed.
    try:
        return response.text or ""
    except ValueError as exc:
        logger.warning(f"Gemini returned no text: {exc}")
        return ""


def _usage_count(response: Any, field_name: str) -> int:
    usage = getattr(response, "usage_metadata", None)
    value: Optional[int] = getattr(usage, field_name, None) if usage is not None else None
    return int(value or 0)
