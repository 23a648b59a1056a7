"""LLM helper package."""

from .gemini_client import (
    GeminiConfig,
    GeminiError,
    GeminiInvoker,
    ModelInvoker,
    ModelResponse,
    build_gemini_client,
)

__all__ = [
    "GeminiConfig",
    "GeminiError",
    "GeminiInvoker",
    "ModelInvoker",
    "ModelResponse",
    "build_gemini_client",
]
