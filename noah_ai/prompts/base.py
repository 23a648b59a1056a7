"""Shared prompt types and the response-language table."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from ..actions import DEFAULT_LANGUAGE


@dataclass(frozen=True, slots=True)
class PromptPair:
    """System instruction plus user content for one model call."""
    system: str
    user: str


LANGUAGE_INSTRUCTIONS: Dict[str, str] = {
    "ko": "한국어로 응답하세요.",
    "en": "Respond in English.",
    "ja": "日本語で回答してください。",
    "es": "Responde en español.",
    "pt": "Responda em português.",
    "fr": "Répondez en français.",
}

# Block types the note editor can render.
NOTE_BLOCK_TYPES = (
    "heading1", "heading2", "heading3", "text", "bullet",
    "numbered", "quote", "todo", "code", "divider",
)


def get_language_instruction(language: str) -> str:
    """Return the response-language sentence, falling back to Korean."""
    return LANGUAGE_INSTRUCTIONS.get(language, LANGUAGE_INSTRUCTIONS[DEFAULT_LANGUAGE])


def quoted_list(values) -> str:
    return ", ".join(f'"{value}"' for value in values)
