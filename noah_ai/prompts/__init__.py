"""Prompt builder registry.

One builder per ``ActionKind``. Builders are pure: everything they need must
already be in the typed context (transcripts are fetched by the gateway).
"""
from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, Mapping, Optional

from ..actions import ActionKind, ActionRequest, parse_action
from ..errors import InvalidArgument
from .base import LANGUAGE_INSTRUCTIONS, PromptPair, get_language_instruction
from .mindmap import build_mindmap_generator_prompt
from .notes import build_note_completer_prompt, build_note_writer_prompt
from .tasks import (
    build_breakdown_prompt,
    build_prioritize_prompt,
    build_schedule_prompt,
    build_task_suggestions_prompt,
)
from .video import build_youtube_to_mindmap_prompt, build_youtube_to_note_prompt

PromptBuilder = Callable[[Any, str, Optional[date]], PromptPair]

PROMPT_BUILDERS: Dict[ActionKind, PromptBuilder] = {
    ActionKind.SUGGEST_TASKS: build_task_suggestions_prompt,
    ActionKind.PRIORITIZE: build_prioritize_prompt,
    ActionKind.SCHEDULE: build_schedule_prompt,
    ActionKind.BREAKDOWN: build_breakdown_prompt,
    ActionKind.AUTO_WRITE_NOTE: build_note_writer_prompt,
    ActionKind.COMPLETE_NOTE: build_note_completer_prompt,
    ActionKind.YOUTUBE_TO_NOTE: build_youtube_to_note_prompt,
    ActionKind.YOUTUBE_TO_MINDMAP: build_youtube_to_mindmap_prompt,
    ActionKind.GENERATE_MINDMAP: build_mindmap_generator_prompt,
}


def build_request_prompt(request: ActionRequest, today: Optional[date] = None) -> PromptPair:
    """Build the prompt pair for an already-narrowed request."""
    builder = PROMPT_BUILDERS.get(request.action)
    if builder is None:
        raise InvalidArgument(f"Unsupported action: {request.action}")
    return builder(request.context, get_language_instruction(request.language), today)


def build_prompt(
    action: Any,
    context: Optional[Mapping[str, Any]],
    language: Optional[str],
    today: Optional[date] = None,
) -> PromptPair:
    """Build system + user prompts for a raw action name and context dict.

    Raises:
        InvalidArgument: if the action is unknown or the context is malformed.
    """
    return build_request_prompt(parse_action(action, context, language), today=today)


__all__ = [
    "LANGUAGE_INSTRUCTIONS",
    "PROMPT_BUILDERS",
    "PromptPair",
    "build_prompt",
    "build_request_prompt",
    "get_language_instruction",
]
