"""Note prompts: write a note from its title, or continue an existing one."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from ..actions import NoteCompleterContext, NoteWriterContext
from .base import NOTE_BLOCK_TYPES, PromptPair, quoted_list


# Only the tail of a long note is sent when continuing it.
COMPLETION_CONTEXT_CHARS = 3000

BLOCKS_SCHEMA = 'Return {"blocks": [{"type": string, "content": string}]}.'

_BLOCK_PREFIXES = {
    "bullet": "• ",
    "numbered": "1. ",
    "heading1": "# ",
    "heading2": "## ",
}


def _render_block(block: Dict[str, Any]) -> str:
    return _BLOCK_PREFIXES.get(block.get("type"), "") + str(block.get("content") or "")


def build_note_writer_prompt(
    context: NoteWriterContext, lang_instruction: str, today: Optional[date] = None
) -> PromptPair:
    """Draft a structured note from a title and optional existing blocks."""
    existing = "\n".join(
        str(block["content"]) for block in context.existing_blocks if block.get("content")
    )
    existing_section = (
        f"\nExisting content to build upon:\n{existing}" if existing else ""
    )
    system = (
        f"You are Noah AI, a writing assistant. {lang_instruction} Return JSON.\n"
        'Generate structured note content as an array of blocks. Each block has "type" and "content".\n'
        f"Valid types: {quoted_list(NOTE_BLOCK_TYPES)}.\n"
        'For "todo" blocks, also include "checked": false.\n'
        'For "divider" blocks, content should be empty string.\n'
        "Keep the note concise and well-structured."
    )
    user = f'Write a note titled "{context.title}".{existing_section}\n\n{BLOCKS_SCHEMA}'
    return PromptPair(system=system, user=user)


def build_note_completer_prompt(
    context: NoteCompleterContext, lang_instruction: str, today: Optional[date] = None
) -> PromptPair:
    """Continue a note, asking only for the new blocks to append."""
    lines = [_render_block(block) for block in context.blocks]
    existing = "\n".join(line for line in lines if line)
    if len(existing) > COMPLETION_CONTEXT_CHARS:
        existing = existing[-COMPLETION_CONTEXT_CHARS:]

    system = (
        f"You are Noah AI, a writing assistant. {lang_instruction} Return JSON.\n"
        "Continue writing the note naturally. Match the existing tone and style.\n"
        "Return only NEW blocks to append (not the existing content).\n"
        f"Valid types: {quoted_list(NOTE_BLOCK_TYPES)}."
    )
    user = (
        f'Continue this note titled "{context.title}".\n'
        f"Existing content:\n{existing}\n\n{BLOCKS_SCHEMA}"
    )
    return PromptPair(system=system, user=user)
