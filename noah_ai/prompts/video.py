"""YouTube prompts: summarise a video into a note or a mindmap.

Both builders prefer the transcript. When only metadata (title, author,
description) is available they switch to a metadata-only variant that tells
the model the transcript is missing so it stays close to what is known.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from ..actions import VideoContext
from ..errors import FailedPrecondition
from .base import PromptPair, quoted_list


VIDEO_NOTE_BLOCK_TYPES = (
    "heading1", "heading2", "heading3", "text", "bullet", "numbered", "quote", "divider",
)

NOTE_SCHEMA = 'Return {"title": string, "blocks": [{"type": string, "content": string}]}.'
MINDMAP_SCHEMA = (
    'Return {"title": string, "nodes": [{"id": string, "text": string, "x": number, '
    '"y": number, "color": string}], "edges": [{"id": string, "from": string, "to": string}]}.'
)

METADATA_ONLY_NOTICE = (
    "The transcript for this video is unavailable. Work only from the title, "
    "channel and description below, and do not invent details they do not support."
)


def _source_section(context: VideoContext) -> str:
    if context.has_transcript:
        return f'Video: "{context.video_title}"\nTranscript:\n{context.transcript}'

    metadata = context.metadata
    if not metadata.is_usable():
        raise FailedPrecondition("No transcript or video details available for this video")

    lines = [METADATA_ONLY_NOTICE, f'Video: "{context.video_title}"']
    if metadata.author:
        lines.append(f"Channel: {metadata.author}")
    if metadata.description:
        lines.append(f"Description:\n{metadata.description}")
    return "\n".join(lines)


def build_youtube_to_note_prompt(
    context: VideoContext, lang_instruction: str, today: Optional[date] = None
) -> PromptPair:
    source = "video transcript" if context.has_transcript else "video details"
    system = (
        f"You are Noah AI, a content summarizer. {lang_instruction} Return JSON.\n"
        f"Summarize the {source} into a well-structured note.\n"
        "Use various block types for readability.\n"
        f"Valid types: {quoted_list(VIDEO_NOTE_BLOCK_TYPES)}.\n"
        "Include key points, main arguments, and actionable takeaways."
    )
    user = (
        f"Summarize this YouTube {source} into a note.\n"
        f"{_source_section(context)}\n\n{NOTE_SCHEMA}"
    )
    return PromptPair(system=system, user=user)


def build_youtube_to_mindmap_prompt(
    context: VideoContext, lang_instruction: str, today: Optional[date] = None
) -> PromptPair:
    system = (
        f"You are Noah AI, a content organizer. {lang_instruction} Return JSON.\n"
        "Convert the video content into a hierarchical mindmap structure.\n"
        "Create a central node and 3-7 main branches with 2-4 sub-nodes each.\n"
        "Keep node text concise (under 30 characters per node).\n"
        "Position nodes in a radial layout around the center (0,0).\n"
        "Main nodes at radius ~300, sub-nodes at radius ~550."
    )
    user = (
        "Convert this YouTube video into a mindmap.\n"
        f"{_source_section(context)}\n\n{MINDMAP_SCHEMA}"
    )
    return PromptPair(system=system, user=user)
