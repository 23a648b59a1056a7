"""Mindmap prompt for free text or a topic."""
from __future__ import annotations

import json
from datetime import date
from typing import Optional

from ..actions import MindmapContext
from .base import PromptPair, quoted_list


NODE_COLORS = ("#e94560", "#533483", "#0f3460", "#00b4d8", "#e76f51", "#2a9d8f", "#f4a261")
NODE_WIDTH = 160
NODE_HEIGHT = 60


def build_mindmap_generator_prompt(
    context: MindmapContext, lang_instruction: str, today: Optional[date] = None
) -> PromptPair:
    existing = ""
    if context.existing_nodes:
        slim = [{"id": node.get("id"), "text": node.get("text")} for node in context.existing_nodes]
        existing = json.dumps(slim, ensure_ascii=False, separators=(",", ":"))

    system = (
        f"You are Noah AI, a visual thinking assistant. {lang_instruction} Return JSON.\n"
        "Create a hierarchical mindmap structure from the given text.\n"
        "Rules:\n"
        "- Create 1 central node at position (0, 0)\n"
        "- Create 3-7 main branches radiating from center at radius ~300\n"
        "- Each main branch can have 2-4 child nodes at radius ~550\n"
        "- Keep node text concise (under 30 chars)\n"
        f"- Use these colors for variety: {quoted_list(NODE_COLORS)}\n"
        f"- All nodes should have width: {NODE_WIDTH}, height: {NODE_HEIGHT}\n"
        "- Position nodes in a balanced radial layout"
    )
    existing_section = f"\nExisting nodes to consider: {existing}" if existing else ""
    user = (
        f'Create a mindmap from this text:\n"{context.text}"\n{existing_section}\n\n'
        'Return {"title": string, "nodes": [{"id": string, "text": string, "x": number, '
        f'"y": number, "width": {NODE_WIDTH}, "height": {NODE_HEIGHT}, "color": string}}], '
        '"edges": [{"id": string, "from": string, "to": string, "style": "curved"}]}.'
    )
    return PromptPair(system=system, user=user)
