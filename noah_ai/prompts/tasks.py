"""Task prompts: suggestions, prioritisation, scheduling and breakdown."""
from __future__ import annotations

import json
from datetime import date
from typing import Any, List, Optional

from ..actions import BreakdownContext, TaskListContext
from .base import PromptPair


PRIORITY_VALUES = '"urgent"|"high"|"medium"|"low"'
TIME_SLOT_VALUES = '"morning"|"afternoon"|"evening"'


def _assistant_system(role: str, lang_instruction: str, extra: str = "") -> str:
    system = f"You are Noah AI, a {role}. {lang_instruction} Return JSON."
    return f"{system} {extra}" if extra else system


def _dump_tasks(tasks: List[Any]) -> str:
    return json.dumps(tasks, ensure_ascii=False, separators=(",", ":"), default=str)


def build_task_suggestions_prompt(
    context: TaskListContext, lang_instruction: str, today: Optional[date] = None
) -> PromptPair:
    """Suggest new tasks based on the user's current list."""
    return PromptPair(
        system=_assistant_system("productivity assistant", lang_instruction),
        user=(
            "Based on these tasks, suggest 3-5 new tasks the user might need. "
            f'Return {{"suggestions": [{{"title": string, "priority": {PRIORITY_VALUES}, '
            '"reason": string}]}.\n\n'
            f"Tasks: {_dump_tasks(context.tasks)}"
        ),
    )


def build_prioritize_prompt(
    context: TaskListContext, lang_instruction: str, today: Optional[date] = None
) -> PromptPair:
    return PromptPair(
        system=_assistant_system("productivity assistant", lang_instruction),
        user=(
            "Analyze and prioritize these tasks. Consider deadlines, urgency, and "
            'dependencies. Return {"priorities": [{"taskId": string, '
            f'"suggestedPriority": {PRIORITY_VALUES}, "score": number, '
            '"reason": string}]}.\n\n'
            f"Tasks: {_dump_tasks(context.tasks)}"
        ),
    )


def build_schedule_prompt(
    context: TaskListContext, lang_instruction: str, today: Optional[date] = None
) -> PromptPair:
    """Spread tasks over the next seven days, anchored to ``today``."""
    anchor = (today or date.today()).isoformat()
    return PromptPair(
        system=_assistant_system(
            "scheduling assistant", lang_instruction, f"Today is {anchor}."
        ),
        user=(
            "Suggest an optimal schedule for these tasks over the next 7 days. "
            'Return {"schedule": [{"taskId": string, "suggestedDate": string, '
            f'"timeSlot": {TIME_SLOT_VALUES}, "reason": string}}]}}.\n\n'
            f"Tasks: {_dump_tasks(context.tasks)}"
        ),
    )


def build_breakdown_prompt(
    context: BreakdownContext, lang_instruction: str, today: Optional[date] = None
) -> PromptPair:
    details = f"\nDetails: {context.memo}" if context.memo else ""
    return PromptPair(
        system=_assistant_system("productivity assistant", lang_instruction),
        user=(
            "Break down this task into 3-7 concrete subtasks. "
            'Return {"subtasks": [{"title": string, "estimatedMinutes": number}]}.\n\n'
            f'Task: "{context.title}"{details}'
        ),
    )
