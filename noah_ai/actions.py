"""Noah AI action types.

The web client sends an action name plus a loosely shaped ``context`` dict.
``parse_action`` narrows that pair into an ``ActionRequest`` whose ``context``
is the typed dataclass for the action, so each prompt builder knows exactly
which fields it receives.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .errors import InvalidArgument


DEFAULT_LANGUAGE = "ko"


class ActionKind(str, Enum):
    SUGGEST_TASKS = "suggest_tasks"
    PRIORITIZE = "prioritize"
    SCHEDULE = "schedule"
    BREAKDOWN = "breakdown"
    AUTO_WRITE_NOTE = "auto_write_note"
    COMPLETE_NOTE = "complete_note"
    YOUTUBE_TO_NOTE = "youtube_to_note"
    YOUTUBE_TO_MINDMAP = "youtube_to_mindmap"
    GENERATE_MINDMAP = "generate_mindmap"

    @property
    def uses_video(self) -> bool:
        return self in (ActionKind.YOUTUBE_TO_NOTE, ActionKind.YOUTUBE_TO_MINDMAP)


# =============================================================================
# Context variants
# =============================================================================

@dataclass(slots=True)
class TaskListContext:
    """Tasks for suggest_tasks, prioritize and schedule."""
    tasks: List[Any] = field(default_factory=list)


@dataclass(slots=True)
class BreakdownContext:
    title: str = ""
    memo: Optional[str] = None


@dataclass(slots=True)
class NoteWriterContext:
    title: str = ""
    existing_blocks: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(slots=True)
class NoteCompleterContext:
    title: str = ""
    blocks: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(slots=True)
class VideoMetadata:
    """What is known about a video without its transcript."""
    title: str = ""
    author: str = ""
    description: str = ""

    def is_usable(self) -> bool:
        return any(part.strip() for part in (self.title, self.author, self.description))

    def merged_with(self, other: Optional["VideoMetadata"]) -> "VideoMetadata":
        """Fill blank fields from ``other``; own values win."""
        if other is None:
            return self
        return VideoMetadata(
            title=self.title or other.title,
            author=self.author or other.author,
            description=self.description or other.description,
        )


@dataclass(slots=True)
class VideoContext:
    """Context for youtube_to_note and youtube_to_mindmap."""
    url: Optional[str] = None
    transcript: Optional[str] = None
    metadata: VideoMetadata = field(default_factory=VideoMetadata)

    @property
    def video_title(self) -> str:
        return self.metadata.title or "YouTube Video"

    @property
    def has_transcript(self) -> bool:
        return bool(self.transcript and self.transcript.strip())

    def with_transcript(self, transcript: str) -> "VideoContext":
        return replace(self, transcript=transcript)

    def with_metadata(self, metadata: Optional[VideoMetadata]) -> "VideoContext":
        return replace(self, metadata=self.metadata.merged_with(metadata))


@dataclass(slots=True)
class MindmapContext:
    text: str = ""
    existing_nodes: List[Dict[str, Any]] = field(default_factory=list)


ActionContext = Union[
    TaskListContext,
    BreakdownContext,
    NoteWriterContext,
    NoteCompleterContext,
    VideoContext,
    MindmapContext,
]


@dataclass(slots=True)
class ActionRequest:
    action: ActionKind
    context: ActionContext
    language: str = DEFAULT_LANGUAGE


# =============================================================================
# Narrowing
# =============================================================================

def _text(raw: Mapping[str, Any], key: str) -> str:
    value = raw.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidArgument(f"Context field '{key}' must be a string")
    return value


def _items(raw: Mapping[str, Any], key: str) -> List[Any]:
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidArgument(f"Context field '{key}' must be a list")
    return value


def _dict_items(raw: Mapping[str, Any], key: str) -> List[Dict[str, Any]]:
    return [item for item in _items(raw, key) if isinstance(item, dict)]


def _parse_task_list(raw: Mapping[str, Any]) -> TaskListContext:
    return TaskListContext(tasks=_items(raw, "tasks"))


def _parse_breakdown(raw: Mapping[str, Any]) -> BreakdownContext:
    task = raw.get("task") or {}
    if not isinstance(task, dict):
        raise InvalidArgument("Context field 'task' must be an object")
    memo = task.get("memo")
    return BreakdownContext(
        title=str(task.get("title") or ""),
        memo=str(memo) if memo else None,
    )


def _parse_note_writer(raw: Mapping[str, Any]) -> NoteWriterContext:
    return NoteWriterContext(
        title=_text(raw, "title"),
        existing_blocks=_dict_items(raw, "existingBlocks"),
    )


def _parse_note_completer(raw: Mapping[str, Any]) -> NoteCompleterContext:
    return NoteCompleterContext(
        title=_text(raw, "title"),
        blocks=_dict_items(raw, "blocks"),
    )


def _parse_video(raw: Mapping[str, Any]) -> VideoContext:
    url = _text(raw, "url").strip()
    transcript = _text(raw, "transcript")
    return VideoContext(
        url=url or None,
        transcript=transcript or None,
        metadata=VideoMetadata(
            title=_text(raw, "videoTitle"),
            author=_text(raw, "videoAuthor"),
            description=_text(raw, "videoDescription"),
        ),
    )


def _parse_mindmap(raw: Mapping[str, Any]) -> MindmapContext:
    return MindmapContext(
        text=_text(raw, "text"),
        existing_nodes=_dict_items(raw, "existingNodes"),
    )


_CONTEXT_PARSERS: Dict[ActionKind, Callable[[Mapping[str, Any]], ActionContext]] = {
    ActionKind.SUGGEST_TASKS: _parse_task_list,
    ActionKind.PRIORITIZE: _parse_task_list,
    ActionKind.SCHEDULE: _parse_task_list,
    ActionKind.BREAKDOWN: _parse_breakdown,
    ActionKind.AUTO_WRITE_NOTE: _parse_note_writer,
    ActionKind.COMPLETE_NOTE: _parse_note_completer,
    ActionKind.YOUTUBE_TO_NOTE: _parse_video,
    ActionKind.YOUTUBE_TO_MINDMAP: _parse_video,
    ActionKind.GENERATE_MINDMAP: _parse_mindmap,
}


def parse_action_kind(value: Any) -> ActionKind:
    """Return the ActionKind for ``value`` or raise InvalidArgument."""
    if isinstance(value, ActionKind):
        return value
    if not value:
        raise InvalidArgument("Action is required")
    try:
        return ActionKind(value)
    except ValueError:
        raise InvalidArgument(f"Unsupported action: {value}") from None


def parse_action(
    action: Any,
    context: Optional[Mapping[str, Any]] = None,
    language: Optional[str] = None,
) -> ActionRequest:
    """Narrow a raw (action, context, language) triple into an ActionRequest.

    Raises:
        InvalidArgument: unknown action or a context field of the wrong type.
    """
    kind = parse_action_kind(action)
    raw = context if context is not None else {}
    if not isinstance(raw, Mapping):
        raise InvalidArgument("Context must be an object")
    return ActionRequest(
        action=kind,
        context=_CONTEXT_PARSERS[kind](raw),
        language=language or DEFAULT_LANGUAGE,
    )
