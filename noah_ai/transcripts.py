"""YouTube transcript and metadata fetching for the video actions.

``fetch_transcript`` either returns the joined caption text or raises
``TranscriptError`` with one of three kinds:

- ``invalid-url``: the URL is not a recognisable YouTube video link
- ``no-transcript``: the video has no captions we can read
- ``fetch-failed``: YouTube could not be reached

``fetch_metadata`` never raises; it returns whatever title/author/description
it can find (oEmbed plus the page's description meta tag), or None.
"""
from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Sequence

import requests

from .actions import VideoMetadata

logger = logging.getLogger(__name__)

INVALID_URL = "invalid-url"
NO_TRANSCRIPT = "no-transcript"
FETCH_FAILED = "fetch-failed"

TRUNCATION_MARKER = "... (truncated)"

OEMBED_URL = "https://www.youtube.com/oembed"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
HTTP_TIMEOUT_SECONDS = 10

VIDEO_ID_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=)([a-zA-Z0-9_-]{11})"),
    re.compile(r"(?:youtu\.be/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"(?:youtube\.com/embed/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"(?:youtube\.com/shorts/)([a-zA-Z0-9_-]{11})"),
)

DESCRIPTION_PATTERNS = (
    re.compile(r'<meta\s+name="description"\s+content="([^"]*)"'),
    re.compile(r'<meta\s+content="([^"]*)"\s+name="description"'),
)

DEFAULT_TRANSCRIPT_LANGUAGES = ("ko", "en", "ja", "es", "pt", "fr")


class TranscriptError(Exception):
    """Raised when a transcript cannot be produced for a URL."""

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class TranscriptFetcher(Protocol):
    def fetch_transcript(self, url: str) -> str:
        ...

    def fetch_metadata(self, url: str) -> Optional[VideoMetadata]:
        ...


def extract_video_id(url: str) -> Optional[str]:
    """Return the 11-character video id from watch, youtu.be, embed or shorts URLs."""
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url or "")
        if match:
            return match.group(1)
    return None


def truncate_transcript(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters and append the truncation marker."""
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


@dataclass
class YouTubeTranscriptFetcher:
    """Fetches captions with youtube-transcript-api and metadata over HTTP."""

    languages: Sequence[str] = DEFAULT_TRANSCRIPT_LANGUAGES
    session: Optional[requests.Session] = None

    def _http(self):
        return self.session or requests

    def _video_id(self, url: str) -> str:
        video_id = extract_video_id(url)
        if not video_id:
            raise TranscriptError(INVALID_URL, "Invalid YouTube URL")
        return video_id

    def fetch_transcript(self, url: str) -> str:
        video_id = self._video_id(url)

        from youtube_transcript_api import CouldNotRetrieveTranscript, YouTubeTranscriptApi

        try:
            snippets = self._fetch_snippets(YouTubeTranscriptApi(), video_id)
        except CouldNotRetrieveTranscript as exc:
            logger.info(f"No transcript for video {video_id}: {type(exc).__name__}")
            raise TranscriptError(NO_TRANSCRIPT, "This video has no available transcript") from exc
        except Exception as exc:
            logger.warning(f"Transcript fetch failed for video {video_id}: {exc}")
            raise TranscriptError(FETCH_FAILED, "Failed to fetch YouTube transcript") from exc

        text = " ".join(piece.strip() for piece in snippets if piece and piece.strip())
        if not text:
            raise TranscriptError(NO_TRANSCRIPT, "This video has no available transcript")
        return text

    def _fetch_snippets(self, api, video_id: str) -> Iterable[str]:
        from youtube_transcript_api import NoTranscriptFound

        transcripts = api.list(video_id)
        try:
            transcript = transcripts.find_transcript(list(self.languages))
        except NoTranscriptFound:
            # Fall back to the first available track in any language.
            transcript = next(iter(transcripts), None)
            if transcript is None:
                raise
        return [snippet.text for snippet in transcript.fetch()]

    def fetch_metadata(self, url: str) -> Optional[VideoMetadata]:
        video_id = extract_video_id(url)
        if not video_id:
            return None

        metadata = self._oembed(video_id)
        description = self._page_description(video_id)
        if metadata is None and not description:
            return None
        metadata = metadata or VideoMetadata()
        metadata.description = description
        return metadata

    def _oembed(self, video_id: str) -> Optional[VideoMetadata]:
        try:
            response = self._http().get(
                OEMBED_URL,
                params={"url": WATCH_URL.format(video_id=video_id), "format": "json"},
                timeout=HTTP_TIMEOUT_SECONDS,
            )
            if not response.ok:
                return None
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.info(f"oEmbed lookup failed for video {video_id}: {exc}")
            return None

        if not isinstance(data, dict):
            logger.info(f"oEmbed returned {type(data).__name__} for video {video_id}")
            return None
        return VideoMetadata(
            title=data.get("title") or "",
            author=data.get("author_name") or "",
        )

    def _page_description(self, video_id: str) -> str:
        try:
            response = self._http().get(
                WATCH_URL.format(video_id=video_id),
                headers={"User-Agent": "Mozilla/5.0 (compatible; Googlebot/2.1)"},
                timeout=HTTP_TIMEOUT_SECONDS,
            )
            if not response.ok:
                return ""
            page = response.text
        except requests.RequestException as exc:
            logger.info(f"Description lookup failed for video {video_id}: {exc}")
            return ""

        for pattern in DESCRIPTION_PATTERNS:
            match = pattern.search(page)
            if match:
                return html.unescape(match.group(1))
        return ""
