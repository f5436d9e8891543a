"""
Transcript fetching with retries, language strategies and fallbacks.

A transcript source returns caption items shaped like
``{"text": str, "offset": ms, "duration": ms}``; this module turns them into
TranscriptSegment objects with seconds-based timing.
"""

import logging
import re
from collections.abc import Iterable
from typing import Protocol

from youtube_transcript_api import (
    AgeRestricted,
    CouldNotRetrieveTranscript,
    NoTranscriptFound,
    RequestBlocked,
    TranscriptsDisabled,
    VideoUnavailable,
    YouTubeTranscriptApi,
)

from .errors import InputError, TranscriptSourceError, TranscriptUnavailable
from .models import TranscriptSegment
from .pacing import CancelToken, Sleeper
from .retry import DEFAULT_RETRY_POLICY, RetryPolicy

logger = logging.getLogger("ytdub")

VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")
VIDEO_URL_RE = re.compile(
    r"(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?)/|.*[?&]v=)|youtu\.be/)([^\"&?/\s]{11})"
)

# None means "let the source pick" (auto-detect)
LANGUAGE_HINTS: tuple[str | None, ...] = ("en", "en-US", "en-GB", None)
REFERENCE_FORMATS: tuple[str, ...] = (
    "https://www.youtube.com/watch?v={video_id}",
    "https://youtu.be/{video_id}",
    "{video_id}",
)

TRANSCRIPT_SUGGESTIONS = [
    "Try a different video with manual captions",
    "Check if the video has auto-generated captions enabled",
    "Ensure the video is publicly accessible",
    "Try again in a few minutes - YouTube may be rate limiting",
]

_MISSING_MARKERS = ("transcript", "caption", "subtitle")
_REASON_PATTERNS: list[tuple[str, tuple[str, ...], str]] = [
    (
        "private",
        ("private video", "video is private"),
        "This video is private and its transcript cannot be accessed.",
    ),
    (
        "removed",
        ("video unavailable", "video is unavailable", "no longer available", "has been removed"),
        "This video is unavailable or has been removed.",
    ),
    (
        "age_restricted",
        ("age restricted", "age-restricted", "confirm your age"),
        "This video is age-restricted and its transcript cannot be accessed.",
    ),
    (
        "no_captions",
        _MISSING_MARKERS,
        "No transcript/captions found for this video. Please ensure the video has either:\n"
        "• Manual captions/subtitles\n"
        "• Auto-generated captions enabled\n"
        "• Public accessibility settings",
    ),
]


class TranscriptTrack(Protocol):
    def fetch(self) -> list[dict]: ...


class TranscriptSource(Protocol):
    """Where caption items come from (timing in milliseconds)."""

    def fetch(self, reference: str, language: str | None = None) -> list[dict]: ...

    def list_tracks(self, video_id: str) -> list[TranscriptTrack]: ...


def extract_video_id(value: str) -> str | None:
    """Pull the 11-character video id out of a YouTube URL (or accept a bare id)."""
    if not value:
        return None
    value = value.strip()
    if VIDEO_ID_RE.match(value):
        return value
    m = VIDEO_URL_RE.search(value)
    return m.group(1) if m else None


def validate_video_id(video_id: object) -> str:
    """Return the id unchanged or raise InputError; never touches the network."""
    if not isinstance(video_id, str) or not VIDEO_ID_RE.match(video_id):
        msg = "Invalid YouTube video ID format"
        raise InputError(msg, ["Pass an 11-character video id or a full YouTube URL"])
    return video_id


def is_missing_transcript_error(error: Exception | str) -> bool:
    """True for "no transcript/captions" class errors (worth trying another language).

    Typed source errors answer from their reason; anything else is matched on
    its message.
    """
    if isinstance(error, TranscriptSourceError):
        return error.missing
    lowered = str(error or "").lower()
    return any(marker in lowered for marker in _MISSING_MARKERS)


def classify_transcript_error(message: str | None, reason: str | None = None) -> tuple[str, str]:
    """Map an underlying error to (reason, human-readable explanation).

    A reason already known from the error's type wins over message matching.
    """
    if reason:
        for known, _, explanation in _REASON_PATTERNS:
            if known == reason:
                return reason, explanation
        return reason, message or "Unknown error"
    if not message:
        return "no_captions", _REASON_PATTERNS[-1][2]
    lowered = message.lower()
    for known, patterns, explanation in _REASON_PATTERNS:
        if any(p in lowered for p in patterns):
            return known, explanation
    return "unknown", message


def to_segments(items: Iterable[dict]) -> list[TranscriptSegment]:
    """Convert millisecond caption items into seconds-based segments."""
    segments: list[TranscriptSegment] = []
    for item in items:
        offset = item.get("offset", item.get("start", 0))
        duration = item.get("duration", item.get("dur", 0))
        segments.append(
            TranscriptSegment(
                text=str(item.get("text") or ""),
                start_sec=max(0.0, float(offset) / 1000.0),
                duration_sec=max(0.0, float(duration) / 1000.0),
            )
        )
    return segments


class _YouTubeTrack:
    def __init__(self, transcript) -> None:
        self._transcript = transcript
        self.language_code = getattr(transcript, "language_code", None)

    def fetch(self) -> list[dict]:
        try:
            fetched = self._transcript.fetch()
        except CouldNotRetrieveTranscript as e:
            raise source_error(e) from e
        return YouTubeTranscriptSource.to_millis(fetched)


# IpBlocked subclasses RequestBlocked; blocking is not a missing-captions case
_SOURCE_ERROR_REASONS: tuple[tuple[type[Exception], str], ...] = (
    (RequestBlocked, "unknown"),
    (NoTranscriptFound, "no_captions"),
    (TranscriptsDisabled, "no_captions"),
    (VideoUnavailable, "removed"),
    (AgeRestricted, "age_restricted"),
)


def source_error(exc: Exception) -> TranscriptSourceError:
    """Wrap a youtube-transcript-api exception, classified by its type."""
    for exc_type, reason in _SOURCE_ERROR_REASONS:
        if isinstance(exc, exc_type):
            break
    else:
        reason = "private" if "private" in str(exc).lower() else "unknown"
    return TranscriptSourceError(str(exc), reason)


class YouTubeTranscriptSource:
    """TranscriptSource backed by youtube-transcript-api.

    Without a language, the first track YouTube lists is used, whatever
    its language.
    """

    def __init__(self, api=None) -> None:
        self.api = api if api is not None else YouTubeTranscriptApi()

    @staticmethod
    def to_millis(fetched) -> list[dict]:
        raw = fetched.to_raw_data() if hasattr(fetched, "to_raw_data") else list(fetched)
        return [
            {
                "text": item["text"],
                "offset": float(item["start"]) * 1000.0,
                "duration": float(item["duration"]) * 1000.0,
            }
            for item in raw
        ]

    def fetch(self, reference: str, language: str | None = None) -> list[dict]:
        video_id = extract_video_id(reference) or reference
        if not language:
            tracks = self.list_tracks(video_id)
            if not tracks:
                msg = "No transcripts are listed for this video"
                raise TranscriptSourceError(msg, "no_captions")
            logger.info("Auto-detected transcript language: %s", tracks[0].language_code)
            return tracks[0].fetch()
        try:
            fetched = self.api.fetch(video_id, languages=[language])
        except CouldNotRetrieveTranscript as e:
            raise source_error(e) from e
        return self.to_millis(fetched)

    def list_tracks(self, video_id: str) -> list[_YouTubeTrack]:
        try:
            return [_YouTubeTrack(t) for t in self.api.list(video_id)]
        except CouldNotRetrieveTranscript as e:
            raise source_error(e) from e


class LanguageStrategy:
    """Fetch the video's transcript in one language (None = auto-detect)."""

    def __init__(self, source: TranscriptSource, language: str | None) -> None:
        self.source = source
        self.language = language
        self.name = f"language: {language}" if language else "auto-detect language"

    def fetch(self, video_id: str) -> list[dict]:
        return self.source.fetch(video_id, language=self.language)


class ReferenceFormatStrategy:
    """Fetch using an alternative reference to the video (URL forms or bare id)."""

    def __init__(self, source: TranscriptSource, template: str) -> None:
        self.source = source
        self.template = template
        self.name = f"alternative format: {template}"

    def fetch(self, video_id: str) -> list[dict]:
        return self.source.fetch(self.template.format(video_id=video_id))


class ListedTrackStrategy:
    """List every available track and fetch the first one."""

    name = "first listed track"

    def __init__(self, source: TranscriptSource) -> None:
        self.source = source

    def fetch(self, video_id: str) -> list[dict]:
        tracks = self.source.list_tracks(video_id)
        logger.info("Available transcripts: %d", len(tracks))
        if not tracks:
            return []
        return tracks[0].fetch()


class TranscriptFetcher:
    """Multi-strategy transcript acquisition with exponential backoff."""

    def __init__(
        self,
        source: TranscriptSource | None = None,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        sleep: Sleeper | None = None,
        languages: Iterable[str | None] = LANGUAGE_HINTS,
        reference_formats: Iterable[str] = REFERENCE_FORMATS,
    ) -> None:
        self.source = source or YouTubeTranscriptSource()
        self.policy = policy
        self._sleep = sleep or CancelToken().sleep
        self.strategies = [LanguageStrategy(self.source, lang) for lang in languages]
        self.fallbacks = [ReferenceFormatStrategy(self.source, t) for t in reference_formats]
        self.fallbacks.append(ListedTrackStrategy(self.source))

    def fetch(self, video_id: str) -> list[TranscriptSegment]:
        """Fetch a transcript or raise TranscriptUnavailable with a classified reason."""
        validate_video_id(video_id)
        logger.info("Attempting to fetch transcript for video: %s", video_id)
        last_error: str | None = None
        last_reason: str | None = None

        for attempt in range(self.policy.max_retries):
            logger.info("Attempt %d/%d", attempt + 1, self.policy.max_retries)
            for strategy in self.strategies:
                try:
                    logger.info("Trying %s", strategy.name)
                    items = strategy.fetch(video_id)
                except Exception as e:
                    last_error = str(e)
                    last_reason = e.reason if isinstance(e, TranscriptSourceError) else None
                    logger.info("Failed with %s: %s", strategy.name, e)
                    if is_missing_transcript_error(e):
                        continue
                    break
                if items:
                    logger.info("Fetched transcript with %d segments", len(items))
                    return to_segments(items)

            if attempt < self.policy.max_retries - 1:
                delay = self.policy.delay_for(attempt)
                logger.info("Waiting %.1fs before retry...", delay)
                self._sleep(delay)

        logger.info("Trying alternative transcript fetching methods...")
        for strategy in self.fallbacks:
            try:
                logger.info("Trying %s", strategy.name)
                items = strategy.fetch(video_id)
            except Exception as e:
                logger.info("%s failed: %s", strategy.name, e)
                continue
            if items:
                logger.info("Success with %s", strategy.name)
                return to_segments(items)

        reason, explanation = classify_transcript_error(last_error, last_reason)
        message = (
            f"Failed to fetch transcript after {self.policy.max_retries} attempts. "
            f"Last error: {last_error or 'Unknown error'}. {explanation}"
        )
        logger.error("Transcript fetching failed (%s): %s", reason, last_error)
        raise TranscriptUnavailable(
            message, reason=reason, last_error=last_error, suggestions=TRANSCRIPT_SUGGESTIONS
        )


def fetch_transcript(video_id: str, **kwargs) -> list[TranscriptSegment]:
    """Convenience wrapper around TranscriptFetcher(**kwargs).fetch()."""
    return TranscriptFetcher(**kwargs).fetch(video_id)


def check_transcript_availability(video_id: str, fetcher: TranscriptFetcher | None = None) -> dict:
    """Report whether a transcript can be fetched, with a short preview."""
    fetcher = fetcher or TranscriptFetcher()
    try:
        segments = fetcher.fetch(video_id)
    except (InputError, TranscriptUnavailable) as e:
        return {"available": False, "error": e.message}
    return {
        "available": True,
        "segment_count": len(segments),
        "total_duration": max((s.end_sec for s in segments), default=0.0),
        "preview": " ".join(s.text for s in segments[:3]),
    }
