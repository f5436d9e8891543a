"""
Shared fakes for the external collaborators of the pipeline.
"""

from pathlib import Path

import pytest

from ytdub.config import DubbingConfig
from ytdub.errors import SynthesisError, TranslationServiceError
from ytdub.retry import RetryPolicy


def caption(text: str, start: float, duration: float) -> dict:
    """Caption item as a transcript source returns it (milliseconds)."""
    return {"text": text, "offset": start * 1000, "duration": duration * 1000}


class FakeTrack:
    def __init__(self, items: list[dict]) -> None:
        self.items = items

    def fetch(self) -> list[dict]:
        return self.items


class FakeTranscriptSource:
    """Answers fetch() through a handler and records every call."""

    def __init__(self, handler=None, tracks=None) -> None:
        self.handler = handler or (lambda reference, language: [])
        self.tracks = tracks or []
        self.calls: list[tuple[str, object]] = []
        self.list_calls: list[str] = []

    def fetch(self, reference: str, language: str | None = None) -> list[dict]:
        self.calls.append((reference, language))
        return self.handler(reference, language)

    def list_tracks(self, video_id: str) -> list[FakeTrack]:
        self.list_calls.append(video_id)
        return self.tracks


class FakeTranslator:
    """Uppercases text, or fails with a given status code."""

    def __init__(self, fail_status: int | None = None) -> None:
        self.fail_status = fail_status
        self.calls: list[tuple[str, str]] = []

    def translate(self, text: str, target_code: str) -> str:
        self.calls.append((text, target_code))
        if self.fail_status is not None:
            raise TranslationServiceError("rate limited", self.fail_status)
        return f"[{target_code}] {text.upper()}"


class FakeEngine:
    extension = "mp3"

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.calls: list[tuple[str, str]] = []

    def synthesize(self, text: str, language_code: str, out_path: str) -> None:
        self.calls.append((text, language_code))
        if text in self.fail_on:
            raise SynthesisError("engine refused text")
        Path(out_path).write_bytes(b"ID3")


class SilenceRecorder:
    """Stands in for create_silence; writes a marker file."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[float, str]] = []

    def __call__(self, duration_sec: float, out_path: str) -> str:
        self.calls.append((duration_sec, out_path))
        if self.fail:
            raise RuntimeError("ffmpeg missing")
        Path(out_path).parent.mkdir(parents=True, exist_ok=True)
        Path(out_path).write_bytes(b"RIFF")
        return out_path


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def config(tmp_path) -> DubbingConfig:
    return DubbingConfig(
        downloads_dir=tmp_path / "downloads",
        retry=RetryPolicy(max_retries=2, base_delay_sec=1.0, max_delay_sec=10.0),
    )
