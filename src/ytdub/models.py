"""
Data models for the dubbing pipeline.
"""

from dataclasses import dataclass, field
from pathlib import Path

SPEECH = "speech"
SILENCE = "silence"
GAP = "gap"

PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"


@dataclass
class TranscriptSegment:
    """A single caption line with timing in seconds."""

    text: str
    start_sec: float
    duration_sec: float

    @property
    def end_sec(self) -> float:
        return self.start_sec + self.duration_sec


@dataclass
class TranslatedSegment(TranscriptSegment):
    """A transcript segment carrying its translation (or the original text)."""

    translated_text: str = ""

    @classmethod
    def verbatim(cls, segment: TranscriptSegment) -> "TranslatedSegment":
        return cls(
            text=segment.text,
            start_sec=segment.start_sec,
            duration_sec=segment.duration_sec,
            translated_text=segment.text,
        )


@dataclass
class AudioClip:
    """An audio file placed on the timeline (speech, substitute silence or gap filler)."""

    source_path: str
    start_sec: float
    duration_sec: float
    sequence_index: int
    kind: str = SPEECH

    @property
    def end_sec(self) -> float:
        return self.start_sec + self.duration_sec


@dataclass
class Job:
    """One dubbing request and its isolated working directory."""

    id: str
    work_dir: Path

    @property
    def output_path(self) -> Path:
        return self.work_dir / "dubbed_video.mp4"

    @property
    def failure_marker(self) -> Path:
        return self.work_dir / "failed.json"


@dataclass
class StageOutcome:
    """Result of a pipeline stage: either a clean success or a degraded value."""

    value: object
    reasons: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.reasons)

    @classmethod
    def success(cls, value: object) -> "StageOutcome":
        return cls(value=value)

    @classmethod
    def degrade(cls, value: object, reason: str) -> "StageOutcome":
        return cls(value=value, reasons=[reason])


@dataclass
class DubbingResult:
    """What a finished job reports back to the caller."""

    job_id: str
    output_path: str
    transcript_segment_count: int
    translation_error_count: int
    degradations: list[str] = field(default_factory=list)


@dataclass
class JobStatus:
    """Status of a job as seen from its working directory."""

    job_id: str
    status: str
    output_path: str | None = None
    error: str | None = None
