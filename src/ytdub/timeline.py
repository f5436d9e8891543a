"""
Audio timeline building: gap-filling alignment and final track assembly.
"""

import logging
import os
from collections.abc import Callable

from .errors import ASSEMBLY_DEGRADED, AlignmentFailed
from .io_ffmpeg import concatenate_audio, create_silence
from .models import GAP, AudioClip, StageOutcome

logger = logging.getLogger("ytdub")


class TimelineAligner:
    """Order clips by start time and insert silence where the original had pauses."""

    def __init__(
        self,
        make_silence: Callable[[float, str], str] = create_silence,
        min_gap_sec: float = 0.1,
    ) -> None:
        self.make_silence = make_silence
        self.min_gap_sec = min_gap_sec

    def align(self, clips: list[AudioClip], tmp_dir: str) -> list[AudioClip]:
        """Return clips interleaved with gap fillers, ready for linear concatenation."""
        aligned: list[AudioClip] = []
        current_time = 0.0

        # sorted() is stable, so clips sharing a start keep their input order
        for i, clip in enumerate(sorted(clips, key=lambda c: c.start_sec)):
            gap = clip.start_sec - current_time
            if gap > self.min_gap_sec:
                gap_path = os.path.join(tmp_dir, f"gap_{i:04d}.wav")
                try:
                    self.make_silence(gap, gap_path)
                    aligned.append(
                        AudioClip(
                            source_path=gap_path,
                            start_sec=current_time,
                            duration_sec=gap,
                            sequence_index=-1,
                            kind=GAP,
                        )
                    )
                except Exception as e:
                    logger.error("Failed to create gap silence before clip %d: %s", i, e)
            aligned.append(clip)
            current_time = clip.start_sec + clip.duration_sec

        if not aligned:
            raise AlignmentFailed("No aligned audio files were created. Audio generation failed.")
        return aligned


class AudioAssembler:
    """Concatenate the aligned sequence into one track, falling back to silence."""

    def __init__(
        self,
        concatenate: Callable[[list[str], str], str] = concatenate_audio,
        make_silence: Callable[[float, str], str] = create_silence,
        fallback_duration_sec: float = 10.0,
    ) -> None:
        self.concatenate = concatenate
        self.make_silence = make_silence
        self.fallback_duration_sec = fallback_duration_sec

    def total_duration(self, clips: list[AudioClip]) -> float:
        """End of the last clip on the original timeline, or the fallback length."""
        total = max((c.end_sec for c in clips), default=0.0)
        return total if total > 0 else self.fallback_duration_sec

    def assemble(
        self, aligned: list[AudioClip], original_clips: list[AudioClip], out_path: str
    ) -> StageOutcome:
        paths = [c.source_path for c in aligned]
        try:
            self.concatenate(paths, out_path)
        except Exception as e:
            logger.error("Concatenation failed, falling back to silence: %s", e)
            duration = self.total_duration(original_clips)
            self.make_silence(duration, out_path)
            return StageOutcome.degrade(
                out_path, f"{ASSEMBLY_DEGRADED}: replaced by {duration:.1f}s of silence ({e})"
            )
        return StageOutcome.success(out_path)
