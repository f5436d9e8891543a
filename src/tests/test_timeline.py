"""
Tests for timeline alignment and audio assembly.
"""

import pytest
from conftest import SilenceRecorder

from ytdub.errors import AlignmentFailed
from ytdub.io_ffmpeg import (
    audio_duration_sec,
    clamp_silence_sec,
    concatenate_audio,
    create_silence,
)
from ytdub.models import GAP, SPEECH, AudioClip
from ytdub.timeline import AudioAssembler, TimelineAligner


def clip(start: float, duration: float, index: int, path: str | None = None) -> AudioClip:
    return AudioClip(
        source_path=path or f"line_{index}.mp3",
        start_sec=start,
        duration_sec=duration,
        sequence_index=index,
    )


def test_gaps_are_filled_to_reproduce_timing(tmp_path):
    silence = SilenceRecorder()
    clips = [clip(5.0, 1.0, 2), clip(0.5, 2.0, 0), clip(3.0, 1.5, 1)]

    aligned = TimelineAligner(make_silence=silence).align(clips, str(tmp_path))

    assert [(c.kind, c.sequence_index) for c in aligned] == [
        (GAP, -1),
        (SPEECH, 0),
        (GAP, -1),
        (SPEECH, 1),
        (GAP, -1),
        (SPEECH, 2),
    ]
    assert [round(d, 6) for d, _ in silence.calls] == [0.5, 0.5, 0.5]
    total = sum(c.duration_sec for c in aligned)
    assert total == pytest.approx(max(c.end_sec for c in clips))


def test_small_gaps_are_absorbed(tmp_path):
    silence = SilenceRecorder()
    clips = [clip(0.0, 1.0, 0), clip(1.05, 1.0, 1), clip(2.12, 1.0, 2)]

    aligned = TimelineAligner(make_silence=silence, min_gap_sec=0.1).align(clips, str(tmp_path))

    assert silence.calls == []
    assert [c.sequence_index for c in aligned] == [0, 1, 2]


def test_min_gap_is_configurable(tmp_path):
    silence = SilenceRecorder()
    clips = [clip(0.0, 1.0, 0), clip(1.3, 1.0, 1)]

    aligned = TimelineAligner(make_silence=silence, min_gap_sec=0.5).align(clips, str(tmp_path))

    assert len(aligned) == 2


def test_single_clip_at_zero_has_no_filler(tmp_path):
    silence = SilenceRecorder()
    aligned = TimelineAligner(make_silence=silence).align([clip(0.0, 2.0, 0)], str(tmp_path))

    assert len(aligned) == 1
    assert silence.calls == []


def test_ties_keep_input_order(tmp_path):
    clips = [clip(1.0, 0.5, 7), clip(1.0, 0.5, 3)]
    aligned = TimelineAligner(make_silence=SilenceRecorder()).align(clips, str(tmp_path))

    assert [c.sequence_index for c in aligned if c.kind == SPEECH] == [7, 3]


def test_failed_gap_filler_is_skipped(tmp_path):
    aligned = TimelineAligner(make_silence=SilenceRecorder(fail=True)).align(
        [clip(4.0, 1.0, 0)], str(tmp_path)
    )
    assert [c.kind for c in aligned] == [SPEECH]


def test_empty_alignment_is_terminal(tmp_path):
    with pytest.raises(AlignmentFailed):
        TimelineAligner(make_silence=SilenceRecorder()).align([], str(tmp_path))


def test_assembly_falls_back_to_full_length_silence(tmp_path):
    silence = SilenceRecorder()

    def broken_concat(paths, out_path):
        raise RuntimeError("concat filter failed")

    assembler = AudioAssembler(concatenate=broken_concat, make_silence=silence)
    clips = [clip(0.0, 2.0, 0), clip(10.0, 2.5, 1)]
    out = str(tmp_path / "final_audio.wav")

    outcome = assembler.assemble(clips, clips, out)

    assert outcome.degraded
    assert outcome.value == out
    assert silence.calls == [(12.5, out)]


def test_assembly_fallback_uses_default_for_degenerate_length(tmp_path):
    assembler = AudioAssembler(fallback_duration_sec=10.0)
    assert assembler.total_duration([]) == 10.0
    assert assembler.total_duration([clip(0.0, 0.0, 0)]) == 10.0


def test_assembly_concatenates_in_order(tmp_path):
    seen = {}

    def fake_concat(paths, out_path):
        seen["paths"] = paths
        return out_path

    aligned = [clip(0.0, 1.0, 0, "a.wav"), clip(1.0, 1.0, 1, "b.wav")]
    outcome = AudioAssembler(concatenate=fake_concat).assemble(aligned, aligned, "out.wav")

    assert not outcome.degraded
    assert seen["paths"] == ["a.wav", "b.wav"]


def test_real_silence_and_concatenation(tmp_path):
    first = create_silence(0.5, str(tmp_path / "a.wav"))
    second = create_silence(0.25, str(tmp_path / "b.wav"))
    out = str(tmp_path / "final_audio.wav")

    concatenate_audio([first, second], out)

    assert audio_duration_sec(first) == pytest.approx(0.5, abs=0.01)
    assert audio_duration_sec(out) == pytest.approx(0.75, abs=0.01)


def test_single_file_is_copied(tmp_path):
    only = create_silence(1.0, str(tmp_path / "only.wav"))
    out = str(tmp_path / "final_audio.wav")

    concatenate_audio([only], out)

    assert audio_duration_sec(out) == pytest.approx(1.0, abs=0.01)


def test_silence_length_is_clamped(caplog):
    with caplog.at_level("WARNING", logger="ytdub"):
        assert clamp_silence_sec(0.01) == 0.1
        assert clamp_silence_sec(12.5) == 12.5
        assert not caplog.records

        assert clamp_silence_sec(5400) == 3600.0
    assert "exceeds" in caplog.records[-1].getMessage()
