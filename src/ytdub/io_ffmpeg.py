"""
Audio and video processing utilities using ffmpeg and pydub.
"""

import logging
import subprocess
from pathlib import Path

from pydub import AudioSegment

from .pacing import CancelToken

logger = logging.getLogger("ytdub")

SILENCE_SAMPLE_RATE = 22050
MIN_SILENCE_SEC = 0.1
MAX_SILENCE_SEC = 3600.0
POLL_INTERVAL_SEC = 0.5


def run(
    cmd: list[str],
    *,
    check: bool = True,
    timeout: float | None = None,
    cancel: CancelToken | None = None,
) -> str:
    """Run a command and return its combined stdout/stderr.

    The process is killed when `timeout` elapses or `cancel` fires.
    """
    logger.debug("Running: %s", " ".join(map(str, cmd)))
    proc = subprocess.Popen(
        [str(c) for c in cmd], stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True
    )
    waited = 0.0
    while True:
        try:
            out, _ = proc.communicate(timeout=POLL_INTERVAL_SEC)
            break
        except subprocess.TimeoutExpired:
            waited += POLL_INTERVAL_SEC
            if cancel is not None and cancel.cancelled:
                proc.kill()
                proc.communicate()
                cancel.check()
            if timeout is not None and waited >= timeout:
                proc.kill()
                proc.communicate()
                msg = f"Command timed out after {timeout:.0f}s: {cmd[0]}"
                raise RuntimeError(msg)
    if proc.returncode != 0 and check:
        logger.error("Command failed with code %d: %s", proc.returncode, out)
        msg = f"Command failed with code {proc.returncode}: {out.strip()[-300:]}"
        raise RuntimeError(msg)
    return out


def ensure_dir(path: str) -> None:
    """Ensure directory exists."""
    if path:
        Path(path).mkdir(parents=True, exist_ok=True)


def clamp_silence_sec(duration_sec: float) -> float:
    """Clamp a silence length to 0.1s..1h, warning when the upper cap cuts it short."""
    duration = float(duration_sec)
    if duration > MAX_SILENCE_SEC:
        logger.warning(
            "Silence of %.1fs exceeds the %.0fs cap; the track will be shorter than the timeline",
            duration,
            MAX_SILENCE_SEC,
        )
        return MAX_SILENCE_SEC
    return max(MIN_SILENCE_SEC, duration)


def create_silence(duration_sec: float, out_path: str) -> str:
    """Write a stereo silence WAV, clamped to 0.1s..1h."""
    safe = clamp_silence_sec(duration_sec)
    ensure_dir(str(Path(out_path).parent))
    silence = AudioSegment.silent(duration=int(round(safe * 1000)), frame_rate=SILENCE_SAMPLE_RATE)
    silence.set_channels(2).export(out_path, format="wav")
    logger.debug("Created silence: %.2fs -> %s", safe, out_path)
    return out_path


def audio_duration_sec(path: str) -> float:
    """Length of an audio file in seconds."""
    return len(AudioSegment.from_file(path)) / 1000.0


def copy_audio(in_path: str, out_path: str) -> str:
    """Re-export a single clip as the final WAV track."""
    AudioSegment.from_file(in_path).export(out_path, format="wav")
    return out_path


def concatenate_audio(paths: list[str], out_path: str) -> str:
    """Concatenate audio files in order into one WAV track."""
    if not paths:
        msg = "No audio files to concatenate"
        raise ValueError(msg)
    if len(paths) == 1:
        return copy_audio(paths[0], out_path)
    track = AudioSegment.empty()
    for p in paths:
        clip = AudioSegment.from_file(p).set_frame_rate(SILENCE_SAMPLE_RATE).set_channels(2)
        track += clip
    track.export(out_path, format="wav")
    return out_path


def mux_audio_to_video(
    input_video: str,
    audio_path: str,
    output_video: str,
    *,
    timeout: float | None = None,
    cancel: CancelToken | None = None,
) -> None:
    """Mux audio track into video (copy video stream, AAC audio, stop at the shorter stream)."""
    cmd = [
        "ffmpeg",
        "-y",
        "-i",
        input_video,
        "-i",
        audio_path,
        "-map",
        "0:v:0",
        "-map",
        "1:a:0",
        "-c:v",
        "copy",
        "-c:a",
        "aac",
        "-shortest",
        output_video,
    ]
    run(cmd, timeout=timeout, cancel=cancel)
