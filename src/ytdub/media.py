"""
Source video download and final audio/video muxing.
"""

import logging
import os
from collections.abc import Callable
from pathlib import Path

from .errors import JobCancelled, MuxFailed, VideoAcquisitionFailed
from .io_ffmpeg import mux_audio_to_video, run
from .pacing import CancelToken

logger = logging.getLogger("ytdub")

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

DEFAULT_DOWNLOADERS: tuple[tuple[str, str], ...] = (
    ("yt-dlp", "bestvideo[ext=mp4]"),
    ("yt-dlp", "best[ext=mp4]"),
    ("youtube-dl", "bestvideo[ext=mp4]"),
)


class CommandDownloader:
    """One downloader tool invoked with one format selector."""

    def __init__(
        self,
        tool: str,
        fmt: str,
        runner: Callable[..., str] = run,
        timeout: float | None = None,
    ) -> None:
        self.tool = tool
        self.fmt = fmt
        self.runner = runner
        self.timeout = timeout
        self.name = f'{tool} -f "{fmt}"'

    def command(self, video_id: str, out_path: str) -> list[str]:
        return [
            self.tool,
            "-f",
            self.fmt,
            "--no-audio",
            "-o",
            out_path,
            WATCH_URL.format(video_id=video_id),
        ]

    def download(self, video_id: str, out_path: str, cancel: CancelToken | None = None) -> str:
        self.runner(self.command(video_id, out_path), timeout=self.timeout, cancel=cancel)
        if not Path(out_path).exists():
            msg = "Video file was not created successfully"
            raise RuntimeError(msg)
        return out_path


def build_downloaders(
    specs: tuple[tuple[str, str], ...] = DEFAULT_DOWNLOADERS,
    timeout: float | None = None,
    runner: Callable[..., str] = run,
) -> list[CommandDownloader]:
    return [CommandDownloader(tool, fmt, runner=runner, timeout=timeout) for tool, fmt in specs]


class MediaMuxer:
    """Fetch the video-only stream and merge the dubbed audio onto it."""

    def __init__(
        self,
        downloaders: list[CommandDownloader] | None = None,
        mux: Callable[..., None] = mux_audio_to_video,
        timeout: float | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        if downloaders is None:
            downloaders = build_downloaders(timeout=timeout)
        self.downloaders = downloaders
        self.mux = mux
        self.timeout = timeout
        self.cancel = cancel

    def acquire_video(self, video_id: str, out_path: str) -> str:
        """Try each downloader in order; raise VideoAcquisitionFailed if all fail."""
        failures: list[str] = []
        for downloader in self.downloaders:
            try:
                logger.info("Downloading video with %s", downloader.name)
                return downloader.download(video_id, out_path, cancel=self.cancel)
            except JobCancelled:
                raise
            except FileNotFoundError as e:
                logger.warning("%s is not installed: %s", downloader.tool, e)
                failures.append(f"{downloader.name}: not installed")
            except Exception as e:
                logger.error("%s failed: %s", downloader.name, e)
                failures.append(f"{downloader.name}: {e}")
        raise VideoAcquisitionFailed(
            "Failed to download video. " + "; ".join(failures),
            ["Ensure yt-dlp or youtube-dl is installed and up to date"],
        )

    def merge(self, video_path: str, audio_path: str, out_path: str) -> str:
        """Copy the video stream, encode the new audio, stop at the shorter stream.

        ffmpeg writes to a ``.part`` file that is renamed onto `out_path` only
        after a clean exit, so a failed or interrupted mux never leaves a file
        at the final name.
        """
        final = Path(out_path)
        partial = final.with_name(f"{final.stem}.part{final.suffix}")
        try:
            self.mux(video_path, audio_path, str(partial), timeout=self.timeout, cancel=self.cancel)
        except JobCancelled:
            partial.unlink(missing_ok=True)
            raise
        except Exception as e:
            partial.unlink(missing_ok=True)
            raise MuxFailed(f"Failed to merge video and audio: {e}") from e
        if not partial.exists():
            raise MuxFailed("Failed to merge video and audio: output file was not created")
        os.replace(partial, final)
        return out_path

    def produce(self, video_id: str, audio_path: str, video_path: str, out_path: str) -> str:
        self.acquire_video(video_id, video_path)
        logger.info("Merging video and audio...")
        return self.merge(video_path, audio_path, out_path)
