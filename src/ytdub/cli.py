"""
Command-line interface for the YouTube dubbing pipeline.
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict

from .config import DubbingConfig, load_config
from .errors import DubbingError
from .pipeline import DubbingPipeline, JobStore
from .transcript import check_transcript_availability, extract_video_id

logger = logging.getLogger("ytdub")


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(description="Dub a YouTube video into another language")
    ap.add_argument("--env-file", default=None, help="Path to a .env file (default: ./.env)")
    ap.add_argument(
        "--downloads",
        default=None,
        help="Root directory for job folders (default: $YTDUB_DOWNLOADS_DIR or ./downloads)",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    sub = ap.add_subparsers(dest="command", required=True)

    dub = sub.add_parser("dub", help="Run a full dubbing job")
    dub.add_argument("video", help="YouTube URL or 11-character video id")
    dub.add_argument("language", help='Target language name, e.g. "spanish"')
    dub.add_argument(
        "--tts-engine", choices=["gtts", "openai"], default=None, help="Speech synthesis engine"
    )
    dub.add_argument("--batch-size", type=int, default=None, help="Translation batch size")
    dub.add_argument(
        "--min-gap",
        type=float,
        default=None,
        help="Shortest pause (sec) that gets a silence filler",
    )

    status = sub.add_parser("status", help="Check a job's status")
    status.add_argument("job_id")

    sub.add_parser("health", help="Report whether the translation service is configured")

    check = sub.add_parser("check", help="Check whether a video has a usable transcript")
    check.add_argument("video", help="YouTube URL or 11-character video id")

    return ap.parse_args(argv)


def health_report(config: DubbingConfig) -> dict:
    translator = "RapidAPI Connected" if config.translator_available else "Not Connected"
    return {
        "status": "OK",
        "message": "YouTube dubbing pipeline is ready",
        "translate_status": translator,
        "tts_engine": config.tts_engine,
    }


def _print(data: dict) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.command == "dub":
            config = load_config(
                args.env_file,
                downloads_dir=args.downloads,
                tts_engine=args.tts_engine,
                batch_size=args.batch_size,
                min_gap_sec=args.min_gap,
            )
            with DubbingPipeline(config) as pipeline:
                result = pipeline.run(args.video, args.language)
            _print({"success": True, **asdict(result)})
        elif args.command == "status":
            config = load_config(args.env_file, downloads_dir=args.downloads)
            _print(asdict(JobStore(config.downloads_dir).status(args.job_id)))
        elif args.command == "health":
            config = load_config(args.env_file, downloads_dir=args.downloads)
            _print(health_report(config))
        else:
            video_id = extract_video_id(args.video)
            if not video_id:
                _print({"error": "Invalid YouTube URL"})
                return 1
            logger.info("Checking transcript availability for: %s", video_id)
            _print(check_transcript_availability(video_id))
    except DubbingError as e:
        logger.error("%s: %s", type(e).__name__, e.message)
        _print(e.to_dict())
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
