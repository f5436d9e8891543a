"""
Pipeline configuration, loaded once from the environment (and .env) at startup.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigError
from .media import DEFAULT_DOWNLOADERS
from .retry import RetryPolicy
from .translation import RAPIDAPI_HOST

logger = logging.getLogger("ytdub")

TTS_ENGINES = ("gtts", "openai")


@dataclass
class DubbingConfig:
    """Everything the pipeline needs; built by load_config() and passed by reference."""

    downloads_dir: Path = Path("downloads")

    # Translation (RapidAPI Google Translator)
    rapidapi_key: str | None = None
    rapidapi_host: str = RAPIDAPI_HOST
    translation_timeout_sec: float = 30.0
    batch_size: int = 10
    success_delay_sec: float = 0.2
    failure_delay_sec: float = 1.0
    batch_delay_range_sec: tuple[float, float] = (3.0, 5.0)

    # Transcript retries
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    # Speech synthesis
    tts_engine: str = "gtts"
    openai_api_key: str | None = None
    openai_tts_model: str = "gpt-4o-mini-tts"
    openai_tts_voice: str = "alloy"
    openai_tts_instructions: str | None = None
    openai_timeout_sec: float = 60.0

    # Timeline
    min_gap_sec: float = 0.1
    min_silence_sec: float = 0.5
    fallback_duration_sec: float = 10.0

    # External tools
    subprocess_timeout_sec: float = 1800.0
    downloaders: tuple[tuple[str, str], ...] = DEFAULT_DOWNLOADERS

    @property
    def translator_available(self) -> bool:
        return bool(self.rapidapi_key)

    def validate(self) -> "DubbingConfig":
        """Check the configuration once; raises ConfigError for unusable settings."""
        if self.tts_engine not in TTS_ENGINES:
            raise ConfigError(
                f"Unknown TTS engine: {self.tts_engine}",
                [f"Set YTDUB_TTS_ENGINE to one of: {', '.join(TTS_ENGINES)}"],
            )
        if self.tts_engine == "openai" and not self.openai_api_key:
            raise ConfigError(
                "OPENAI_API_KEY is not set. Put it in .env or environment.",
                ["Set OPENAI_API_KEY or use YTDUB_TTS_ENGINE=gtts"],
            )
        if self.batch_size < 1:
            raise ConfigError("batch_size must be at least 1")
        low, high = self.batch_delay_range_sec
        if low < 0 or high < low:
            raise ConfigError(f"Invalid batch delay range: {self.batch_delay_range_sec}")
        if self.min_gap_sec < 0 or self.min_silence_sec <= 0 or self.fallback_duration_sec <= 0:
            raise ConfigError("Timeline thresholds must be positive")
        if not self.downloaders:
            raise ConfigError("At least one video downloader is required")

        if self.translator_available:
            logger.info("RapidAPI Translator initialized")
        else:
            logger.warning(
                "RapidAPI key not found. Set RAPIDAPI_KEY; segments will keep their original text"
            )
        return self


def load_config(env_file: str | None = None, **overrides) -> DubbingConfig:
    """Build a validated DubbingConfig from .env, the environment and explicit overrides."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    values = {
        "downloads_dir": Path(os.getenv("YTDUB_DOWNLOADS_DIR", "downloads")),
        "rapidapi_key": os.getenv("RAPIDAPI_KEY") or None,
        "rapidapi_host": os.getenv("RAPIDAPI_HOST", RAPIDAPI_HOST),
        "tts_engine": os.getenv("YTDUB_TTS_ENGINE", "gtts").lower(),
        "openai_api_key": os.getenv("OPENAI_API_KEY") or None,
        "openai_tts_model": os.getenv("OPENAI_TTS_MODEL", "gpt-4o-mini-tts"),
        "openai_tts_voice": os.getenv("OPENAI_TTS_VOICE", "alloy"),
        "openai_tts_instructions": os.getenv("OPENAI_TTS_INSTRUCTIONS") or None,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return DubbingConfig(**values).validate()
