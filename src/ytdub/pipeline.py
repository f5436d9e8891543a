"""
Dubbing job orchestration: transcript -> translation -> TTS -> alignment -> assembly -> mux.
"""

import json
import logging
import random
import uuid
from collections.abc import Callable
from pathlib import Path

from .config import DubbingConfig, load_config
from .errors import TRANSLATION_DEGRADED, ConfigError, DubbingError, InputError
from .io_ffmpeg import audio_duration_sec, concatenate_audio, create_silence, ensure_dir
from .media import CommandDownloader, MediaMuxer, build_downloaders
from .models import (
    COMPLETED,
    FAILED,
    PROCESSING,
    DubbingResult,
    Job,
    JobStatus,
    TranscriptSegment,
)
from .pacing import CancelToken, RequestPacer, Sleeper
from .timeline import AudioAssembler, TimelineAligner
from .transcript import (
    TranscriptFetcher,
    TranscriptSource,
    extract_video_id,
    validate_video_id,
)
from .translation import (
    RapidApiTranslator,
    TranslationBatcher,
    Translator,
    count_translation_errors,
)
from .tts import GTTSEngine, OpenAITTSEngine, SpeechEngine, SpeechSynthesizer

logger = logging.getLogger("ytdub")

# Optional OpenAI SDK
try:
    from openai import OpenAI
except ImportError:
    OpenAI = None


class JobStore:
    """Job directories under the downloads root, one per UUID."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def create(self) -> Job:
        job_id = str(uuid.uuid4())
        job = Job(id=job_id, work_dir=self.root / job_id)
        ensure_dir(str(job.work_dir))
        return job

    def get(self, job_id: str) -> Job:
        try:
            parsed = uuid.UUID(str(job_id))
        except ValueError as e:
            raise InputError(f"Invalid job id: {job_id}") from e
        return Job(id=str(parsed), work_dir=self.root / str(parsed))

    def status(self, job_id: str) -> JobStatus:
        """Completed once the dubbed video exists; repeated calls give the same answer."""
        job = self.get(job_id)
        if job.output_path.exists():
            return JobStatus(job_id=job.id, status=COMPLETED, output_path=str(job.output_path))
        if job.failure_marker.exists():
            try:
                details = json.loads(job.failure_marker.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                details = {}
            return JobStatus(job_id=job.id, status=FAILED, error=details.get("details"))
        return JobStatus(job_id=job.id, status=PROCESSING)

    def mark_failed(self, job: Job, error: Exception) -> None:
        if isinstance(error, DubbingError):
            payload = error.to_dict()
        else:
            payload = {"error": type(error).__name__, "details": str(error), "suggestions": []}
        job.failure_marker.write_text(json.dumps(payload, indent=2), encoding="utf-8")


class DubbingPipeline:
    """Runs dubbing jobs with collaborators built once from a validated config."""

    def __init__(
        self,
        config: DubbingConfig,
        *,
        transcript_source: TranscriptSource | None = None,
        translator: Translator | None = None,
        engine: SpeechEngine | None = None,
        downloaders: list[CommandDownloader] | None = None,
        mux: Callable[..., None] | None = None,
        make_silence: Callable[[float, str], str] = create_silence,
        concatenate: Callable[[list[str], str], str] = concatenate_audio,
        measure: Callable[[str], float] = audio_duration_sec,
        sleep: Sleeper | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        self.jobs = JobStore(Path(config.downloads_dir))
        self.transcript_source = transcript_source
        self._owns_translator = translator is None
        self.translator = translator if translator is not None else self._default_translator()
        self.engine = engine or self._default_engine()
        self.downloaders = downloaders
        self.mux = mux
        self.make_silence = make_silence
        self.concatenate = concatenate
        self.measure = measure
        self._sleep = sleep
        self._rng = rng

    def _default_translator(self) -> Translator | None:
        if not self.config.translator_available:
            return None
        return RapidApiTranslator(
            self.config.rapidapi_key,
            host=self.config.rapidapi_host,
            timeout=self.config.translation_timeout_sec,
        )

    def _default_engine(self) -> SpeechEngine:
        if self.config.tts_engine == "openai":
            if not OpenAI:
                raise ConfigError("openai package not installed. Install with: pip install openai")
            client = OpenAI(
                api_key=self.config.openai_api_key, timeout=self.config.openai_timeout_sec
            )
            return OpenAITTSEngine(
                client,
                model=self.config.openai_tts_model,
                voice=self.config.openai_tts_voice,
                instructions=self.config.openai_tts_instructions,
            )
        return GTTSEngine()

    def close(self) -> None:
        """Release the HTTP client of a translator this pipeline created."""
        if self._owns_translator and self.translator is not None:
            self.translator.close()

    def __enter__(self) -> "DubbingPipeline":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def run(
        self, video_identifier: str, target_language: str, cancel: CancelToken | None = None
    ) -> DubbingResult:
        """Dub one video; terminal errors mark the job failed and propagate."""
        video_id = extract_video_id(video_identifier or "")
        if not video_id:
            raise InputError("Invalid YouTube URL", ["Pass a youtube.com or youtu.be link"])
        validate_video_id(video_id)
        if not target_language or not target_language.strip():
            raise InputError("Target language is required")

        token = cancel or CancelToken()
        job = self.jobs.create()
        logger.info("Starting dubbing job %s for video %s -> %s", job.id, video_id, target_language)
        try:
            result = self._run_job(job, video_id, target_language, token)
        except Exception as e:
            logger.error("Dubbing job %s failed: %s", job.id, e)
            self.jobs.mark_failed(job, e)
            raise
        logger.info("Dubbing completed successfully: %s", result.output_path)
        return result

    def _run_job(
        self, job: Job, video_id: str, target_language: str, token: CancelToken
    ) -> DubbingResult:
        cfg = self.config
        sleep = self._sleep or token.sleep
        work_dir = str(job.work_dir)
        degradations: list[str] = []

        logger.info("Fetching transcript...")
        fetcher = TranscriptFetcher(source=self.transcript_source, policy=cfg.retry, sleep=sleep)
        transcript: list[TranscriptSegment] = fetcher.fetch(video_id)
        if not transcript:
            raise InputError(
                "The transcript was fetched but contains no content",
                ["Try a different video with spoken content and captions"],
            )
        logger.info("Transcript preview: %s", " ".join(s.text for s in transcript[:3]))

        token.check()
        logger.info("Translating %d segments to %s...", len(transcript), target_language)
        pacer = RequestPacer(
            success_delay=cfg.success_delay_sec,
            failure_delay=cfg.failure_delay_sec,
            batch_delay_range=cfg.batch_delay_range_sec,
            sleep=sleep,
            rng=self._rng,
        )
        batcher = TranslationBatcher(self.translator, pacer=pacer, batch_size=cfg.batch_size)
        translated = batcher.translate_segments(transcript, target_language)
        translation_errors = count_translation_errors(translated)
        if translation_errors:
            logger.warning(
                "%d translation issues occurred. Some text may be in original language.",
                translation_errors,
            )
            degradations.append(
                f"{TRANSLATION_DEGRADED}: {translation_errors} segment(s) kept original text"
            )

        token.check()
        logger.info("Generating audio clips...")
        synthesizer = SpeechSynthesizer(
            self.engine,
            make_silence=self.make_silence,
            measure=self.measure,
            min_silence_sec=cfg.min_silence_sec,
            cancel=token,
        )
        synthesis = synthesizer.synthesize_all(translated, target_language, work_dir)
        degradations.extend(synthesis.reasons)
        clips = synthesis.value

        token.check()
        logger.info("Aligning audio with timestamps...")
        aligner = TimelineAligner(make_silence=self.make_silence, min_gap_sec=cfg.min_gap_sec)
        aligned = aligner.align(clips, work_dir)

        token.check()
        logger.info("Concatenating %d audio pieces...", len(aligned))
        assembler = AudioAssembler(
            concatenate=self.concatenate,
            make_silence=self.make_silence,
            fallback_duration_sec=cfg.fallback_duration_sec,
        )
        assembly = assembler.assemble(aligned, clips, str(job.work_dir / "final_audio.wav"))
        degradations.extend(assembly.reasons)

        token.check()
        logger.info("Downloading video...")
        downloaders = self.downloaders
        if downloaders is None:
            downloaders = build_downloaders(cfg.downloaders, timeout=cfg.subprocess_timeout_sec)
        muxer_kwargs = {"mux": self.mux} if self.mux is not None else {}
        muxer = MediaMuxer(
            downloaders, timeout=cfg.subprocess_timeout_sec, cancel=token, **muxer_kwargs
        )
        output = muxer.produce(
            video_id, assembly.value, str(job.work_dir / "video.mp4"), str(job.output_path)
        )

        return DubbingResult(
            job_id=job.id,
            output_path=output,
            transcript_segment_count=len(transcript),
            translation_error_count=translation_errors,
            degradations=degradations,
        )

    def status(self, job_id: str) -> JobStatus:
        return self.jobs.status(job_id)


def run_dubbing_job(
    video_identifier: str, target_language: str, config: DubbingConfig | None = None
) -> DubbingResult:
    """Entry point for the request layer: dub a video with the environment's config."""
    with DubbingPipeline(config or load_config()) as pipeline:
        return pipeline.run(video_identifier, target_language)


def job_status(job_id: str, config: DubbingConfig | None = None) -> JobStatus:
    """processing / completed / failed for a job id, based on its directory contents."""
    cfg = config or load_config()
    return JobStore(Path(cfg.downloads_dir)).status(job_id)
