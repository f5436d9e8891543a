"""
Text-to-speech synthesis with gTTS and OpenAI.
"""

import logging
import os
from collections.abc import Callable
from typing import Protocol

from tqdm import tqdm

from .errors import NoAudioGenerated, SYNTHESIS_DEGRADED, SynthesisError
from .io_ffmpeg import audio_duration_sec, create_silence, ensure_dir
from .models import SILENCE, SPEECH, AudioClip, StageOutcome, TranslatedSegment
from .pacing import CancelToken
from .translation import needs_translation

logger = logging.getLogger("ytdub")

# Optional OpenAI SDK
try:
    from openai import OpenAI
except ImportError:
    OpenAI = None

DEFAULT_TTS_LANGUAGE = "en"

TTS_LANGUAGE_CODES = {
    "spanish": "es",
    "french": "fr",
    "german": "de",
    "italian": "it",
    "portuguese": "pt",
    "russian": "ru",
    "japanese": "ja",
    "korean": "ko",
    "chinese": "zh",
    "hindi": "hi",
    "arabic": "ar",
    "dutch": "nl",
    "polish": "pl",
    "turkish": "tr",
    "swedish": "sv",
    "norwegian": "no",
    "danish": "da",
    "finnish": "fi",
    "greek": "el",
    "hebrew": "he",
    "thai": "th",
    "vietnamese": "vi",
    "indonesian": "id",
    "malay": "ms",
    "tagalog": "tl",
    "urdu": "ur",
    "bengali": "bn",
    "tamil": "ta",
    "telugu": "te",
    "marathi": "mr",
    "gujarati": "gu",
    "kannada": "kn",
    "malayalam": "ml",
    "punjabi": "pa",
}


class SpeechEngine(Protocol):
    extension: str

    def synthesize(self, text: str, language_code: str, out_path: str) -> None: ...


def get_tts_language_code(language: str) -> str:
    """Map a language name to a synthesis language code, defaulting to English."""
    return TTS_LANGUAGE_CODES.get((language or "").strip().lower(), DEFAULT_TTS_LANGUAGE)


class GTTSEngine:
    """Google Text-to-Speech (mp3 output)."""

    extension = "mp3"

    def synthesize(self, text: str, language_code: str, out_path: str) -> None:
        from gtts import gTTS

        if not needs_translation(text):
            raise SynthesisError("Text too short for TTS")
        try:
            gTTS(text=text.strip(), lang=language_code).save(out_path)
        except Exception as e:
            raise SynthesisError(f"gTTS synthesis failed: {e}") from e


def tts_speak_openai(
    client: OpenAI,
    text: str,
    model: str,
    voice: str,
    out_path: str,
    instructions: str | None = None,
) -> None:
    """Synthesize speech using OpenAI TTS."""
    if client is None:
        raise SynthesisError("OpenAI client is not initialized (missing OPENAI_API_KEY)")

    kwargs = {"model": model, "voice": voice, "input": text, "response_format": "wav"}
    if instructions:
        kwargs["instructions"] = instructions
    with client.audio.speech.with_streaming_response.create(**kwargs) as resp:
        resp.stream_to_file(out_path)


class OpenAITTSEngine:
    """OpenAI speech endpoint (wav output); the language comes from the text itself."""

    extension = "wav"

    def __init__(
        self,
        client: OpenAI,
        model: str = "gpt-4o-mini-tts",
        voice: str = "alloy",
        instructions: str | None = None,
    ) -> None:
        self.client = client
        self.model = model
        self.voice = voice
        self.instructions = instructions

    def synthesize(self, text: str, language_code: str, out_path: str) -> None:
        try:
            tts_speak_openai(
                self.client, text.strip(), self.model, self.voice, out_path, self.instructions
            )
        except SynthesisError:
            raise
        except Exception as e:
            raise SynthesisError(f"OpenAI TTS failed: {e}") from e


class SpeechSynthesizer:
    """Turn translated segments into audio clips, substituting silence on failure."""

    def __init__(
        self,
        engine: SpeechEngine,
        make_silence: Callable[[float, str], str] = create_silence,
        measure: Callable[[str], float] = audio_duration_sec,
        min_silence_sec: float = 0.5,
        cancel: CancelToken | None = None,
    ) -> None:
        self.engine = engine
        self.make_silence = make_silence
        self.measure = measure
        self.min_silence_sec = min_silence_sec
        self.cancel = cancel

    def synthesize_segment(
        self, seg: TranslatedSegment, index: int, language_code: str, out_dir: str
    ) -> AudioClip | None:
        """One clip for one segment; None when the segment is skipped or dropped."""
        if not needs_translation(seg.translated_text):
            logger.info("Skipping empty/short text at line %d", index)
            return None

        audio_path = os.path.join(out_dir, f"line_{index}.{self.engine.extension}")
        try:
            self.engine.synthesize(seg.translated_text, language_code, audio_path)
        except Exception as e:
            logger.error("Error generating audio for line %d: %s", index, e)
            return self._silence_clip(seg, index, out_dir)

        return AudioClip(
            source_path=audio_path,
            start_sec=seg.start_sec,
            duration_sec=self._natural_duration(audio_path, seg),
            sequence_index=index,
            kind=SPEECH,
        )

    def _natural_duration(self, path: str, seg: TranslatedSegment) -> float:
        try:
            duration = self.measure(path)
        except Exception as e:
            logger.warning("Could not measure %s (%s); using segment duration", path, e)
            duration = 0.0
        if duration <= 0:
            duration = max(seg.duration_sec, self.min_silence_sec)
        return duration

    def _silence_clip(self, seg: TranslatedSegment, index: int, out_dir: str) -> AudioClip | None:
        duration = max(seg.duration_sec, self.min_silence_sec)
        silence_path = os.path.join(out_dir, f"silence_{index}.wav")
        try:
            self.make_silence(duration, silence_path)
        except Exception as e:
            logger.error("Failed to create silence for line %d: %s", index, e)
            return None
        return AudioClip(
            source_path=silence_path,
            start_sec=seg.start_sec,
            duration_sec=duration,
            sequence_index=index,
            kind=SILENCE,
        )

    def synthesize_all(
        self, segments: list[TranslatedSegment], target_language: str, out_dir: str
    ) -> StageOutcome:
        """Clips for every usable segment; raises NoAudioGenerated if none survive."""
        ensure_dir(out_dir)
        language_code = get_tts_language_code(target_language)
        clips: list[AudioClip] = []
        for i, seg in enumerate(tqdm(segments, desc=f"TTS {language_code}")):
            if self.cancel is not None:
                self.cancel.check()
            clip = self.synthesize_segment(seg, i, language_code, out_dir)
            if clip is not None:
                clips.append(clip)

        if not clips:
            raise NoAudioGenerated(
                "No audio clips were generated successfully. "
                "Please check the transcript and try again."
            )

        substituted = [c.sequence_index for c in clips if c.kind == SILENCE]
        logger.info("Successfully generated %d audio clips", len(clips))
        if substituted:
            logger.warning(
                f"TTS completed with {len(substituted)} failed segments "
                f"(rendered as silence): {substituted}"
            )
            return StageOutcome.degrade(
                clips, f"{SYNTHESIS_DEGRADED}: {len(substituted)} segment(s) rendered as silence"
            )
        return StageOutcome.success(clips)
