"""
Translation of transcript segments through the RapidAPI Google Translator.
"""

import logging
from typing import Protocol

import httpx

from .errors import TranslationServiceError
from .models import TranscriptSegment, TranslatedSegment
from .pacing import RequestPacer

logger = logging.getLogger("ytdub")

RAPIDAPI_HOST = "google-translator9.p.rapidapi.com"
MIN_TEXT_CHARS = 2

LANGUAGE_CODES = {
    "spanish": "es",
    "french": "fr",
    "german": "de",
    "italian": "it",
    "portuguese": "pt",
    "russian": "ru",
    "japanese": "ja",
    "korean": "ko",
    "chinese": "zh-CN",
    "chinese simplified": "zh-CN",
    "chinese traditional": "zh-TW",
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

_STATUS_MESSAGES = {
    401: "Invalid RapidAPI key. Please check your credentials.",
    403: "RapidAPI access forbidden. Please check your subscription and permissions.",
    429: "RapidAPI rate limit exceeded. Please check your subscription plan.",
}


class Translator(Protocol):
    def translate(self, text: str, target_code: str) -> str: ...


def get_translation_language_code(language: str) -> str:
    """Map a language name to the translator's code; unknown names pass through lower-cased."""
    key = (language or "").strip().lower()
    return LANGUAGE_CODES.get(key, key)


def needs_translation(text: str | None) -> bool:
    """Texts shorter than two characters are never translated or spoken."""
    return bool(text) and len(text.strip()) >= MIN_TEXT_CHARS


class RapidApiTranslator:
    """Google Translator v2 endpoint on RapidAPI."""

    def __init__(
        self,
        api_key: str,
        host: str = RAPIDAPI_HOST,
        url: str | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            msg = "RapidAPI Translator not initialized. Please check your API key."
            raise TranslationServiceError(msg)
        self.api_key = api_key
        self.host = host
        self.url = url or f"https://{host}/v2"
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout)

    def translate(self, text: str, target_code: str) -> str:
        """Translate one text; returns the input when the response has an unexpected shape."""
        headers = {
            "x-rapidapi-key": self.api_key,
            "x-rapidapi-host": self.host,
            "Content-Type": "application/json",
        }
        payload = {"q": text.strip(), "source": "auto", "target": target_code, "format": "text"}
        try:
            r = self.client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise TranslationServiceError(f"Translation request failed: {e}") from e

        if r.status_code in _STATUS_MESSAGES:
            raise TranslationServiceError(_STATUS_MESSAGES[r.status_code], r.status_code)
        if r.status_code >= 400:
            raise TranslationServiceError(
                f"Translation failed: {r.status_code} {r.text[:300]}", r.status_code
            )

        try:
            translations = r.json()["data"]["translations"]
            translated = translations[0].get("translatedText")
        except (ValueError, KeyError, IndexError, TypeError, AttributeError):
            logger.warning("Unexpected response format from RapidAPI, using original text")
            return text
        return translated or text

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "RapidApiTranslator":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class TranslationBatcher:
    """Translate segments in batches, one call at a time, with paced requests."""

    def __init__(
        self,
        translator: Translator | None,
        pacer: RequestPacer | None = None,
        batch_size: int = 10,
    ) -> None:
        self.translator = translator
        self.pacer = pacer or RequestPacer()
        self.batch_size = max(1, batch_size)

    def translate_segments(
        self, segments: list[TranscriptSegment], target_language: str
    ) -> list[TranslatedSegment]:
        """Return one TranslatedSegment per input segment, in the same order."""
        if self.translator is None:
            logger.error("RapidAPI Translator not initialized; keeping original text")
            return [TranslatedSegment.verbatim(s) for s in segments]

        target_code = get_translation_language_code(target_language)
        total_batches = (len(segments) + self.batch_size - 1) // self.batch_size
        results: list[TranslatedSegment] = []

        for start in range(0, len(segments), self.batch_size):
            batch = segments[start : start + self.batch_size]
            logger.info(
                "Processing translation batch %d/%d", start // self.batch_size + 1, total_batches
            )
            for seg in batch:
                results.append(self._translate_one(seg, target_code))
            if start + self.batch_size < len(segments):
                self.pacer.between_batches()

        return results

    def _translate_one(self, seg: TranscriptSegment, target_code: str) -> TranslatedSegment:
        item = TranslatedSegment.verbatim(seg)
        if not needs_translation(seg.text):
            return item
        try:
            item.translated_text = self.translator.translate(seg.text, target_code) or seg.text
        except Exception as e:
            logger.error("Translation failed for item: %r: %s", seg.text[:50], e)
            self.pacer.after_failure()
            return item
        self.pacer.after_success()
        return item


def count_translation_errors(segments: list[TranslatedSegment]) -> int:
    """Segments that needed a translation but still carry their original text."""
    return sum(1 for s in segments if s.translated_text == s.text and needs_translation(s.text))
