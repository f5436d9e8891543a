"""
Error taxonomy for the dubbing pipeline.

Terminal errors derive from DubbingError and abort the job. Per-call errors
(TranslationServiceError, SynthesisError) are absorbed by their stage and only
show up as degradation reasons on the final result. TranscriptSourceError tells the
transcript fetcher whether another language is worth trying.
"""

TRANSLATION_DEGRADED = "TranslationDegraded"
SYNTHESIS_DEGRADED = "SynthesisDegraded"
ASSEMBLY_DEGRADED = "AssemblyDegraded"


class DubbingError(Exception):
    """Base class for terminal pipeline failures."""

    def __init__(self, message: str, suggestions: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestions = list(suggestions or [])

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "details": self.message,
            "suggestions": self.suggestions,
        }


class InputError(DubbingError):
    """Malformed video identifier, job id or request."""


class ConfigError(DubbingError):
    """Invalid pipeline configuration detected at startup."""


class TranscriptUnavailable(DubbingError):
    """No transcript could be fetched after every retry and fallback."""

    def __init__(
        self,
        message: str,
        reason: str = "unknown",
        last_error: str | None = None,
        suggestions: list[str] | None = None,
    ) -> None:
        super().__init__(message, suggestions)
        self.reason = reason
        self.last_error = last_error

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["reason"] = self.reason
        return data


class NoAudioGenerated(DubbingError):
    """Every segment was dropped during speech synthesis."""


class AlignmentFailed(DubbingError):
    """The aligned clip sequence came out empty."""


class VideoAcquisitionFailed(DubbingError):
    """No downloader could fetch the source video."""


class MuxFailed(DubbingError):
    """ffmpeg could not merge the dubbed audio onto the video."""


class JobCancelled(DubbingError):
    """The job's cancel token fired before it finished."""


class TranslationServiceError(Exception):
    """A single translation call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SynthesisError(Exception):
    """A single speech synthesis call failed."""


class TranscriptSourceError(Exception):
    """A transcript source call failed for a known reason.

    `reason` uses the same vocabulary as TranscriptUnavailable; only
    ``no_captions`` is worth retrying in another language.
    """

    def __init__(self, message: str, reason: str = "unknown") -> None:
        super().__init__(message)
        self.reason = reason

    @property
    def missing(self) -> bool:
        return self.reason == "no_captions"
