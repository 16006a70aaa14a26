"""Error taxonomy for audio loading and external emotion analysis.

Every error carries a ``user_message`` that is safe to show in the
dashboard; ``str(error)`` keeps the technical detail for the console.
"""

from typing import Optional


class MindMapError(Exception):
    """Base class for all pipeline errors."""

    default_message = "Analysis failed."

    def __init__(self, detail: str = "", user_message: Optional[str] = None):
        super().__init__(detail or self.default_message)
        self.user_message = user_message or self.default_message


class AudioDecodeError(MindMapError):
    """The uploaded file could not be decoded. Fatal to the load step."""
    default_message = "Could not decode the audio file."


class UnsupportedAudioError(MindMapError):
    """The upload was rejected before decoding (type or size)."""
    default_message = "Please select an audio file."


class ConfigurationError(MindMapError):
    """Missing or invalid API credentials. Never retried."""
    default_message = "Hume API key is not configured on the server."


class SubmissionError(MindMapError):
    """The inference service rejected the job creation request."""
    default_message = "Failed to start the emotion analysis job."


class PollingTimeout(MindMapError):
    """The job never reached a terminal state within the attempt budget."""
    default_message = "Analysis took too long. Please try again."


class JobFailed(MindMapError):
    """The job reached a terminal failure state."""
    default_message = "Emotion analysis failed."


class ExtractionEmpty(MindMapError):
    """The job completed but no usable emotion data was found."""
    default_message = "No emotions detected in audio. Try a recording with clearer speech."


# Known upstream failure reasons and the message shown instead.
FRIENDLY_FAILURES = (
    ("transcribe", "No clear speech detected in the audio. Try a recording with clearer speech."),
    ("no speech", "No clear speech detected in the audio. Try a recording with clearer speech."),
    ("too short", "The recording is too short to analyze."),
    ("unsupported", "This audio format is not supported by the analysis service."),
    ("quota", "The analysis service quota has been exceeded. Please try again later."),
)


def friendly_failure_message(reason: Optional[str]) -> str:
    """Translate an upstream failure reason into a user-facing message."""
    if not reason:
        return JobFailed.default_message
    lowered = reason.lower()
    for pattern, message in FRIENDLY_FAILURES:
        if pattern in lowered:
            return message
    return f"Emotion analysis failed: {reason}"
