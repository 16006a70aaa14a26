"""Utility functions."""

from .audio import load_audio, load_audio_bytes, validate_upload, guess_mime_type

__all__ = [
    "load_audio",
    "load_audio_bytes",
    "validate_upload",
    "guess_mime_type",
]
