"""Audio utility functions."""

import io
import os
import tempfile
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
import librosa

from ..config import UploadConfig
from ..errors import AudioDecodeError, UnsupportedAudioError


def load_audio(
    audio_path: Union[str, Path],
    target_sr: int = 22050,
    mono: bool = True,
) -> Tuple[np.ndarray, int]:
    """
    Load an audio file.

    Args:
        audio_path: Path to audio file
        target_sr: Target sample rate
        mono: Convert to mono

    Returns:
        Tuple of (audio array, sample rate)
    """
    try:
        audio, sr = librosa.load(audio_path, sr=target_sr, mono=mono)
    except Exception as e:
        raise AudioDecodeError(f"Could not decode {audio_path}: {e}") from e
    return audio, sr


def load_audio_bytes(
    data: bytes,
    filename: str = "audio.wav",
    target_sr: int = 22050,
) -> Tuple[np.ndarray, int]:
    """
    Decode an in-memory upload.

    soundfile handles WAV/FLAC/OGG/MP3 straight from memory; other
    containers (m4a, webm) need a real file for the audioread backend.
    """
    if not data:
        raise AudioDecodeError("Empty audio payload")

    try:
        audio, sr = librosa.load(io.BytesIO(data), sr=target_sr, mono=True)
    except Exception:
        suffix = Path(filename).suffix or ".wav"
        with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
            tmp.write(data)
            tmp_path = tmp.name
        try:
            audio, sr = load_audio(tmp_path, target_sr=target_sr)
        finally:
            os.unlink(tmp_path)

    if audio.size == 0:
        raise AudioDecodeError(f"{filename} contains no audio samples")
    return audio, sr


def validate_upload(
    filename: Optional[str],
    mime_type: Optional[str],
    size: int,
    config: Optional[UploadConfig] = None,
) -> None:
    """Reject uploads that are not audio or exceed the size limit."""
    config = config or UploadConfig()

    ext = Path(filename or "").suffix.lower()
    is_audio_mime = bool(mime_type) and mime_type.startswith("audio/")
    if not is_audio_mime and ext not in config.allowed_extensions:
        raise UnsupportedAudioError(
            f"Unsupported upload {filename!r} ({mime_type})",
            user_message="Please select an audio file",
        )

    if size > config.max_bytes:
        raise UnsupportedAudioError(
            f"Upload of {size} bytes exceeds {config.max_bytes}",
            user_message=f"File size must be under {config.max_bytes // (1024 * 1024)}MB",
        )


def guess_mime_type(filename: str) -> str:
    """Content type for the file part of the job submission."""
    return {
        ".wav": "audio/wav",
        ".mp3": "audio/mpeg",
        ".m4a": "audio/mp4",
        ".flac": "audio/flac",
        ".ogg": "audio/ogg",
        ".webm": "audio/webm",
    }.get(Path(filename).suffix.lower(), "application/octet-stream")
