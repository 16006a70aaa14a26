"""Local acoustic features (volume, pitch, jitter, energy) and playback clock."""

import math
import time
from typing import Callable, Dict, List, Optional

import numpy as np
import librosa

from ..config import ExtractorConfig
from ..models.schemas import LocalAudioMetrics


class LocalFeatureExtractor:
    """
    Compute one LocalAudioMetrics reading per audio frame.

    The extractor owns its state: ``init`` analyses a waveform and keeps the
    per-frame readings, ``teardown`` releases them. Jitter is measured
    against the last voiced pitch, so an unvoiced frame neither produces a
    jitter value nor resets the reference.
    """

    def __init__(self, config: Optional[ExtractorConfig] = None):
        self.config = config or ExtractorConfig()
        self.frames: List[LocalAudioMetrics] = []
        self.sample_rate: Optional[int] = None
        self.duration: float = 0.0

    @property
    def frame_duration(self) -> float:
        if not self.sample_rate:
            return 0.0
        return self.config.frame_size / self.sample_rate

    @property
    def is_initialized(self) -> bool:
        return self.sample_rate is not None

    def init(self, audio: np.ndarray, sample_rate: int) -> List[LocalAudioMetrics]:
        """Analyse a mono waveform and keep its per-frame readings."""
        self.frames = self.analyze(audio, sample_rate)
        self.sample_rate = sample_rate
        self.duration = len(audio) / sample_rate if sample_rate else 0.0
        return self.frames

    def teardown(self) -> None:
        self.frames = []
        self.sample_rate = None
        self.duration = 0.0

    def _framed(self, audio: np.ndarray) -> np.ndarray:
        """Zero-pad to a whole number of frames."""
        frame_size = self.config.frame_size
        n_frames = max(1, math.ceil(len(audio) / frame_size))
        padded = np.zeros(n_frames * frame_size, dtype=np.float32)
        padded[:len(audio)] = audio
        return padded

    def analyze(self, audio: np.ndarray, sample_rate: int) -> List[LocalAudioMetrics]:
        """
        Compute frame-wise metrics.

        Args:
            audio: Mono waveform in [-1, 1]
            sample_rate: Sample rate

        Returns:
            One LocalAudioMetrics per frame_size samples
        """
        audio = np.asarray(audio, dtype=np.float32)
        if audio.ndim > 1:
            audio = librosa.to_mono(audio)
        if len(audio) == 0:
            return []

        frame_size = self.config.frame_size
        padded = self._framed(audio)

        rms = librosa.feature.rms(
            y=padded,
            frame_length=frame_size,
            hop_length=frame_size,
            center=False,
        )[0]

        f0 = librosa.yin(
            padded,
            fmin=self.config.min_pitch,
            fmax=min(self.config.max_pitch, sample_rate / 2),
            sr=sample_rate,
            frame_length=frame_size,
            hop_length=frame_size,
            center=False,
        )

        readings = []
        last_pitch: Optional[float] = None
        for i, energy in enumerate(rms):
            energy = float(energy)
            pitch = float(f0[i]) if i < len(f0) else math.nan
            if energy < self.config.voicing_rms or not math.isfinite(pitch) or pitch <= 0:
                pitch = None

            jitter = None
            if pitch is not None and last_pitch:
                jitter = abs(pitch - last_pitch) / last_pitch
            if pitch is not None:
                last_pitch = pitch

            readings.append(
                LocalAudioMetrics(
                    volume_db=20 * math.log10(energy) if energy > 0 else None,
                    pitch_hz=pitch,
                    jitter=jitter,
                    energy=energy,
                )
            )
        return readings

    def summary(self) -> Dict[str, float]:
        """Aggregate statistics of the analysed frames."""
        pitches = np.array([f.pitch_hz for f in self.frames if f.pitch_hz is not None])
        energies = np.array([f.energy for f in self.frames if f.energy is not None])
        jitters = np.array([f.jitter for f in self.frames if f.jitter is not None])
        volumes = np.array([f.volume_db for f in self.frames if f.volume_db is not None])

        return {
            "duration_seconds": round(self.duration, 2),
            "frames": len(self.frames),
            "voiced_ratio": round(len(pitches) / len(self.frames), 3) if self.frames else 0.0,
            "pitch_mean_hz": round(float(np.mean(pitches)), 1) if len(pitches) else 0.0,
            "pitch_range_hz": round(float(np.max(pitches) - np.min(pitches)), 1) if len(pitches) else 0.0,
            "energy_mean": round(float(np.mean(energies)), 4) if len(energies) else 0.0,
            "volume_mean_db": round(float(np.mean(volumes)), 1) if len(volumes) else 0.0,
            "jitter_mean": round(float(np.mean(jitters)), 4) if len(jitters) else 0.0,
        }


class PlaybackClock:
    """
    Wall-clock playback over the extractor's frames.

    Stands in for the audio output device: the position advances with real
    time (scaled by ``speed``) while playing and ``latest_metrics`` returns
    the reading of the frame under the play head.
    """

    def __init__(
        self,
        extractor: LocalFeatureExtractor,
        speed: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not speed > 0:
            raise ValueError(f"Playback speed must be positive, got {speed}")
        self.extractor = extractor
        self.speed = speed
        self._clock = clock
        self._position = 0.0
        self._started_at: Optional[float] = None

    @property
    def duration(self) -> float:
        return self.extractor.duration

    @property
    def current_time(self) -> float:
        position = self._position
        if self._started_at is not None:
            position += (self._clock() - self._started_at) * self.speed
        return min(position, self.duration)

    @property
    def finished(self) -> bool:
        return self.duration > 0 and self.current_time >= self.duration

    @property
    def is_playing(self) -> bool:
        return self._started_at is not None and not self.finished

    def start(self) -> None:
        self._position = 0.0
        self._started_at = self._clock()

    def pause(self) -> None:
        if self._started_at is None:
            return
        self._position = self.current_time
        self._started_at = None

    def resume(self) -> None:
        if self._started_at is not None or not self.extractor.is_initialized:
            return
        if self.finished:
            self._position = 0.0
        self._started_at = self._clock()

    def stop(self) -> None:
        self._position = 0.0
        self._started_at = None

    def latest_metrics(self) -> LocalAudioMetrics:
        frames = self.extractor.frames
        if not frames or not self.extractor.frame_duration:
            return LocalAudioMetrics()
        index = int(self.current_time / self.extractor.frame_duration)
        return frames[min(max(index, 0), len(frames) - 1)]
