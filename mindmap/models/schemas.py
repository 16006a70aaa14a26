"""Pydantic schemas for data models."""

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator
import math


# Emotion label -> score between 0 and 1. Free-form keys; "arousal" and
# "valence" are reserved meta keys.
EmotionScoreMap = Dict[str, float]

RESERVED_KEYS = ("arousal", "valence")


def is_reserved_key(label: str) -> bool:
    return label.lower() in RESERVED_KEYS


class LocalAudioMetrics(BaseModel):
    """One reading of the local DSP collaborator. Any field may be missing."""
    volume_db: Optional[float] = Field(default=None, description="RMS level in dBFS, None when silent")
    pitch_hz: Optional[float] = Field(default=None, description="Pitch estimate in Hz, None when unvoiced")
    jitter: Optional[float] = Field(default=None, description="Fractional pitch change vs previous frame")
    energy: Optional[float] = Field(default=None, description="Raw RMS amplitude")

    @field_validator("volume_db", "pitch_hz", "jitter", "energy", mode="before")
    @classmethod
    def drop_non_finite(cls, v):
        if isinstance(v, float) and not math.isfinite(v):
            return None
        return v


class ClinicalProxies(BaseModel):
    """Heuristic, non-diagnostic indicators on a 0-100 scale."""
    depression_risk: Optional[float] = Field(default=None, ge=0, le=100)
    anxiety_score: Optional[float] = Field(default=None, ge=0, le=100)
    mania_score: Optional[float] = Field(default=None, ge=0, le=100)
    energy_level: Optional[float] = Field(default=None, ge=0, le=100)


class SessionDatum(BaseModel):
    """A single sample of the session."""
    id: str
    timestamp: float = Field(description="Wall-clock creation time (epoch ms)")
    playback_time: float = Field(description="Playback position in seconds")
    local: LocalAudioMetrics
    hume: Optional[EmotionScoreMap] = None
    clinical: ClinicalProxies
    valence: Optional[float] = Field(default=None, ge=0, le=100)
    dominant_emotion: Optional[str] = None

    @property
    def has_scores(self) -> bool:
        return bool(self.hume)


class TrajectoryPoint(BaseModel):
    """Average energy/valence over one time bucket."""
    time_bucket: int
    energy: Optional[float] = None
    valence: Optional[float] = None


class EmotionShare(BaseModel):
    """An emotion and its share of total emotional expression."""
    name: str
    raw_score: float
    percent: float = Field(description="Share of the summed scores, 0-100")


class EmotionInsights(BaseModel):
    """Summary of an emotion score map for display."""
    top_emotions: List[EmotionShare]
    sentiment: float = Field(ge=-1, le=1, description="-1 all negative, +1 all positive")
    mood_label: str
    emotional_energy: float = Field(ge=0, le=1)
    active_emotions: int
    positive_ratio: float = Field(ge=0, le=1)
    key_observation: str
    observation_tone: str
    voice_stability: Optional[float] = Field(default=None, ge=0, le=100)
    voice_stability_label: Optional[str] = None


class AnalysisStatus(BaseModel):
    """State of the external analysis for the current session."""
    state: Literal["idle", "analyzing", "complete", "error"] = "idle"
    message: Optional[str] = None
    generation: int = 0


class AnalysisResult(BaseModel):
    """Response of a one-shot analysis."""
    raw_scores: EmotionScoreMap
    clinical: ClinicalProxies
    valence: Optional[float] = None
    dominant_emotion: Optional[str] = None
    insights: Optional[EmotionInsights] = None


class SessionSnapshot(BaseModel):
    """Everything the display collaborator needs for one refresh."""
    file_name: Optional[str] = None
    duration_seconds: float = 0.0
    playback_time: float = 0.0
    is_playing: bool = False
    is_collecting: bool = False
    status: AnalysisStatus = Field(default_factory=AnalysisStatus)
    current_point: Optional[SessionDatum] = None
    samples: List[SessionDatum] = Field(default_factory=list)
    trajectory: List[TrajectoryPoint] = Field(default_factory=list)
    insights: Optional[EmotionInsights] = None
