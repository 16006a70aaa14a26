"""Data models for the MindMap pipeline."""

from .schemas import (
    EmotionScoreMap,
    LocalAudioMetrics,
    ClinicalProxies,
    SessionDatum,
    TrajectoryPoint,
    EmotionShare,
    EmotionInsights,
    AnalysisStatus,
    AnalysisResult,
    SessionSnapshot,
)

__all__ = [
    "EmotionScoreMap",
    "LocalAudioMetrics",
    "ClinicalProxies",
    "SessionDatum",
    "TrajectoryPoint",
    "EmotionShare",
    "EmotionInsights",
    "AnalysisStatus",
    "AnalysisResult",
    "SessionSnapshot",
]
