"""Feature extraction modules."""

from .local_features import LocalFeatureExtractor, PlaybackClock
from .hume_client import HumeJobClient
from .hume_parsing import extract_emotion_scores

__all__ = [
    "LocalFeatureExtractor",
    "PlaybackClock",
    "HumeJobClient",
    "extract_emotion_scores",
]
