"""Clinical proxy scoring and emotional insights."""

from .clinical import (
    map_to_clinical_proxies,
    compute_valence,
    extract_dominant_emotion,
    score_emotions,
)
from .insights import compute_insights

__all__ = [
    "map_to_clinical_proxies",
    "compute_valence",
    "extract_dominant_emotion",
    "score_emotions",
    "compute_insights",
]
