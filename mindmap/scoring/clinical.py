"""Clinical proxy scoring from emotion score maps.

Maps a Hume prosody score map (plus local RMS energy) onto four heuristic
indicators, a valence score and a dominant emotion label:

1. Depression risk - Beck Depression Inventory emotion correlates
   (sadness, fatigue, anhedonia, guilt) buffered by positive affect.
2. Anxiety score - State-Trait Anxiety Inventory / Hamilton correlates
   (fear, worry, tension).
3. Mania / activation - Young Mania Rating Scale correlates (elevated mood,
   irritability, goal-directed activity) dampened by calm and low-energy affect.
4. Energy / arousal - Russell's Circumplex arousal dimension, blended with
   local audio energy when it is available.

These are proxies, not diagnostic instruments. The weighted variant of the
formulas is used; constants are kept as published in the dashboard.
All functions are pure.
"""

import math
from typing import Dict, List, Optional, Tuple

from ..models.schemas import ClinicalProxies, EmotionScoreMap, is_reserved_key


Weights = List[Tuple[str, float]]


# ── Depression risk ─────────────────────────────────────────────────────

DEPRESSION_FACTORS: Weights = [
    ("Sadness", 3.0),           # primary indicator
    ("Tiredness", 2.0),         # fatigue / anergia
    ("Boredom", 1.5),           # anhedonia proxy
    ("Disappointment", 1.5),    # hopelessness proxy
    ("Guilt", 1.0),
    ("Shame", 1.0),
    ("Contemplation", 0.5),     # rumination proxy
]
DEPRESSION_PROTECTIVE: Weights = [
    ("Joy", 2.0),
    ("Interest", 1.5),
    ("Excitement", 1.0),
    ("Amusement", 1.0),
]
DEPRESSION_PROTECTIVE_WEIGHT = 0.4

# ── Anxiety ─────────────────────────────────────────────────────────────

ANXIETY_FACTORS: Weights = [
    ("Anxiety", 4.0),
    ("Fear", 3.0),
    ("Distress", 2.5),
    ("Horror", 2.0),
    ("Confusion", 1.5),
    ("Awkwardness", 1.0),       # social anxiety proxy
    ("Surprise", 0.5),          # startle / hypervigilance
]

# ── Mania / activation ──────────────────────────────────────────────────

MANIA_FACTORS: Weights = [
    ("Excitement", 3.0),
    ("Triumph", 2.5),           # grandiosity proxy
    ("Anger", 2.0),             # irritability
    ("Amusement", 1.5),
    ("Determination", 1.5),
    ("Pride", 1.0),
    ("Desire", 1.0),
]
MANIA_DAMPENING: Weights = [
    ("Calmness", 2.0),
    ("Sadness", 1.5),
    ("Tiredness", 1.5),
]
MANIA_DAMPENING_WEIGHT = 0.3

# ── Energy / arousal ────────────────────────────────────────────────────

HIGH_AROUSAL: Weights = [
    ("Excitement", 3.0),
    ("Interest", 2.5),
    ("Anger", 2.0),
    ("Fear", 2.0),
    ("Determination", 1.5),
    ("Surprise", 1.0),
]
LOW_AROUSAL: Weights = [
    ("Tiredness", 3.0),
    ("Boredom", 2.5),
    ("Calmness", 2.0),
    ("Sadness", 1.5),
    ("Contemplation", 1.0),
]
LOW_AROUSAL_WEIGHT = 0.5
AROUSAL_SHIFT = 0.5
HUME_ENERGY_SHARE = 0.6
LOCAL_ENERGY_SHARE = 0.4
LOCAL_ENERGY_SCALE = 5.0
# Local-only fallback when no emotion scores are available yet
LOCAL_ONLY_ENERGY_SCALE = 300.0

# ── Valence ─────────────────────────────────────────────────────────────

POSITIVE_VALENCE: Weights = [
    ("Joy", 3.0),
    ("Amusement", 2.0),
    ("Love", 2.0),
    ("Interest", 1.5),
    ("Satisfaction", 1.5),
    ("Admiration", 1.0),
    ("Calmness", 1.0),
    ("Pride", 1.0),
]
NEGATIVE_VALENCE: Weights = [
    ("Sadness", 3.0),
    ("Anger", 2.5),
    ("Fear", 2.0),
    ("Disgust", 2.0),
    ("Distress", 1.5),
    ("Anxiety", 1.5),
    ("Shame", 1.0),
]


# ── Helpers ─────────────────────────────────────────────────────────────

def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def clamp100(value: float) -> float:
    """Clamp to [0, 100]; non-finite values collapse to 0."""
    if not _is_number(value):
        return 0.0
    return max(0.0, min(100.0, float(value)))


def get_score(scores: EmotionScoreMap, *labels: str) -> float:
    """Look up the first label present, exact match first, then case-insensitive.

    Missing labels score 0 so partial label coverage degrades gracefully.
    """
    for label in labels:
        value = scores.get(label)
        if _is_number(value):
            return float(value)

        lowered = label.lower()
        for key, value in scores.items():
            if key.lower() == lowered and _is_number(value):
                return float(value)
    return 0.0


def weighted_avg(values: List[Tuple[float, float]]) -> float:
    """Weighted average of (score, weight) pairs; zero total weight gives 0."""
    total_weight = sum(weight for _, weight in values)
    if total_weight == 0:
        return 0.0
    return sum(score * weight for score, weight in values) / total_weight


def _weighted_score(scores: EmotionScoreMap, weights: Weights) -> float:
    return weighted_avg([(get_score(scores, label), weight) for label, weight in weights])


def _has_scores(scores: Optional[EmotionScoreMap]) -> bool:
    return bool(scores)


# ── Public API ──────────────────────────────────────────────────────────

def map_to_clinical_proxies(
    scores: Optional[EmotionScoreMap],
    local_energy: Optional[float],
) -> ClinicalProxies:
    """
    Map emotion scores to clinical proxy metrics on a 0-100 scale.

    Args:
        scores: Emotion label -> score map, may be None or empty
        local_energy: Raw RMS energy from the local feature extractor

    Returns:
        ClinicalProxies; without scores only energy_level is derived
    """
    if not _is_number(local_energy):
        local_energy = None

    if not _has_scores(scores):
        return ClinicalProxies(
            depression_risk=None,
            anxiety_score=None,
            mania_score=None,
            energy_level=(
                clamp100(local_energy * LOCAL_ONLY_ENERGY_SCALE)
                if local_energy is not None else None
            ),
        )

    depression_factors = _weighted_score(scores, DEPRESSION_FACTORS)
    depression_protective = _weighted_score(scores, DEPRESSION_PROTECTIVE)
    depression_risk = clamp100(
        (depression_factors - depression_protective * DEPRESSION_PROTECTIVE_WEIGHT) * 100
    )

    anxiety_score = clamp100(_weighted_score(scores, ANXIETY_FACTORS) * 100)

    mania_factors = _weighted_score(scores, MANIA_FACTORS)
    mania_dampening = _weighted_score(scores, MANIA_DAMPENING)
    mania_score = clamp100((mania_factors - mania_dampening * MANIA_DAMPENING_WEIGHT) * 100)

    high_arousal = _weighted_score(scores, HIGH_AROUSAL)
    low_arousal = _weighted_score(scores, LOW_AROUSAL)
    hume_energy = high_arousal - low_arousal * LOW_AROUSAL_WEIGHT + AROUSAL_SHIFT

    if local_energy is not None:
        scaled_local = min(1.0, local_energy * LOCAL_ENERGY_SCALE)
        energy_level = clamp100(
            (hume_energy * HUME_ENERGY_SHARE + scaled_local * LOCAL_ENERGY_SHARE) * 100
        )
    else:
        energy_level = clamp100(hume_energy * 100)

    return ClinicalProxies(
        depression_risk=depression_risk,
        anxiety_score=anxiety_score,
        mania_score=mania_score,
        energy_level=energy_level,
    )


def compute_valence(scores: Optional[EmotionScoreMap]) -> Optional[float]:
    """Valence on 0-100 where 50 is neutral; None only without scores."""
    if not _has_scores(scores):
        return None

    direct = get_score(scores, "Valence", "valence")
    if direct > 0:
        return clamp100(direct * 100)

    positive = _weighted_score(scores, POSITIVE_VALENCE)
    negative = _weighted_score(scores, NEGATIVE_VALENCE)
    return clamp100(50 + (positive - negative) * 50)


def extract_dominant_emotion(scores: Optional[EmotionScoreMap]) -> Optional[str]:
    """Return the highest scoring label; reserved keys skipped, first wins on ties."""
    if not _has_scores(scores):
        return None

    best_label: Optional[str] = None
    best_score = -math.inf
    for label, value in scores.items():
        if is_reserved_key(label):
            continue
        if not _is_number(value):
            continue
        if value > best_score:
            best_score = value
            best_label = label

    return best_label


def score_emotions(
    scores: Optional[EmotionScoreMap],
    local_energy: Optional[float],
) -> Tuple[ClinicalProxies, Optional[float], Optional[str]]:
    """Convenience wrapper returning (clinical, valence, dominant_emotion)."""
    return (
        map_to_clinical_proxies(scores, local_energy),
        compute_valence(scores),
        extract_dominant_emotion(scores),
    )


def clean_scores(scores: Optional[Dict[str, object]]) -> EmotionScoreMap:
    """Keep only finite numeric entries of a score map."""
    if not scores:
        return {}
    return {str(k): float(v) for k, v in scores.items() if _is_number(v)}
