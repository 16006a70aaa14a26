"""Emotional insight summary: distribution, sentiment balance and observations."""

from typing import Optional, Tuple

from ..models.schemas import EmotionInsights, EmotionScoreMap, EmotionShare, is_reserved_key
from .clinical import clean_scores


POSITIVE_EMOTIONS = {
    "Joy", "Amusement", "Excitement", "Interest", "Satisfaction",
    "Love", "Admiration", "Calmness", "Relief", "Pride", "Triumph",
}
NEGATIVE_EMOTIONS = {
    "Sadness", "Anxiety", "Fear", "Anger", "Disgust", "Distress",
    "Disappointment", "Shame", "Guilt", "Horror", "Pain",
}
HIGH_ENERGY_EMOTIONS = {
    "Excitement", "Anger", "Fear", "Amusement", "Surprise", "Triumph",
}

TOP_N = 5
ACTIVE_SHARE_PERCENT = 3.0


def mood_label(sentiment: float) -> str:
    """Label for a sentiment in [-1, 1]."""
    if sentiment > 0.5:
        return "Very Positive"
    if sentiment > 0.2:
        return "Positive"
    if sentiment > -0.2:
        return "Neutral"
    if sentiment > -0.5:
        return "Negative"
    return "Very Negative"


def voice_stability(jitter: Optional[float]) -> Tuple[float, str]:
    """Stability = (1 - jitter) on 0-100, with a coarse label."""
    jitter = jitter or 0.0
    stability = (1 - max(0.0, min(1.0, jitter))) * 100
    if stability > 80:
        return stability, "Very Stable"
    if stability > 50:
        return stability, "Moderate"
    return stability, "Variable"


def _key_observation(sentiment: float, energy: float, dominant: EmotionShare) -> Tuple[str, str]:
    share = round(dominant.percent)
    if sentiment > 0.3 and energy > 0.2:
        return (
            f"High positive energy detected. {dominant.name} is dominant at {share}% of emotional expression.",
            "positive",
        )
    if sentiment > 0.15:
        return (
            f"Positive emotional tone. {dominant.name} leads at {share}% of the emotional mix.",
            "positive",
        )
    if sentiment < -0.3:
        return (
            f"Elevated stress indicators detected. Primary: {dominant.name} ({share}%). "
            "Consider a wellness check-in.",
            "warning",
        )
    if energy > 0.25:
        return (
            f"High emotional intensity. {dominant.name} accounts for {share}% of expression.",
            "intense",
        )
    return (
        f"Balanced emotional state. {dominant.name} is most prominent at {share}%.",
        "neutral",
    )


def compute_insights(
    scores: Optional[EmotionScoreMap],
    jitter: Optional[float] = None,
) -> Optional[EmotionInsights]:
    """
    Summarize an emotion score map for display.

    Args:
        scores: Emotion label -> score map
        jitter: Latest local jitter reading, for the voice stability badge

    Returns:
        EmotionInsights, or None when there are no positive emotion scores
    """
    entries = [
        (name, value)
        for name, value in clean_scores(scores).items()
        if not is_reserved_key(name) and value > 0
    ]
    if not entries:
        return None

    # Stable sort keeps input order among equal scores
    entries.sort(key=lambda e: e[1], reverse=True)
    total = sum(value for _, value in entries)
    shares = [
        EmotionShare(name=name, raw_score=value, percent=(value / total) * 100)
        for name, value in entries
    ]

    positive = sum(s.percent for s in shares if s.name in POSITIVE_EMOTIONS)
    negative = sum(s.percent for s in shares if s.name in NEGATIVE_EMOTIONS)
    pos_neg = positive + negative
    sentiment = (positive - negative) / pos_neg if pos_neg > 0 else 0.0
    positive_ratio = positive / pos_neg if pos_neg > 0 else 0.5

    energy = sum(s.percent for s in shares if s.name in HIGH_ENERGY_EMOTIONS) / 100
    energy = max(0.0, min(1.0, energy))

    observation, tone = _key_observation(sentiment, energy, shares[0])

    stability = label = None
    if jitter is not None:
        stability, label = voice_stability(jitter)

    return EmotionInsights(
        top_emotions=shares[:TOP_N],
        sentiment=max(-1.0, min(1.0, sentiment)),
        mood_label=mood_label(sentiment),
        emotional_energy=energy,
        active_emotions=sum(1 for s in shares if s.percent >= ACTIVE_SHARE_PERCENT),
        positive_ratio=max(0.0, min(1.0, positive_ratio)),
        key_observation=observation,
        observation_tone=tone,
        voice_stability=stability,
        voice_stability_label=label,
    )
