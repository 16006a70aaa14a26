"""Tests for the emotional insight summary."""

import pytest


class TestInsights:
    """Tests for compute_insights."""

    def test_no_scores(self):
        """Test insights without usable scores."""
        from mindmap.scoring.insights import compute_insights

        assert compute_insights(None) is None
        assert compute_insights({}) is None
        assert compute_insights({"Joy": 0.0, "arousal": 0.8}) is None

    def test_distribution(self):
        """Test the top emotion distribution."""
        from mindmap.scoring.insights import compute_insights

        insights = compute_insights({"Joy": 0.6, "Sadness": 0.2, "Interest": 0.2, "valence": 0.9})
        names = [e.name for e in insights.top_emotions]
        assert names == ["Joy", "Sadness", "Interest"]
        assert sum(e.percent for e in insights.top_emotions) == pytest.approx(100.0)
        assert insights.top_emotions[0].percent == pytest.approx(60.0)
        assert insights.active_emotions == 3

    def test_top_five_only(self):
        """Test that only five emotions are kept."""
        from mindmap.scoring.insights import compute_insights

        scores = {f"Emotion{i}": 0.1 * (i + 1) for i in range(8)}
        insights = compute_insights(scores)
        assert len(insights.top_emotions) == 5
        assert insights.top_emotions[0].name == "Emotion7"

    def test_positive_sentiment(self):
        """Test a positive recording."""
        from mindmap.scoring.insights import compute_insights

        insights = compute_insights({"Joy": 0.8, "Excitement": 0.6, "Sadness": 0.05})
        assert insights.sentiment > 0.5
        assert insights.mood_label == "Very Positive"
        assert insights.observation_tone == "positive"
        assert insights.positive_ratio > 0.9

    def test_negative_sentiment(self):
        """Test a negative recording."""
        from mindmap.scoring.insights import compute_insights

        insights = compute_insights({"Sadness": 0.7, "Distress": 0.4, "Calmness": 0.1})
        assert insights.sentiment < -0.3
        assert insights.observation_tone == "warning"
        assert "Sadness" in insights.key_observation

    def test_neutral_without_known_labels(self):
        """Test neutral sentiment for unknown labels."""
        from mindmap.scoring.insights import compute_insights

        insights = compute_insights({"Nostalgia": 0.5, "Realization": 0.3})
        assert insights.sentiment == 0.0
        assert insights.positive_ratio == 0.5
        assert insights.mood_label == "Neutral"
        assert insights.observation_tone == "neutral"

    def test_voice_stability(self):
        """Test voice stability bands."""
        from mindmap.scoring.insights import compute_insights, voice_stability

        assert voice_stability(0.05) == (pytest.approx(95.0), "Very Stable")
        assert voice_stability(0.3)[1] == "Moderate"
        assert voice_stability(0.9)[1] == "Variable"

        insights = compute_insights({"Joy": 0.5}, jitter=0.1)
        assert insights.voice_stability_label == "Very Stable"
        assert compute_insights({"Joy": 0.5}).voice_stability is None

    def test_mood_labels(self):
        """Test mood label thresholds."""
        from mindmap.scoring.insights import mood_label

        assert mood_label(0.6) == "Very Positive"
        assert mood_label(0.3) == "Positive"
        assert mood_label(0.0) == "Neutral"
        assert mood_label(-0.3) == "Negative"
        assert mood_label(-0.9) == "Very Negative"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
