"""Tests for session aggregation."""

import asyncio

import pytest


SCORES = {"Joy": 0.8, "Sadness": 0.1, "Calmness": 0.3}


def local(energy=0.05, jitter=None):
    from mindmap.models.schemas import LocalAudioMetrics

    return LocalAudioMetrics(volume_db=-26.0, pitch_hz=180.0, jitter=jitter, energy=energy)


def make_aggregator(**kwargs):
    from mindmap.config import SessionConfig
    from mindmap.session import SessionAggregator

    return SessionAggregator(SessionConfig(**kwargs))


class FakeSource:
    """Plays for ``ticks`` samples, half a second apart."""

    def __init__(self, ticks):
        self.remaining = ticks
        self.current_time = 0.0

    @property
    def is_playing(self):
        return self.remaining > 0

    def latest_metrics(self):
        self.remaining -= 1
        self.current_time += 0.5
        return local()


class TestSampling:
    """Tests for Tick handling."""

    def test_tick_without_scores(self):
        """Test a tick before any emotion scores have arrived."""
        aggregator = make_aggregator()
        datum = aggregator.tick(local(energy=0.1), 0.5)

        assert len(aggregator) == 1
        assert datum.hume is None
        assert datum.clinical.depression_risk is None
        assert datum.clinical.energy_level == pytest.approx(30.0)
        assert datum.valence is None
        assert datum.dominant_emotion is None

    def test_tick_uses_latest_scores(self):
        """Test that ticks carry the most recent scores."""
        aggregator = make_aggregator()
        aggregator.scores_arrived(SCORES, aggregator.generation)
        datum = aggregator.tick(local(), 1.0)

        assert datum.hume == SCORES
        assert datum.dominant_emotion == "Joy"

    def test_bounded_session_evicts_oldest(self):
        """Test that a full session drops its oldest samples."""
        aggregator = make_aggregator(max_points=3)
        ids = [aggregator.tick(local(), t * 0.5).id for t in range(5)]

        assert len(aggregator) == 3
        assert [d.id for d in aggregator.samples] == ids[2:]
        assert aggregator.current_point.id == ids[-1]

    def test_datum_ids(self):
        """Test sample id format and uniqueness."""
        aggregator = make_aggregator()
        first = aggregator.tick(local(), 0.0)
        second = aggregator.tick(local(), 0.5)

        assert first.id != second.id
        prefix, suffix = first.id.split("-")
        assert prefix.isdigit()
        assert len(suffix) == 6

    def test_unknown_message(self):
        """Test rejection of unknown messages."""
        aggregator = make_aggregator()
        with pytest.raises(TypeError):
            aggregator.handle("tick")


class TestLateArrival:
    """Tests for ScoresArrived handling."""

    def test_backfill(self):
        """Test backfilling earlier samples when scores arrive."""
        aggregator = make_aggregator()
        for t in (0.5, 1.0, 1.5):
            aggregator.tick(local(), t)

        assert aggregator.scores_arrived(SCORES, aggregator.generation)
        for datum in aggregator.samples:
            assert datum.hume == SCORES
            assert datum.clinical.depression_risk is not None
            assert datum.dominant_emotion == "Joy"

    def test_backfill_keeps_existing_scores(self):
        """Test that backfill leaves scored samples alone."""
        aggregator = make_aggregator()
        aggregator.scores_arrived({"Fear": 0.9}, aggregator.generation)
        aggregator.tick(local(), 0.5)
        aggregator.scores_arrived(SCORES, aggregator.generation)

        samples = aggregator.samples
        # synthetic datum plus the tick, both scored by the first map
        assert [d.dominant_emotion for d in samples] == ["Fear", "Fear"]

    def test_backfill_idempotent(self):
        """Test that repeated arrivals do not change samples."""
        aggregator = make_aggregator()
        aggregator.tick(local(), 0.5)
        aggregator.scores_arrived(SCORES, aggregator.generation)
        first = [d.model_dump() for d in aggregator.samples]

        aggregator.scores_arrived(SCORES, aggregator.generation)
        assert [d.model_dump() for d in aggregator.samples] == first

    def test_synthetic_datum_on_empty_session(self):
        """Test the sample created when scores beat the first tick."""
        aggregator = make_aggregator()
        assert aggregator.scores_arrived(SCORES, aggregator.generation, local=local(), playback_time=3.2)

        assert len(aggregator) == 1
        datum = aggregator.current_point
        assert datum.playback_time == 3.2
        assert datum.dominant_emotion == "Joy"

    def test_stale_generation_dropped(self):
        """Test that scores from a previous session are ignored."""
        aggregator = make_aggregator()
        stale = aggregator.generation
        aggregator.reset()
        aggregator.tick(local(), 0.5)

        assert not aggregator.scores_arrived(SCORES, stale)
        assert aggregator.latest_scores is None
        assert aggregator.current_point.hume is None

    def test_empty_scores_ignored(self):
        """Test that empty or non-finite scores are ignored."""
        aggregator = make_aggregator()
        aggregator.tick(local(), 0.5)

        assert not aggregator.scores_arrived({}, aggregator.generation)
        assert not aggregator.scores_arrived({"Joy": float("nan")}, aggregator.generation)
        assert aggregator.current_point.hume is None

    def test_reset(self):
        """Test session reset."""
        aggregator = make_aggregator()
        aggregator.scores_arrived(SCORES, aggregator.generation)
        generation = aggregator.reset()

        assert generation == 1
        assert len(aggregator) == 0
        assert aggregator.latest_scores is None
        assert not aggregator.is_collecting


class TestTrajectory:
    """Tests for trajectory bucketing."""

    def test_two_second_buckets(self):
        """Test grouping samples into two second buckets."""
        aggregator = make_aggregator()
        aggregator.scores_arrived(SCORES, aggregator.generation)
        aggregator.reset()
        for t, energy in ((0.5, 0.1), (1.9, 0.2), (2.1, 0.1)):
            aggregator.tick(local(energy=energy), t)

        points = aggregator.trajectory_points()
        assert [p.time_bucket for p in points] == [0, 1]
        assert points[0].energy == pytest.approx(45.0)
        assert points[1].energy == pytest.approx(30.0)
        assert points[0].valence is None

    def test_empty(self):
        """Test trajectory of an empty session."""
        assert make_aggregator().trajectory_points() == []


class TestCollector:
    """Tests for the sampling timer."""

    def test_collects_while_playing(self):
        """Test sampling until the source stops playing."""
        from mindmap.session import CollectorState

        async def scenario():
            aggregator = make_aggregator(sample_interval_ms=1)
            task = aggregator.start_collecting(FakeSource(ticks=3))
            assert aggregator.state == CollectorState.COLLECTING
            await task
            return aggregator

        aggregator = asyncio.run(scenario())
        assert [d.playback_time for d in aggregator.samples] == [0.5, 1.0, 1.5]
        assert aggregator.state == CollectorState.IDLE

    def test_stop_collecting(self):
        """Test cancelling the sampling timer."""
        async def scenario():
            aggregator = make_aggregator(sample_interval_ms=1)
            aggregator.start_collecting(FakeSource(ticks=100))
            aggregator.stop_collecting()
            await asyncio.sleep(0.01)
            return aggregator

        aggregator = asyncio.run(scenario())
        assert len(aggregator) == 0
        assert not aggregator.is_collecting

    def test_restart_replaces_timer(self):
        """Test that starting again cancels the previous timer."""
        async def scenario():
            aggregator = make_aggregator(sample_interval_ms=1)
            first = aggregator.start_collecting(FakeSource(ticks=100))
            second = aggregator.start_collecting(FakeSource(ticks=2))
            await second
            return aggregator, first

        aggregator, first = asyncio.run(scenario())
        assert first.cancelled()
        assert len(aggregator) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
