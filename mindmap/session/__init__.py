"""Session sampling and aggregation."""

from .aggregator import SessionAggregator, CollectorState, Tick, ScoresArrived

__all__ = [
    "SessionAggregator",
    "CollectorState",
    "Tick",
    "ScoresArrived",
]
