"""Session aggregation: periodic sampling, late-arrival backfill and trajectory."""

import asyncio
import math
import random
import string
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Dict, List, Optional, Union

from rich.console import Console

from ..config import SessionConfig
from ..models.schemas import (
    EmotionScoreMap,
    LocalAudioMetrics,
    SessionDatum,
    TrajectoryPoint,
)
from ..scoring.clinical import clean_scores, score_emotions


console = Console(stderr=True)

_ID_ALPHABET = string.digits + string.ascii_lowercase


class CollectorState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"


@dataclass(frozen=True)
class Tick:
    """Sampling timer fired."""
    local: LocalAudioMetrics
    playback_time: float


@dataclass(frozen=True)
class ScoresArrived:
    """The external job delivered a score map for a given session generation."""
    scores: EmotionScoreMap
    generation: int
    local: Optional[LocalAudioMetrics] = None
    playback_time: float = 0.0


Message = Union[Tick, ScoresArrived]


def new_datum_id(now_ms: Optional[float] = None) -> str:
    now_ms = int(now_ms if now_ms is not None else time.time() * 1000)
    suffix = "".join(random.choices(_ID_ALPHABET, k=6))
    return f"{now_ms}-{suffix}"


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


class SessionAggregator:
    """
    Owns the bounded session of SessionDatum samples.

    Two triggers write to the session, the sampling timer (``Tick``) and the
    late arrival of external scores (``ScoresArrived``); both go through
    ``handle`` on the event loop, so there is a single writer. Every reset
    bumps ``generation``; a ScoresArrived carrying an older generation is
    dropped.
    """

    def __init__(self, config: Optional[SessionConfig] = None):
        self.config = config or SessionConfig()
        self._samples: Deque[SessionDatum] = deque(maxlen=self.config.max_points)
        self.generation = 0
        self.state = CollectorState.IDLE
        self.latest_scores: Optional[EmotionScoreMap] = None
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def samples(self) -> List[SessionDatum]:
        return list(self._samples)

    @property
    def current_point(self) -> Optional[SessionDatum]:
        return self._samples[-1] if self._samples else None

    @property
    def is_collecting(self) -> bool:
        return self.state == CollectorState.COLLECTING

    def __len__(self) -> int:
        return len(self._samples)

    def trajectory_points(self) -> List[TrajectoryPoint]:
        """Average energy and valence per time bucket, ascending by bucket."""
        buckets: Dict[int, Dict[str, List[float]]] = {}
        for datum in self._samples:
            bucket = math.floor(datum.playback_time / self.config.bucket_seconds)
            agg = buckets.setdefault(bucket, {"energy": [], "valence": []})
            if datum.clinical.energy_level is not None:
                agg["energy"].append(datum.clinical.energy_level)
            if datum.valence is not None:
                agg["valence"].append(datum.valence)

        return [
            TrajectoryPoint(
                time_bucket=bucket,
                energy=_mean(agg["energy"]),
                valence=_mean(agg["valence"]),
            )
            for bucket, agg in sorted(buckets.items())
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def handle(self, message: Message) -> Optional[SessionDatum]:
        """Serialized processing path for both message types."""
        if isinstance(message, Tick):
            return self._on_tick(message)
        if isinstance(message, ScoresArrived):
            applied = self._on_scores_arrived(message)
            return self.current_point if applied else None
        raise TypeError(f"Unknown message: {message!r}")

    def tick(self, local: LocalAudioMetrics, playback_time: float) -> SessionDatum:
        return self.handle(Tick(local=local, playback_time=playback_time))

    def scores_arrived(
        self,
        scores: EmotionScoreMap,
        generation: int,
        local: Optional[LocalAudioMetrics] = None,
        playback_time: float = 0.0,
    ) -> bool:
        """Apply a late score map; False when it was stale or empty."""
        return self._on_scores_arrived(
            ScoresArrived(scores=scores, generation=generation, local=local, playback_time=playback_time)
        )

    def _build_datum(
        self,
        local: LocalAudioMetrics,
        playback_time: float,
        scores: Optional[EmotionScoreMap],
    ) -> SessionDatum:
        clinical, valence, dominant = score_emotions(scores, local.energy)
        now_ms = time.time() * 1000
        return SessionDatum(
            id=new_datum_id(now_ms),
            timestamp=now_ms,
            playback_time=playback_time,
            local=local.model_copy(),
            hume=dict(scores) if scores else None,
            clinical=clinical,
            valence=valence,
            dominant_emotion=dominant,
        )

    def _on_tick(self, message: Tick) -> SessionDatum:
        datum = self._build_datum(message.local, message.playback_time, self.latest_scores)
        # deque(maxlen) evicts the oldest sample on overflow
        self._samples.append(datum)
        return datum

    def _on_scores_arrived(self, message: ScoresArrived) -> bool:
        if message.generation != self.generation:
            console.print(
                f"  [dim]Dropping stale emotion scores (generation {message.generation}, "
                f"current {self.generation})[/dim]"
            )
            return False

        scores = clean_scores(message.scores)
        if not scores:
            return False

        self.latest_scores = scores

        if not self._samples:
            self._samples.append(
                self._build_datum(message.local or LocalAudioMetrics(), message.playback_time, scores)
            )
            return True

        for datum in self._samples:
            if datum.has_scores:
                continue
            clinical, valence, dominant = score_emotions(scores, datum.local.energy)
            datum.hume = dict(scores)
            datum.clinical = clinical
            datum.valence = valence
            datum.dominant_emotion = dominant
        return True

    def reset(self) -> int:
        """Stop sampling, clear the session and start a new generation."""
        self.stop_collecting()
        self._samples.clear()
        self.latest_scores = None
        self.generation += 1
        return self.generation

    # ------------------------------------------------------------------
    # Sampling timer
    # ------------------------------------------------------------------

    def start_collecting(self, source) -> asyncio.Task:
        """
        Sample ``source`` every ``sample_interval_ms`` while it is playing.

        ``source`` provides ``latest_metrics()``, ``current_time`` and
        ``is_playing`` (see PlaybackClock). Must be called from a running
        event loop.
        """
        self.stop_collecting()
        self.state = CollectorState.COLLECTING
        self._task = asyncio.get_running_loop().create_task(self._run(source))
        return self._task

    def stop_collecting(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        self.state = CollectorState.IDLE

    async def _run(self, source) -> None:
        interval = self.config.sample_interval_ms / 1000
        me = asyncio.current_task()
        try:
            while True:
                await asyncio.sleep(interval)
                if self._task is not me:
                    return
                if not source.is_playing:
                    break
                self.handle(Tick(local=source.latest_metrics(), playback_time=source.current_time))
        finally:
            if self._task is me:
                self._task = None
                self.state = CollectorState.IDLE
