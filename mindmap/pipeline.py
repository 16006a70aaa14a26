"""Main analysis pipeline orchestrator."""

import asyncio
import time
from pathlib import Path
from typing import Callable, Optional, Union

from rich.console import Console

from .config import PipelineConfig, load_config
from .errors import MindMapError, UnsupportedAudioError
from .extractors import HumeJobClient, LocalFeatureExtractor, PlaybackClock
from .models.schemas import (
    AnalysisResult,
    AnalysisStatus,
    SessionSnapshot,
)
from .scoring import compute_insights, score_emotions
from .session import SessionAggregator
from .utils.audio import guess_mime_type, load_audio_bytes, validate_upload


console = Console(stderr=True)


class AnalysisPipeline:
    """
    Voice affect analysis for one loaded recording.

    Ties together:
    1. Local feature extraction (volume, pitch, jitter, energy per frame)
    2. Playback clock driving the session sampler
    3. Hume batch job for emotion scores (async, late-arriving)
    4. Clinical proxy scoring and session aggregation

    Loading a new file or stopping resets the session; a job result that
    arrives after a reset is dropped by the aggregator's generation check.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        job_client: Optional[HumeJobClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or load_config()
        self._job_client = job_client

        self.extractor = LocalFeatureExtractor(self.config.extractor)
        self.playback = PlaybackClock(
            self.extractor, speed=self.config.session.playback_speed, clock=clock
        )
        self.aggregator = SessionAggregator(self.config.session)
        self.status = AnalysisStatus()

        self.file_name: Optional[str] = None
        self.mime_type: Optional[str] = None
        self._audio_bytes: Optional[bytes] = None
        self._job_task: Optional[asyncio.Task] = None

    @property
    def job_client(self) -> HumeJobClient:
        if self._job_client is None:
            self._job_client = HumeJobClient(self.config.hume)
        return self._job_client

    @property
    def is_loaded(self) -> bool:
        return self._audio_bytes is not None

    @property
    def job_task(self) -> Optional[asyncio.Task]:
        return self._job_task

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load_file(
        self,
        audio_bytes: bytes,
        filename: str,
        mime_type: Optional[str] = None,
    ) -> float:
        """
        Validate, decode and analyse a recording. Decode errors are fatal
        here and nothing is sampled.

        Returns:
            Duration in seconds
        """
        mime_type = mime_type or guess_mime_type(filename)
        validate_upload(filename, mime_type, len(audio_bytes), self.config.upload)

        audio, sample_rate = load_audio_bytes(
            audio_bytes, filename=filename, target_sr=self.config.extractor.target_sr
        )

        self.stop()
        self.extractor.teardown()
        self.extractor.init(audio, sample_rate)

        self._audio_bytes = audio_bytes
        self.file_name = filename
        self.mime_type = mime_type
        console.print(
            f"  [dim]Loaded {filename}: {self.extractor.duration:.1f}s, "
            f"{len(self.extractor.frames)} frames[/dim]"
        )
        return self.extractor.duration

    def load_path(self, audio_path: Union[str, Path]) -> float:
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise FileNotFoundError(f"Audio file not found: {audio_path}")
        return self.load_file(audio_path.read_bytes(), audio_path.name)

    def start_analysis(self, submit: bool = True) -> Optional[asyncio.Task]:
        """
        Clear the session, start playback and sampling, and kick off the
        external job in the background. Must run inside an event loop.
        """
        if not self.is_loaded:
            raise UnsupportedAudioError(
                "start_analysis called before load_file",
                user_message="Please load an audio file first",
            )

        generation = self.aggregator.reset()
        self.status = AnalysisStatus(
            state="analyzing" if submit else "idle", generation=generation
        )
        self.playback.start()
        self.aggregator.start_collecting(self.playback)

        self._job_task = None
        if submit:
            self._job_task = asyncio.get_running_loop().create_task(
                self._run_job(generation, self._audio_bytes, self.mime_type, self.file_name)
            )
        return self._job_task

    def pause(self) -> None:
        self.playback.pause()
        self.aggregator.stop_collecting()

    def resume(self) -> None:
        if not self.is_loaded:
            return
        self.playback.resume()
        self.aggregator.start_collecting(self.playback)

    def stop(self) -> None:
        """Halt playback and sampling and clear the session."""
        self.playback.stop()
        generation = self.aggregator.reset()
        self.status = AnalysisStatus(state="idle", generation=generation)

    async def _run_job(self, generation: int, audio_bytes: bytes, mime_type: str, filename: str):
        try:
            scores = await self.job_client.submit_and_await(audio_bytes, mime_type, filename)
        except MindMapError as e:
            console.print(f"[red]Emotion analysis failed:[/red] {e}")
            self._set_error(generation, e.user_message)
            return None
        except Exception as e:
            console.print(f"[red]Emotion analysis failed unexpectedly:[/red] {e}")
            self._set_error(generation, "Analysis failed")
            return None

        applied = self.aggregator.scores_arrived(
            scores,
            generation,
            local=self.playback.latest_metrics(),
            playback_time=self.playback.current_time,
        )
        if applied:
            self.status = AnalysisStatus(state="complete", generation=generation)
        return scores

    def _set_error(self, generation: int, message: str) -> None:
        # Errors of a stale job must not overwrite the new session's status
        if generation == self.aggregator.generation:
            self.status = AnalysisStatus(state="error", message=message, generation=generation)

    async def wait_for_job(self):
        if self._job_task is None:
            return None
        return await self._job_task

    async def run(
        self,
        on_update: Optional[Callable[[SessionSnapshot], None]] = None,
        refresh_seconds: float = 0.25,
        submit: bool = True,
    ) -> SessionSnapshot:
        """
        Play the loaded file to the end, then wait for the external job.

        ``on_update`` receives a snapshot every ``refresh_seconds``.
        """
        self.start_analysis(submit=submit)
        while self.playback.is_playing or (self._job_task is not None and not self._job_task.done()):
            if on_update:
                on_update(self.snapshot())
            await asyncio.sleep(refresh_seconds)

        # Playback ended naturally: sampling stops, data stays
        self.aggregator.stop_collecting()
        snapshot = self.snapshot()
        if on_update:
            on_update(snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> SessionSnapshot:
        current = self.aggregator.current_point
        scores = current.hume if current is not None and current.hume else self.aggregator.latest_scores
        latest = self.playback.latest_metrics()

        return SessionSnapshot(
            file_name=self.file_name,
            duration_seconds=self.extractor.duration,
            playback_time=self.playback.current_time,
            is_playing=self.playback.is_playing,
            is_collecting=self.aggregator.is_collecting,
            status=self.status,
            current_point=current,
            samples=self.aggregator.samples,
            trajectory=self.aggregator.trajectory_points(),
            insights=compute_insights(scores, latest.jitter),
        )

    # ------------------------------------------------------------------
    # One-shot analysis (HTTP API)
    # ------------------------------------------------------------------

    async def analyze_bytes(
        self,
        audio_bytes: bytes,
        filename: str,
        mime_type: Optional[str] = None,
    ) -> AnalysisResult:
        """Submit one upload and return scores plus derived proxies."""
        mime_type = mime_type or guess_mime_type(filename)
        validate_upload(filename, mime_type, len(audio_bytes), self.config.upload)

        scores = await self.job_client.submit_and_await(audio_bytes, mime_type, filename)
        clinical, valence, dominant = score_emotions(scores, None)
        return AnalysisResult(
            raw_scores=scores,
            clinical=clinical,
            valence=valence,
            dominant_emotion=dominant,
            insights=compute_insights(scores),
        )
