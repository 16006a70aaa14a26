"""Hume Expression Measurement batch job client."""

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional

import httpx
from rich.console import Console

from ..config import HumeConfig
from ..errors import (
    ConfigurationError,
    SubmissionError,
    PollingTimeout,
    JobFailed,
    ExtractionEmpty,
    friendly_failure_message,
)
from ..models.schemas import EmotionScoreMap
from .hume_parsing import extract_emotion_scores, find_failure_reason


console = Console(stderr=True)

JOBS_PATH = "/v0/batch/jobs"

COMPLETED = "COMPLETED"
FAILED = "FAILED"


class HumeJobClient:
    """
    Submit an audio file to the Hume batch API and wait for emotion scores.

    The job lifecycle is: submit (terminal on rejection), poll status with
    exponential backoff until COMPLETED / FAILED or the attempt budget runs
    out, then fetch and flatten the predictions document.
    """

    def __init__(
        self,
        config: Optional[HumeConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        verbose: bool = True,
    ):
        self.config = config or HumeConfig()
        self._transport = transport
        self._sleep = sleep
        self.verbose = verbose

    def _log(self, message: str) -> None:
        if self.verbose:
            console.print(message)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.request_timeout,
            transport=self._transport,
            headers={"X-Hume-Api-Key": self.config.api_key},
        )

    def poll_delays(self):
        """Delays slept between consecutive status polls."""
        delay = self.config.initial_delay
        for _ in range(max(self.config.max_attempts - 1, 0)):
            yield delay
            delay = min(delay * self.config.backoff_factor, self.config.max_delay)

    async def submit_and_await(
        self,
        audio_bytes: bytes,
        mime_type: str = "audio/wav",
        filename: str = "audio.wav",
    ) -> EmotionScoreMap:
        """
        Run a complete batch job for one audio file.

        Args:
            audio_bytes: Raw file content
            mime_type: Content type of the file part
            filename: File name reported to the service

        Returns:
            Flat emotion label -> max score map (never empty)

        Raises:
            ConfigurationError, SubmissionError, PollingTimeout, JobFailed,
            ExtractionEmpty
        """
        if not self.config.has_credentials:
            raise ConfigurationError("HUME_API_KEY not set. Please set it in your environment or .env file.")

        async with self._client() as client:
            job_id = await self._submit(client, audio_bytes, mime_type, filename)
            self._log(f"  [dim]Hume job submitted: {job_id}[/dim]")
            await self._wait_for_completion(client, job_id)
            payload = await self._fetch_predictions(client, job_id)

        scores = extract_emotion_scores(payload)
        if not scores:
            reason = find_failure_reason(payload)
            if reason:
                raise JobFailed(reason, user_message=friendly_failure_message(reason))
            raise ExtractionEmpty(f"Job {job_id} completed without emotion predictions")

        self._log(f"  [dim]Received {len(scores)} emotion scores[/dim]")
        return scores

    async def _submit(
        self,
        client: httpx.AsyncClient,
        audio_bytes: bytes,
        mime_type: str,
        filename: str,
    ) -> str:
        """Create the batch job and return its id."""
        files = {"file": (filename, audio_bytes, mime_type or "application/octet-stream")}
        data = {"json": json.dumps({"models": self.config.models})}

        try:
            resp = await client.post(JOBS_PATH, files=files, data=data)
        except httpx.HTTPError as e:
            raise SubmissionError(f"Job submission request failed: {e}") from e

        if resp.status_code in (401, 403):
            raise ConfigurationError(
                f"Hume rejected the API key ({resp.status_code})",
                user_message="The Hume API key was rejected. Check HUME_API_KEY.",
            )
        if not resp.is_success:
            raise SubmissionError(f"Hume job start failed: {resp.status_code} {resp.text[:200]}")

        try:
            body = resp.json()
        except ValueError as e:
            raise SubmissionError("Invalid JSON in job start response") from e

        job_id = body.get("job_id") if isinstance(body, dict) else None
        if not isinstance(job_id, str) or not job_id:
            raise SubmissionError(f"Job start response missing job_id: {str(body)[:200]}")
        return job_id

    async def _poll_status(self, client: httpx.AsyncClient, job_id: str) -> tuple:
        """Return (STATUS, message). Transport hiccups read as not yet complete."""
        try:
            resp = await client.get(
                f"{JOBS_PATH}/{job_id}",
                headers={"accept": "application/json; charset=utf-8"},
            )
        except httpx.HTTPError as e:
            self._log(f"  [yellow]Warning:[/yellow] status poll failed: {e}")
            return "UNKNOWN", None

        if not resp.is_success:
            return "UNKNOWN", None

        try:
            body = resp.json()
        except ValueError:
            return "UNKNOWN", None
        if not isinstance(body, dict):
            return "UNKNOWN", None

        state = body.get("state")
        if isinstance(state, str):
            # Some replies carry the status string directly under "state"
            state = {"status": state}
        elif not isinstance(state, dict):
            state = {}
        status = state.get("status", body.get("status", ""))
        message = state.get("message") or body.get("message")
        return str(status or "").upper(), message

    async def _wait_for_completion(self, client: httpx.AsyncClient, job_id: str) -> None:
        delays = self.poll_delays()
        for attempt in range(1, self.config.max_attempts + 1):
            status, message = await self._poll_status(client, job_id)
            if status == COMPLETED:
                return
            if status == FAILED:
                reason = message if isinstance(message, str) and message else None
                raise JobFailed(
                    f"Hume job {job_id} failed: {reason or 'no reason given'}",
                    user_message=friendly_failure_message(reason),
                )

            delay = next(delays, None)
            if delay is None:
                break
            self._log(f"  [dim]Job {status.lower() or 'pending'} (attempt {attempt}), retrying in {delay:.1f}s[/dim]")
            await self._sleep(delay)

        raise PollingTimeout(
            f"Timed out waiting for Hume job {job_id} after {self.config.max_attempts} polls"
        )

    async def _fetch_predictions(self, client: httpx.AsyncClient, job_id: str) -> Any:
        try:
            resp = await client.get(
                f"{JOBS_PATH}/{job_id}/predictions",
                headers={"accept": "application/json; charset=utf-8"},
            )
        except httpx.HTTPError as e:
            raise JobFailed(f"Failed to fetch Hume predictions: {e}") from e

        if not resp.is_success:
            raise JobFailed(f"Hume predictions fetch failed: {resp.status_code} {resp.text[:200]}")

        try:
            return resp.json()
        except ValueError as e:
            raise JobFailed("Invalid JSON in predictions response") from e
