"""Tests for the Hume batch job client."""

import asyncio
import json

import httpx
import pytest

PREDICTIONS = [
    {
        "source": {"type": "file", "filename": "clip.wav"},
        "results": {
            "predictions": [
                {"models": {"prosody": {"grouped_predictions": [
                    {"id": "unknown", "predictions": [
                        {"emotions": [{"name": "Joy", "score": 0.4}, {"name": "Sadness", "score": 0.1}]},
                        {"emotions": [{"name": "Joy", "score": 0.7}, {"name": "Calmness", "score": 0.3}]},
                    ]}
                ]}}}
            ],
            "errors": [],
        },
    }
]


def make_client(handler, max_attempts=3, api_key="test-key"):
    from mindmap.config import HumeConfig
    from mindmap.extractors.hume_client import HumeJobClient

    delays = []

    async def no_sleep(delay):
        delays.append(delay)

    config = HumeConfig(
        api_key=api_key,
        base_url="https://hume.test",
        max_attempts=max_attempts,
    )
    client = HumeJobClient(
        config,
        transport=httpx.MockTransport(handler),
        sleep=no_sleep,
        verbose=False,
    )
    return client, delays


def job_handler(statuses, predictions=PREDICTIONS, calls=None):
    """Serve a job whose status walks through ``statuses`` then stays on the last."""
    statuses = list(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append((request.method, request.url.path))
        if request.method == "POST" and request.url.path == "/v0/batch/jobs":
            return httpx.Response(200, json={"job_id": "job-123"})
        if request.url.path == "/v0/batch/jobs/job-123":
            status = statuses.pop(0) if len(statuses) > 1 else statuses[0]
            return httpx.Response(200, json={"job_id": "job-123", "state": status})
        if request.url.path == "/v0/batch/jobs/job-123/predictions":
            return httpx.Response(200, json=predictions)
        return httpx.Response(404)

    return handler


class TestHumeJobClient:
    """Tests for HumeJobClient.submit_and_await."""

    def test_success_after_polling(self):
        """Test a job that completes after a few polls."""
        calls = []
        handler = job_handler(
            [{"status": "QUEUED"}, {"status": "IN_PROGRESS"}, {"status": "COMPLETED"}],
            calls=calls,
        )
        client, delays = make_client(handler)

        scores = asyncio.run(client.submit_and_await(b"RIFF....", "audio/wav", "clip.wav"))

        assert scores == {"Joy": 0.7, "Sadness": 0.1, "Calmness": 0.3}
        assert delays == [1.0, 1.5]
        assert calls[0] == ("POST", "/v0/batch/jobs")
        assert calls[-1] == ("GET", "/v0/batch/jobs/job-123/predictions")

    def test_submission_sends_key_and_models(self):
        """Test the submission request."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                seen["key"] = request.headers.get("X-Hume-Api-Key")
                seen["body"] = request.read()
            return job_handler([{"status": "COMPLETED"}])(request)

        client, _ = make_client(handler)
        asyncio.run(client.submit_and_await(b"audio-bytes", "audio/wav", "clip.wav"))

        assert seen["key"] == "test-key"
        assert b"audio-bytes" in seen["body"]
        assert json.dumps({"models": {"prosody": {}}}).encode() in seen["body"]

    def test_missing_key(self):
        """Test that no request is made without a key."""
        from mindmap.errors import ConfigurationError

        def handler(request):
            raise AssertionError("no request expected")

        for key in ("", "HUME_API_KEY_PLACEHOLDER"):
            client, _ = make_client(handler, api_key=key)
            with pytest.raises(ConfigurationError):
                asyncio.run(client.submit_and_await(b"x"))

    def test_submission_rejected(self):
        """Test a rejected submission."""
        from mindmap.errors import SubmissionError

        client, _ = make_client(lambda request: httpx.Response(400, text="bad file"))
        with pytest.raises(SubmissionError):
            asyncio.run(client.submit_and_await(b"x"))

    def test_submission_missing_job_id(self):
        """Test a submission reply without a job id."""
        from mindmap.errors import SubmissionError

        client, _ = make_client(lambda request: httpx.Response(200, json={"status": "ok"}))
        with pytest.raises(SubmissionError):
            asyncio.run(client.submit_and_await(b"x"))

    def test_key_rejected(self):
        """Test an invalid API key."""
        from mindmap.errors import ConfigurationError

        client, _ = make_client(lambda request: httpx.Response(401, json={"fault": "invalid key"}))
        with pytest.raises(ConfigurationError):
            asyncio.run(client.submit_and_await(b"x"))

    def test_polling_timeout(self):
        """Test giving up after max attempts."""
        from mindmap.errors import PollingTimeout

        client, delays = make_client(job_handler([{"status": "IN_PROGRESS"}]), max_attempts=4)
        with pytest.raises(PollingTimeout) as exc_info:
            asyncio.run(client.submit_and_await(b"x"))

        assert exc_info.value.user_message == "Analysis took too long. Please try again."
        assert len(delays) == 3

    def test_poll_errors_are_retried(self):
        """Test that failed polls are retried."""
        responses = [httpx.Response(500), httpx.Response(200, text="not json")]

        def handler(request):
            if request.url.path == "/v0/batch/jobs/job-123" and responses:
                return responses.pop(0)
            return job_handler([{"status": "COMPLETED"}])(request)

        client, delays = make_client(handler)
        scores = asyncio.run(client.submit_and_await(b"x"))
        assert scores["Joy"] == 0.7
        assert len(delays) == 2

    def test_job_failed(self):
        """Test a failed job."""
        from mindmap.errors import JobFailed

        handler = job_handler([{"status": "FAILED", "message": "Could not transcribe audio"}])
        client, _ = make_client(handler)
        with pytest.raises(JobFailed) as exc_info:
            asyncio.run(client.submit_and_await(b"x"))

        assert "clearer speech" in exc_info.value.user_message

    def test_plain_string_state(self):
        """Test a status reply whose state is a bare status string."""
        from mindmap.errors import JobFailed

        handler = job_handler(["IN_PROGRESS", "COMPLETED"])
        client, delays = make_client(handler)
        scores = asyncio.run(client.submit_and_await(b"x"))
        assert scores["Joy"] == 0.7
        assert delays == [1.0]

        client, _ = make_client(job_handler(["FAILED"]))
        with pytest.raises(JobFailed) as exc_info:
            asyncio.run(client.submit_and_await(b"x"))
        assert exc_info.value.user_message == "Emotion analysis failed."

    def test_completed_with_errors(self):
        """Test a completed job that reports file errors."""
        from mindmap.errors import JobFailed

        predictions = [{"results": {"predictions": [], "errors": [
            {"file": "clip.wav", "message": "Audio is too short"}
        ]}}]
        client, _ = make_client(job_handler([{"status": "COMPLETED"}], predictions=predictions))
        with pytest.raises(JobFailed) as exc_info:
            asyncio.run(client.submit_and_await(b"x"))

        assert exc_info.value.user_message == "The recording is too short to analyze."

    def test_extraction_empty(self):
        """Test a completed job with no emotion scores."""
        from mindmap.errors import ExtractionEmpty

        predictions = [{"results": {"predictions": [{"models": {"prosody": {"grouped_predictions": []}}}]}}]
        client, _ = make_client(job_handler([{"status": "COMPLETED"}], predictions=predictions))
        with pytest.raises(ExtractionEmpty) as exc_info:
            asyncio.run(client.submit_and_await(b"x"))

        assert "No emotions detected" in exc_info.value.user_message

    def test_poll_delays_capped(self):
        """Test backoff delays."""
        from mindmap.config import HumeConfig
        from mindmap.extractors.hume_client import HumeJobClient

        config = HumeConfig(api_key="k", initial_delay=1.0, backoff_factor=2.0, max_delay=3.0, max_attempts=5)
        assert list(HumeJobClient(config).poll_delays()) == [1.0, 2.0, 3.0, 3.0]


class TestFriendlyFailures:
    """Tests for user-facing failure messages."""

    def test_known_reasons(self):
        """Test messages for known failure reasons."""
        from mindmap.errors import friendly_failure_message

        assert "clearer speech" in friendly_failure_message("Could not transcribe audio")
        assert "quota" in friendly_failure_message("Monthly quota exceeded")

    def test_unknown_reason(self):
        """Test the fallback failure message."""
        from mindmap.errors import friendly_failure_message

        assert friendly_failure_message("GPU on fire") == "Emotion analysis failed: GPU on fire"
        assert friendly_failure_message(None) == "Emotion analysis failed."


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
