"""Shared fixtures: synthetic recordings and a fake emotion job client."""

import asyncio
import io

import numpy as np
import pytest
import soundfile as sf


def make_tone(duration=1.0, frequency=220.0, amplitude=0.5, sample_rate=22050):
    t = np.arange(int(sample_rate * duration)) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


def to_wav_bytes(audio, sample_rate=22050):
    buffer = io.BytesIO()
    sf.write(buffer, audio, sample_rate, format="WAV")
    return buffer.getvalue()


@pytest.fixture
def tone_wav():
    """One second of a 220 Hz tone as WAV bytes."""
    return to_wav_bytes(make_tone())


@pytest.fixture
def make_job_client():
    """Factory for FakeJobClient instances."""
    return FakeJobClient


class FakeJobClient:
    """Stands in for HumeJobClient; waits on ``release`` when ``hold`` is set."""

    def __init__(self, scores=None, error=None, hold=False):
        self.scores = scores if scores is not None else {"Joy": 0.8, "Sadness": 0.1, "Calmness": 0.3}
        self.error = error
        self.hold = hold
        self.release = None
        self.calls = []

    async def submit_and_await(self, audio_bytes, mime_type="audio/wav", filename="audio.wav"):
        self.calls.append((filename, mime_type, len(audio_bytes)))
        if self.hold:
            self.release = self.release or asyncio.Event()
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return dict(self.scores)
