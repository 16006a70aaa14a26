"""Configuration settings for the MindMap voice analysis pipeline."""

import os
from typing import List
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()


API_KEY_PLACEHOLDER = "HUME_API_KEY_PLACEHOLDER"


class HumeConfig(BaseModel):
    """Hume Expression Measurement batch API configuration."""
    api_key: str = Field(default_factory=lambda: os.getenv("HUME_API_KEY", ""))
    base_url: str = Field(
        default_factory=lambda: os.getenv("HUME_BASE_URL", "https://api.hume.ai"),
        description="Hume API base URL"
    )
    models: dict = Field(
        default_factory=lambda: {"prosody": {}},
        description="Models requested for the batch job"
    )
    initial_delay: float = Field(default=1.0, description="First poll delay in seconds")
    max_delay: float = Field(default=8.0, description="Cap for the poll delay in seconds")
    backoff_factor: float = Field(default=1.5, description="Delay multiplier between polls")
    max_attempts: int = Field(
        default_factory=lambda: int(os.getenv("HUME_MAX_ATTEMPTS", "20")),
        description="Maximum number of status polls before giving up"
    )
    request_timeout: float = Field(default=60.0, description="HTTP timeout per request in seconds")

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key) and self.api_key != API_KEY_PLACEHOLDER


class ExtractorConfig(BaseModel):
    """Local feature extraction configuration."""
    frame_size: int = Field(default=2048, description="Samples per analysis frame")
    min_pitch: float = Field(default=65.0, description="Minimum pitch in Hz")
    max_pitch: float = Field(default=1000.0, description="Maximum pitch in Hz")
    voicing_rms: float = Field(
        default=0.01,
        description="Frames quieter than this RMS are treated as unvoiced"
    )
    target_sr: int = Field(default=22050, description="Sample rate audio is decoded to")


class SessionConfig(BaseModel):
    """Session sampling configuration."""
    sample_interval_ms: int = Field(
        default_factory=lambda: int(os.getenv("MINDMAP_SAMPLE_INTERVAL_MS", "500")),
        description="Sampling period while audio is playing (2 Hz default)"
    )
    max_points: int = Field(
        default_factory=lambda: int(os.getenv("MINDMAP_MAX_POINTS", "1000")),
        description="Maximum samples kept in a session"
    )
    bucket_seconds: float = Field(default=2.0, description="Trajectory bucket width in seconds")
    playback_speed: float = Field(default=1.0, gt=0, description="Playback speed multiplier")


class UploadConfig(BaseModel):
    """Upload validation configuration."""
    max_bytes: int = Field(default=50 * 1024 * 1024, description="Maximum upload size (50MB)")
    allowed_extensions: List[str] = Field(
        default_factory=lambda: [".wav", ".mp3", ".m4a", ".flac", ".ogg", ".webm"]
    )


class ServerConfig(BaseModel):
    """HTTP API configuration."""
    cors_origin: str = Field(
        default_factory=lambda: os.getenv("MINDMAP_CORS_ORIGIN", "http://localhost:5173")
    )
    port: int = Field(default_factory=lambda: int(os.getenv("PORT", "4000")))


class PipelineConfig(BaseModel):
    """Main pipeline configuration."""
    hume: HumeConfig = Field(default_factory=HumeConfig)
    extractor: ExtractorConfig = Field(default_factory=ExtractorConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


def load_config() -> PipelineConfig:
    """Load configuration from environment and defaults."""
    return PipelineConfig()
