"""
FastAPI server for the MindMap voice analysis backend.

Run with: uvicorn api:app --reload
"""

from typing import Optional
from datetime import datetime

from fastapi import FastAPI, UploadFile, File
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from rich.console import Console

from mindmap.pipeline import AnalysisPipeline
from mindmap.config import load_config
from mindmap.errors import (
    MindMapError,
    ConfigurationError,
    SubmissionError,
    PollingTimeout,
    JobFailed,
    ExtractionEmpty,
    UnsupportedAudioError,
)


console = Console()
config = load_config()

app = FastAPI(
    title="MindMap Voice Analysis API",
    description="Emotion scores and clinical proxy metrics from voice recordings",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.server.cors_origin],
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["*"],
)

pipeline: Optional[AnalysisPipeline] = None

# (HTTP status, short error) per failure type
ERROR_RESPONSES = {
    UnsupportedAudioError: (400, "Invalid audio upload."),
    ConfigurationError: (500, "Hume API key is not configured on the server."),
    SubmissionError: (502, "Failed to start Hume job."),
    PollingTimeout: (504, "Timed out waiting for Hume predictions."),
    JobFailed: (422, "Hume analysis failed."),
    ExtractionEmpty: (422, "No emotions detected."),
}


def get_pipeline() -> AnalysisPipeline:
    """Get or create the pipeline instance."""
    global pipeline
    if pipeline is None:
        pipeline = AnalysisPipeline(config)
    return pipeline


def error_response(error: MindMapError) -> JSONResponse:
    status_code, short = ERROR_RESPONSES.get(type(error), (500, "Failed to analyze audio."))
    return JSONResponse(
        status_code=status_code,
        content={"error": short, "details": error.user_message},
    )


@app.get("/")
async def root():
    """API root endpoint."""
    return {
        "name": "MindMap Voice Analysis API",
        "version": "1.0.0",
        "endpoints": {
            "POST /analyze": "Upload audio file for emotion analysis",
            "GET /health": "Health check",
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.post("/analyze")
async def analyze_audio(
    audio: Optional[UploadFile] = File(None, description="Audio file (WAV, MP3, etc.)"),
):
    """
    Analyze a voice recording.

    Submits the upload to the Hume batch API, waits for the job, and returns
    the flat emotion score map with derived clinical proxies.
    """
    if audio is None:
        return JSONResponse(status_code=400, content={"error": "No audio file provided."})

    content = await audio.read()

    try:
        result = await get_pipeline().analyze_bytes(
            content,
            filename=audio.filename or "audio.wav",
            mime_type=audio.content_type,
        )
    except MindMapError as e:
        console.print(f"[red]Analysis failed:[/red] {e}")
        return error_response(e)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to analyze audio."})

    return result.model_dump()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.server.port)
