#!/usr/bin/env python3
"""
MindMap voice affect analysis

Plays an audio file against a wall clock, samples local acoustic features
while it plays, submits the file to the Hume batch API and shows clinical
proxy scores (depression / anxiety / mania / energy), valence and the
dominant emotion in a live terminal dashboard.
"""

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path

from rich.console import Console
from rich.live import Live
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from mindmap.config import SessionConfig, load_config
from mindmap.errors import MindMapError
from mindmap.extractors import LocalFeatureExtractor
from mindmap.pipeline import AnalysisPipeline
from mindmap.utils.audio import load_audio
from mindmap.utils.dashboard import format_time, render_dashboard, render_summary_table


AUDIO_EXTENSIONS = {".wav", ".mp3", ".m4a", ".flac", ".ogg", ".webm"}
console = Console()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def positive_float(value: str) -> float:
    speed = float(value)
    if not speed > 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {value}")
    return speed


async def run_analysis(pipeline: AnalysisPipeline, live: bool, submit: bool):
    bucket_seconds = pipeline.config.session.bucket_seconds
    if not live:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Playing and analyzing...", total=None)

            def describe(snap):
                progress.update(
                    task,
                    description=f"Playing {format_time(snap.playback_time)} / "
                    f"{format_time(snap.duration_seconds)} ({snap.status.state})",
                )

            snapshot = await pipeline.run(on_update=describe, submit=submit)
            progress.update(task, description="Complete!")
            return snapshot

    with Live(render_dashboard(pipeline.snapshot(), bucket_seconds), console=console, refresh_per_second=4) as view:
        return await pipeline.run(
            on_update=lambda snap: view.update(render_dashboard(snap, bucket_seconds)),
            submit=submit,
        )


def save_session(snapshot, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "file_name": snapshot.file_name,
        "duration_seconds": snapshot.duration_seconds,
        "status": snapshot.status.model_dump(),
        "samples": [s.model_dump() for s in snapshot.samples],
        "trajectory": [p.model_dump() for p in snapshot.trajectory],
        "insights": snapshot.insights.model_dump() if snapshot.insights else None,
    }
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    console.print(f"  [green]JSON saved:[/green] {output_path}")


def cmd_analyze(args) -> int:
    config = load_config()
    config.session = SessionConfig(**{**config.session.model_dump(), "playback_speed": args.speed})
    pipeline = AnalysisPipeline(config)

    try:
        pipeline.load_path(args.input_path)
    except (MindMapError, FileNotFoundError) as e:
        console.print(f"[red]Error:[/red] {getattr(e, 'user_message', None) or e}")
        return 1

    start_time = time.time()
    snapshot = asyncio.run(run_analysis(pipeline, live=not args.no_live, submit=not args.local_only))
    elapsed_time = time.time() - start_time

    console.print("\n")
    console.print(render_summary_table(snapshot))
    point = snapshot.current_point
    if point and point.dominant_emotion:
        console.print(f"[bold]Dominant emotion:[/bold] {point.dominant_emotion}")
    if snapshot.insights:
        console.print(f"[bold]Observation:[/bold] {snapshot.insights.key_observation}")
    console.print("[dim]Clinical proxies are heuristics, not diagnostic measures.[/dim]")

    if snapshot.status.state == "error":
        console.print(f"[yellow]Emotion analysis unavailable:[/yellow] {snapshot.status.message}")
        console.print("[dim]Showing local audio metrics only.[/dim]")

    if args.output:
        save_session(snapshot, args.output)

    console.print(f"\n[green]✓ Processing completed in {elapsed_time:.2f}s[/green]")
    return 0 if snapshot.status.state != "error" else 2


def cmd_features(args) -> int:
    config = load_config()
    try:
        audio, sample_rate = load_audio(args.input_path, target_sr=config.extractor.target_sr)
    except MindMapError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    extractor = LocalFeatureExtractor(config.extractor)
    extractor.init(audio, sample_rate)
    summary = extractor.summary()
    extractor.teardown()

    table = Table(title=f"Local Features: {args.input_path.name}", show_header=True, header_style="bold cyan")
    table.add_column("Feature")
    table.add_column("Value", justify="right")
    for key, value in summary.items():
        table.add_row(key, str(value))
    console.print(table)
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Voice affect analysis with clinical proxy scores",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Live dashboard while the file plays
  python main.py analyze session.wav

  # Play 4x faster and save the session
  python main.py analyze session.wav --speed 4 -o outputs/session.json

  # Local features only (no API call)
  python main.py features session.wav
        """,
    )
    sub = parser.add_subparsers(dest="command")

    analyze = sub.add_parser("analyze", help="Play a file and analyze it")
    analyze.add_argument("input_path", type=Path, help="Path to an audio file")
    analyze.add_argument(
        "--speed",
        type=positive_float,
        default=1.0,
        help="Playback speed multiplier (default: 1.0)",
    )
    analyze.add_argument(
        "--no-live",
        action="store_true",
        help="Disable the live dashboard",
    )
    analyze.add_argument(
        "--local-only",
        action="store_true",
        help="Skip the Hume job and show local metrics only",
    )
    analyze.add_argument(
        "--output", "-o",
        type=Path,
        default=None,
        help="Write session samples and trajectory to a JSON file",
    )

    features = sub.add_parser("features", help="Print local acoustic features")
    features.add_argument("input_path", type=Path, help="Path to an audio file")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 1

    if not args.input_path.exists():
        console.print(f"[red]Error:[/red] Path not found: {args.input_path}")
        return 1
    if args.input_path.suffix.lower() not in AUDIO_EXTENSIONS:
        console.print(f"[red]Error:[/red] Not a supported audio format: {args.input_path.suffix}")
        console.print(f"Supported: {', '.join(sorted(AUDIO_EXTENSIONS))}")
        return 1

    if args.command == "analyze":
        return cmd_analyze(args)
    return cmd_features(args)


if __name__ == "__main__":
    sys.exit(main())
