"""
Terminal dashboard for a live analysis session.

Renders SessionSnapshot objects with rich; used by ``main.py analyze``
inside a ``rich.live.Live`` context.
"""

from typing import Optional

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.schemas import SessionSnapshot


STATUS_STYLES = {
    "idle": ("dim", "Ready"),
    "analyzing": ("yellow", "Analyzing voice patterns..."),
    "complete": ("green", "Connected"),
    "error": ("red", "Error"),
}

BAR_WIDTH = 20


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_time(seconds: float) -> str:
    if seconds is None or seconds != seconds or seconds == float("inf"):
        return "0:00"
    minutes = int(seconds // 60)
    return f"{minutes}:{int(seconds % 60):02d}"


def fmt_score(value: Optional[float], digits: int = 0) -> str:
    return "—" if value is None else f"{value:.{digits}f}"


def bar(value: Optional[float], width: int = BAR_WIDTH, maximum: float = 100.0) -> Text:
    if value is None:
        return Text("·" * width, style="dim")
    filled = int(round(max(0.0, min(value, maximum)) / maximum * width))
    style = "red" if value >= 70 else "yellow" if value >= 40 else "green"
    return Text("█" * filled, style=style) + Text("░" * (width - filled), style="dim")


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

def render_header(snapshot: SessionSnapshot) -> Panel:
    style, label = STATUS_STYLES.get(snapshot.status.state, ("dim", snapshot.status.state))
    text = Text()
    text.append(f"{snapshot.file_name or 'No file loaded'}  ", style="bold")
    text.append(f"{format_time(snapshot.playback_time)} / {format_time(snapshot.duration_seconds)}  ")
    text.append("▶ playing" if snapshot.is_playing else "■ stopped", style="cyan")
    text.append(f"  [{label}]", style=style)
    if snapshot.status.message:
        text.append(f"\n{snapshot.status.message}", style=style)
    return Panel(text, title="MindMap", border_style="cyan")


def render_live_metrics(snapshot: SessionSnapshot) -> Table:
    point = snapshot.current_point
    table = Table(title="Live Metrics", show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_column("", min_width=BAR_WIDTH)

    local = point.local if point else None
    clinical = point.clinical if point else None

    table.add_row("Volume (dB)", fmt_score(local.volume_db if local else None, 1), "")
    table.add_row("Pitch (Hz)", fmt_score(local.pitch_hz if local else None, 1), "")
    table.add_row("Jitter", fmt_score(local.jitter if local else None, 3), "")
    table.add_row("Energy level", fmt_score(clinical.energy_level if clinical else None),
                  bar(clinical.energy_level if clinical else None))
    table.add_row("Depression risk", fmt_score(clinical.depression_risk if clinical else None),
                  bar(clinical.depression_risk if clinical else None))
    table.add_row("Anxiety", fmt_score(clinical.anxiety_score if clinical else None),
                  bar(clinical.anxiety_score if clinical else None))
    table.add_row("Mania / activation", fmt_score(clinical.mania_score if clinical else None),
                  bar(clinical.mania_score if clinical else None))
    table.add_row("Valence", fmt_score(point.valence if point else None),
                  bar(point.valence if point else None))
    table.add_row("Dominant emotion", (point.dominant_emotion if point else None) or "—", "")
    return table


def render_insights(snapshot: SessionSnapshot) -> Panel:
    insights = snapshot.insights
    if insights is None:
        waiting = snapshot.status.state == "analyzing"
        message = "Analyzing voice patterns..." if waiting else "Upload and analyze audio to see emotional insights"
        return Panel(Text(message, style="dim"), title="Emotional Insights")

    lines = Text()
    lines.append(f"Mood: {insights.mood_label} ({insights.sentiment:+.2f})\n", style="bold")
    lines.append(insights.key_observation + "\n")
    lines.append("Top emotions: ")
    lines.append(", ".join(f"#{i} {e.name} {round(e.percent)}%" for i, e in enumerate(insights.top_emotions, 1)))
    lines.append(
        f"\nPositive ratio {round(insights.positive_ratio * 100)}%  "
        f"Active emotions {insights.active_emotions}"
    )
    if insights.voice_stability_label:
        lines.append(f"  Voice: {insights.voice_stability_label}")
    return Panel(lines, title="Emotional Insights", border_style="magenta")


def render_trajectory(
    snapshot: SessionSnapshot,
    max_rows: int = 10,
    bucket_seconds: float = 2.0,
) -> Table:
    table = Table(title="Energy / Valence Trajectory", show_header=True, header_style="bold cyan")
    table.add_column("t (s)", justify="right")
    table.add_column("Energy", justify="right")
    table.add_column("Valence", justify="right")
    for point in snapshot.trajectory[-max_rows:]:
        start = point.time_bucket * bucket_seconds
        table.add_row(f"{start:g}-{start + bucket_seconds:g}", fmt_score(point.energy), fmt_score(point.valence))
    return table


def render_dashboard(snapshot: SessionSnapshot, bucket_seconds: float = 2.0) -> Group:
    """Full dashboard for one refresh."""
    return Group(
        render_header(snapshot),
        render_live_metrics(snapshot),
        render_insights(snapshot),
        render_trajectory(snapshot, bucket_seconds=bucket_seconds),
    )


def render_summary_table(snapshot: SessionSnapshot) -> Table:
    """Session averages once playback has finished."""
    samples = snapshot.samples
    table = Table(title="Session Summary", show_header=True, header_style="bold cyan")
    table.add_column("Metric")
    table.add_column("Mean", justify="right")
    table.add_column("Samples", justify="right")

    def add(label, values):
        values = [v for v in values if v is not None]
        mean = sum(values) / len(values) if values else None
        table.add_row(label, fmt_score(mean, 1), str(len(values)))

    add("Energy level", [s.clinical.energy_level for s in samples])
    add("Depression risk", [s.clinical.depression_risk for s in samples])
    add("Anxiety", [s.clinical.anxiety_score for s in samples])
    add("Mania / activation", [s.clinical.mania_score for s in samples])
    add("Valence", [s.valence for s in samples])
    return table
